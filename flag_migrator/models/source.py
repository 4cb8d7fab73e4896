"""Pydantic models for the Taplytics export format."""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _null_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


class ExportModel(BaseModel):
    """Base for export models: accept field names or JSON aliases, ignore extras."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SourceVariable(ExportModel):
    name: str
    type: str = "string"
    value: Optional[Any] = None

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> Any:
        return "string" if value is None else value


class FilterItem(ExportModel):
    type: Optional[str] = None
    comparator: Optional[str] = None
    values: List[Any] = Field(default_factory=list)
    sub_type: Optional[str] = Field(default=None, alias="subType")
    data_key: Optional[str] = Field(default=None, alias="dataKey")
    data_key_type: Optional[str] = Field(default=None, alias="dataKeyType")

    @field_validator("values", mode="before")
    @classmethod
    def _null_values(cls, value: Any) -> Any:
        return _null_to_empty_list(value)


class Filter(ExportModel):
    """A boolean filter node; items may themselves be nested filters."""
    operator: str = "and"
    filters: List[Union["Filter", FilterItem]] = Field(default_factory=list)

    @field_validator("operator", mode="before")
    @classmethod
    def _default_operator(cls, value: Any) -> Any:
        return "and" if value is None else value

    @field_validator("filters", mode="before")
    @classmethod
    def _split_nested(cls, value: Any) -> Any:
        # Items carrying their own operator + filters are nested filter nodes
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        items = []
        for item in value:
            if isinstance(item, dict) and "operator" in item and "filters" in item:
                items.append(Filter.model_validate(item))
            elif isinstance(item, dict):
                items.append(FilterItem.model_validate(item))
            else:
                items.append(item)
        return items

    @property
    def is_empty(self) -> bool:
        return not self.filters


class Audience(ExportModel):
    name: str = ""
    filters: Filter = Field(default_factory=Filter)

    @field_validator("name", mode="before")
    @classmethod
    def _null_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("filters", mode="before")
    @classmethod
    def _null_filters(cls, value: Any) -> Any:
        return {} if value is None else value


class DistributionEntry(ExportModel):
    name: str
    percentage: float = 0.0

    @field_validator("percentage", mode="before")
    @classmethod
    def _null_percentage(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class Target(ExportModel):
    name: str = ""
    audience: Audience = Field(default_factory=Audience)
    distribution: List[DistributionEntry] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _null_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("audience", mode="before")
    @classmethod
    def _null_audience(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("distribution", mode="before")
    @classmethod
    def _null_distribution(cls, value: Any) -> Any:
        return _null_to_empty_list(value)


class SourceVariation(ExportModel):
    name: str
    variables: List[SourceVariable] = Field(default_factory=list)
    distribution: float = 0.0

    @field_validator("variables", mode="before")
    @classmethod
    def _null_variables(cls, value: Any) -> Any:
        return _null_to_empty_list(value)

    @field_validator("distribution", mode="before")
    @classmethod
    def _null_distribution(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class SourceFeatureRecord(ExportModel):
    """One record of the export; ``feature_name`` is the merge key."""
    id: str = Field(default="", alias="_id")
    feature_name: str = Field(alias="featureName")
    variables: List[SourceVariable] = Field(default_factory=list)
    variations: List[SourceVariation] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    audience: Optional[Audience] = None
    distribution: List[DistributionEntry] = Field(default_factory=list)
    targets: Optional[List[Target]] = None

    @field_validator("tags", "variables", "variations", "distribution", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return _null_to_empty_list(value)

    @field_validator("id", mode="before")
    @classmethod
    def _null_id(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def has_targets(self) -> bool:
        """True for per-environment target records."""
        return self.targets is not None

    @property
    def all_variables(self) -> List[SourceVariable]:
        """Top-level variables followed by those declared inside variations."""
        seen = set()
        result = []
        candidates = list(self.variables)
        for variation in self.variations:
            candidates.extend(variation.variables)
        for variable in candidates:
            if variable.name in seen:
                continue
            seen.add(variable.name)
            result.append(variable)
        return result

    @property
    def has_targeting(self) -> bool:
        return bool(self.audience_filters())

    def audience_filters(self) -> List[Filter]:
        """Every non-empty audience filter in the record, flat or per target."""
        if self.has_targets:
            return [t.audience.filters for t in self.targets if not t.audience.filters.is_empty]
        if self.audience is not None and not self.audience.filters.is_empty:
            return [self.audience.filters]
        return []


class ImportFile(ExportModel):
    """Top-level export document."""
    tl_project: str
    dvc_project: str = ""
    records: List[SourceFeatureRecord] = Field(default_factory=list)

    @field_validator("tl_project")
    @classmethod
    def _require_source_project(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("tl_project is required")
        return value

    @field_validator("dvc_project", mode="before")
    @classmethod
    def _null_project(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("records", mode="before")
    @classmethod
    def _null_records(cls, value: Any) -> Any:
        return _null_to_empty_list(value)


Filter.model_rebuild()
