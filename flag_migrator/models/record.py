"""Record models for migration data."""

from dataclasses import dataclass, field
from typing import List, Optional

from .source import (
    Audience,
    DistributionEntry,
    Filter,
    SourceFeatureRecord,
    SourceVariable,
    SourceVariation,
    Target,
)


@dataclass
class MergedFeature:
    """
    One logical feature assembled from every export record sharing its name.

    Variables are the union across records; tags come from the first record;
    targeting data comes from the first record that carries any.
    """
    feature_name: str
    variables: List[SourceVariable] = field(default_factory=list)
    variations: List[SourceVariation] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    audience: Optional[Audience] = None
    distribution: List[DistributionEntry] = field(default_factory=list)
    targets: Optional[List[Target]] = None
    source_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: SourceFeatureRecord) -> "MergedFeature":
        """Seed a merged feature from its first record."""
        merged = cls(
            feature_name=record.feature_name,
            variables=list(record.all_variables),
            variations=list(record.variations),
            tags=list(record.tags),
        )
        if record.id:
            merged.source_ids.append(record.id)
        if record.has_targeting:
            merged.take_targeting(record)
        return merged

    def take_targeting(self, record: SourceFeatureRecord) -> None:
        self.audience = record.audience
        self.distribution = list(record.distribution)
        self.targets = list(record.targets) if record.targets is not None else None

    @property
    def has_targeting(self) -> bool:
        """True when at least one audience filter is present."""
        return bool(self.targeting_filters())

    def targeting_filters(self) -> List[Filter]:
        """Every non-empty audience filter this feature will be targeted with."""
        filters = []
        if self.targets is not None:
            for target in self.targets:
                if not target.audience.filters.is_empty:
                    filters.append(target.audience.filters)
        elif self.audience is not None and not self.audience.filters.is_empty:
            filters.append(self.audience.filters)
        return filters
