"""DevCycle-side payload models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


CUSTOM_PROPERTY_TYPES = ("String", "Number", "Boolean", "JSON")


@dataclass
class DestinationVariable:
    """A typed variable declared on a DevCycle feature."""
    name: str
    key: str
    type: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "key": self.key,
            "type": self.type,
            "description": self.description,
        }


@dataclass
class DestinationVariation:
    """A treatment arm with a concrete value for every feature variable."""
    key: str
    name: str
    variables: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "variables": dict(self.variables),
        }


@dataclass
class SdkVisibility:
    mobile: bool = True
    client: bool = True
    server: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {"mobile": self.mobile, "client": self.client, "server": self.server}


@dataclass
class DestinationFeature:
    """Body of ``POST /projects/{project}/features``."""
    name: str
    key: str
    description: str = ""
    variables: List[DestinationVariable] = field(default_factory=list)
    variations: List[DestinationVariation] = field(default_factory=list)
    sdk_visibility: SdkVisibility = field(default_factory=SdkVisibility)
    type: str = "release"
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API payload."""
        return {
            "name": self.name,
            "key": self.key,
            "description": self.description,
            "variables": [v.to_dict() for v in self.variables],
            "variations": [v.to_dict() for v in self.variations],
            "sdkVisibility": self.sdk_visibility.to_dict(),
            "type": self.type,
            "tags": list(self.tags),
        }

    def get_variation(self, key: str) -> Optional[DestinationVariation]:
        for variation in self.variations:
            if variation.key == key:
                return variation
        return None


@dataclass
class CustomDataProperty:
    """A custom user property registered in a DevCycle project."""
    key: str
    property_key: str
    name: str = ""
    type: str = "String"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name or self.property_key,
            "propertyKey": self.property_key,
            "key": self.key,
            "type": self.type,
        }


@dataclass
class TargetingRule:
    """One entry of a configuration's ``targets`` list."""
    audience: Dict[str, Any]
    distribution: List[Dict[str, Any]]
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "audience": self.audience,
            "distribution": self.distribution,
        }
        if self.name:
            result["name"] = self.name
        return result


# Response models

class APIResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CustomPropertyResponse(APIResponseModel):
    key: str = ""
    property_key: str = Field(default="", alias="propertyKey")
    name: str = ""
    type: str = "String"

    def to_property(self) -> CustomDataProperty:
        return CustomDataProperty(
            key=self.key,
            property_key=self.property_key or self.key,
            name=self.name,
            type=self.type,
        )


class VariationResponse(APIResponseModel):
    id: str = Field(alias="_id")
    key: str


class FeatureCreateResponse(APIResponseModel):
    """Parsed body of a 201 feature-creation response."""
    id: str = Field(alias="_id")
    key: str = ""
    variations: List[VariationResponse] = Field(default_factory=list)

    @property
    def variation_ids(self) -> Dict[str, str]:
        """Variation key -> DevCycle variation id."""
        return {v.key: v.id for v in self.variations}
