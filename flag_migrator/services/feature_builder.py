"""Builds DevCycle feature payloads from merged features."""

import logging
from typing import Any, Dict, List

from ..models.destination import (
    DestinationFeature,
    DestinationVariable,
    DestinationVariation,
    SdkVisibility,
)
from ..models.record import MergedFeature
from ..models.source import SourceVariable
from .key_normalizer import normalize_key

logger = logging.getLogger(__name__)

VARIABLE_TYPES = {
    "string": "String",
    "number": "Number",
    "boolean": "Boolean",
    "json": "JSON",
}

OFF_VARIATION = ("variation-off", "Variation Off")
ON_VARIATION = ("variation-on", "Variation On")


def convert_variable_type(source_type: str) -> str:
    """Map a Taplytics variable type to a DevCycle type (String when unknown)."""
    return VARIABLE_TYPES.get((source_type or "").lower(), "String")


def default_value(variable_type: str, state: bool) -> Any:
    """Placeholder value for a variable in the ``state`` arm of a feature."""
    variable_type = (variable_type or "").lower()
    if variable_type == "string":
        return ""
    if variable_type == "number":
        return 1 if state else 0
    if variable_type == "boolean":
        return state
    return ""


class FeatureBuilder:
    """Converts MergedFeature objects into DestinationFeature payloads."""

    def __init__(self, source_label: str = "Taplytics"):
        self.source_label = source_label

    def describe(self, name: str) -> str:
        return f"Imported from {self.source_label}: {name}"

    def build(self, feature: MergedFeature) -> DestinationFeature:
        """
        Build the creation payload for a merged feature.

        Variables are deduplicated by normalized key. Features with source
        variations get one variation per source variation; all others get a
        generated off/on pair.
        """
        variables = self.build_variables(feature.variables)

        if feature.variations:
            variations = self._variations_from_source(feature, variables)
        else:
            variations = self._generated_variations(feature.variables, variables)

        return DestinationFeature(
            name=feature.feature_name,
            key=normalize_key(feature.feature_name),
            description=self.describe(feature.feature_name),
            variables=variables,
            variations=variations,
            sdk_visibility=SdkVisibility(mobile=True, client=True, server=True),
            type="release",
            tags=list(feature.tags),
        )

    def build_variables(self, source_variables: List[SourceVariable]) -> List[DestinationVariable]:
        variables = []
        seen = set()
        for variable in source_variables:
            key = normalize_key(variable.name)
            if not key or key in seen:
                continue
            seen.add(key)
            variables.append(DestinationVariable(
                name=variable.name,
                key=key,
                type=convert_variable_type(variable.type),
                description=self.describe(variable.name),
            ))
        return variables

    def _generated_variations(
        self,
        source_variables: List[SourceVariable],
        variables: List[DestinationVariable]
    ) -> List[DestinationVariation]:
        literals: Dict[str, Any] = {}
        for variable in source_variables:
            key = normalize_key(variable.name)
            if variable.value is not None and key not in literals:
                literals[key] = variable.value

        off_values = {v.key: default_value(v.type, False) for v in variables}
        on_values = {v.key: literals.get(v.key, default_value(v.type, True)) for v in variables}

        return [
            DestinationVariation(key=OFF_VARIATION[0], name=OFF_VARIATION[1], variables=off_values),
            DestinationVariation(key=ON_VARIATION[0], name=ON_VARIATION[1], variables=on_values),
        ]

    def _variations_from_source(
        self,
        feature: MergedFeature,
        variables: List[DestinationVariable]
    ) -> List[DestinationVariation]:
        variations = []
        for index, source_variation in enumerate(feature.variations):
            values = {}
            for variable in source_variation.variables:
                key = normalize_key(variable.name)
                if key not in values and variable.value is not None:
                    values[key] = variable.value

            # Every variation must carry a value for every feature variable
            state = index > 0
            for variable in variables:
                if variable.key not in values:
                    values[variable.key] = default_value(variable.type, state)

            variations.append(DestinationVariation(
                key=normalize_key(source_variation.name),
                name=source_variation.name,
                variables={v.key: values[v.key] for v in variables},
            ))
        return variations
