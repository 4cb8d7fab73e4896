"""Data models for the migration application."""

from .source import (
    SourceVariable,
    SourceVariation,
    FilterItem,
    Filter,
    Audience,
    DistributionEntry,
    Target,
    SourceFeatureRecord,
    ImportFile,
)
from .destination import (
    DestinationVariable,
    DestinationVariation,
    DestinationFeature,
    SdkVisibility,
    CustomDataProperty,
    TargetingRule,
    FeatureCreateResponse,
)
from .record import MergedFeature
from .migration import (
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
    FeatureImportResult,
    FeatureImportStatus,
    UnknownSubtypePolicy,
    VariableMergePolicy,
)

__all__ = [
    "SourceVariable",
    "SourceVariation",
    "FilterItem",
    "Filter",
    "Audience",
    "DistributionEntry",
    "Target",
    "SourceFeatureRecord",
    "ImportFile",
    "DestinationVariable",
    "DestinationVariation",
    "DestinationFeature",
    "SdkVisibility",
    "CustomDataProperty",
    "TargetingRule",
    "FeatureCreateResponse",
    "MergedFeature",
    "MigrationConfig",
    "MigrationRun",
    "MigrationStatus",
    "FeatureImportResult",
    "FeatureImportStatus",
    "UnknownSubtypePolicy",
    "VariableMergePolicy",
]
