"""Service layer for the migration application."""

from .key_normalizer import normalize_key
from .filter_translator import FilterTranslator, collect_custom_data_requirements
from .merger import RecordMerger
from .feature_builder import FeatureBuilder, default_value, convert_variable_type
from .targeting import TargetingBuilder, TargetingError, normalize_distribution

__all__ = [
    "normalize_key",
    "FilterTranslator",
    "collect_custom_data_requirements",
    "RecordMerger",
    "FeatureBuilder",
    "default_value",
    "convert_variable_type",
    "TargetingBuilder",
    "TargetingError",
    "normalize_distribution",
]
