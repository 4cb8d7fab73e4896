"""Translation of Taplytics audience filters into DevCycle targeting filters."""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from ..models.source import Audience, Filter, FilterItem
from ..models.migration import DEFAULT_ALLOWED_SUBTYPES, UnknownSubtypePolicy

logger = logging.getLogger(__name__)

VERSION_SUBTYPES = ("appVersion", "platformVersion")
CUSTOM_DATA_SUBTYPE = "customData"

COMPARATOR_ALIASES = {
    "eq": "=",
    "==": "=",
    "neq": "!=",
    "ne": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "contains": "contain",
    "notContains": "!contain",
    "exists": "exist",
    "notExists": "!exist",
}

_TWO_PART_VERSION = re.compile(r"^\d+\.\d+$")


def normalize_version(value: Any) -> Any:
    """Pad ``major.minor`` version strings to ``major.minor.0``."""
    if isinstance(value, str) and _TWO_PART_VERSION.match(value.strip()):
        return value.strip() + ".0"
    return value


def collect_custom_data_requirements(filter: Filter) -> Dict[str, str]:
    """
    Find every custom data key referenced by a filter tree.

    Returns:
        Mapping of data key -> declared data type (first declaration wins)
    """
    found: Dict[str, str] = {}
    for item in filter.filters:
        if isinstance(item, Filter):
            for key, data_type in collect_custom_data_requirements(item).items():
                found.setdefault(key, data_type)
        elif item.sub_type == CUSTOM_DATA_SUBTYPE and item.data_key:
            found.setdefault(item.data_key, item.data_key_type or "String")
    return found


def collect_all_requirements(filters: Iterable[Filter]) -> Dict[str, str]:
    """Union of custom data requirements over many filters."""
    found: Dict[str, str] = {}
    for node in filters:
        for key, data_type in collect_custom_data_requirements(node).items():
            found.setdefault(key, data_type)
    return found


class FilterTranslator:
    """
    Converts audience filter trees into DevCycle's filter vocabulary.

    Handles:
    - Version normalization for appVersion / platformVersion
    - Custom data filters
    - Allow-listed pass-through sub-types
    - Nested filter groups
    """

    def __init__(
        self,
        allowed_subtypes: Optional[Iterable[str]] = None,
        unknown_subtype_policy: UnknownSubtypePolicy = UnknownSubtypePolicy.DROP,
        comparator_aliases: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the translator.

        Args:
            allowed_subtypes: Sub-types that are translated; others follow the policy
            unknown_subtype_policy: Drop or pass through sub-types not on the allow-list
            comparator_aliases: Source comparator -> DevCycle comparator
        """
        self.allowed_subtypes = set(
            allowed_subtypes if allowed_subtypes is not None else DEFAULT_ALLOWED_SUBTYPES
        )
        self.unknown_subtype_policy = UnknownSubtypePolicy(unknown_subtype_policy)
        self.comparator_aliases = dict(COMPARATOR_ALIASES)
        if comparator_aliases:
            self.comparator_aliases.update(comparator_aliases)

    def translate(self, filter: Filter) -> Dict[str, Any]:
        """Translate a filter tree. Pure: the input is never modified."""
        translated: List[Dict[str, Any]] = []
        for item in filter.filters:
            if isinstance(item, Filter):
                nested = self.translate(item)
                if nested["filters"]:
                    translated.append(nested)
                continue

            result = self.translate_item(item)
            if result is not None:
                translated.append(result)

        return {
            "operator": filter.operator,
            "filters": translated,
        }

    def translate_audience(self, audience: Audience) -> Dict[str, Any]:
        """Translate an audience into the ``audience`` object of a target."""
        return {
            "name": audience.name,
            "filters": self.translate(audience.filters),
        }

    def translate_item(self, item: FilterItem) -> Optional[Dict[str, Any]]:
        """Translate one filter item, or return None when it is dropped."""
        sub_type = item.sub_type

        if item.type == "all" and not sub_type:
            return {"type": "all"}

        if sub_type not in self.allowed_subtypes:
            if self.unknown_subtype_policy == UnknownSubtypePolicy.PASSTHROUGH:
                logger.debug(f"Passing through unrecognized filter sub-type: {sub_type}")
                return item.model_dump(by_alias=True, exclude_none=True)
            logger.warning(f"Dropping filter with unrecognized sub-type: {sub_type}")
            return None

        if sub_type == "all":
            return {"type": "all"}

        result: Dict[str, Any] = {
            "type": "user",
            "subType": sub_type,
            "comparator": self._translate_comparator(item.comparator),
        }

        if sub_type in VERSION_SUBTYPES:
            result["values"] = [normalize_version(v) for v in item.values]
        elif sub_type == CUSTOM_DATA_SUBTYPE:
            result["dataKey"] = item.data_key
            if item.data_key_type:
                result["dataKeyType"] = item.data_key_type
            result["values"] = list(item.values)
        else:
            result["values"] = list(item.values)

        if result["comparator"] is None:
            del result["comparator"]

        return result

    def _translate_comparator(self, comparator: Optional[str]) -> Optional[str]:
        if comparator is None:
            return None
        return self.comparator_aliases.get(comparator, comparator)
