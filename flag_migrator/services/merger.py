"""Merging of export records that describe the same feature."""

import logging
from typing import Dict, Iterable, List

from ..models.migration import VariableMergePolicy
from ..models.record import MergedFeature
from ..models.source import SourceFeatureRecord, SourceVariable
from .key_normalizer import normalize_key

logger = logging.getLogger(__name__)


class RecordMerger:
    """
    Groups export records by feature name.

    The first record seen for a name seeds the merged feature; later records
    contribute their variables and any variations not yet present.
    """

    def __init__(self, variable_merge_policy: VariableMergePolicy = VariableMergePolicy.DEDUPE):
        self.variable_merge_policy = VariableMergePolicy(variable_merge_policy)

    def merge(self, records: Iterable[SourceFeatureRecord]) -> Dict[str, MergedFeature]:
        """
        Merge records into one feature per distinct name.

        Args:
            records: Export records, in file order

        Returns:
            Dictionary of feature name -> MergedFeature, in first-seen order
        """
        merged: Dict[str, MergedFeature] = {}
        excluded = 0

        for record in records:
            if not record.all_variables:
                excluded += 1
                logger.debug(f"Excluding record without variables: {record.feature_name} ({record.id})")
                continue

            existing = merged.get(record.feature_name)
            if existing is None:
                seed = MergedFeature.from_record(record)
                if self.variable_merge_policy == VariableMergePolicy.DEDUPE:
                    seed.variables = self._dedupe([], seed.variables)
                merged[record.feature_name] = seed
                continue

            self._merge_into(existing, record)

        if excluded:
            logger.info(f"Excluded {excluded} record(s) without variables")
        logger.info(f"Merged records into {len(merged)} feature(s)")
        return merged

    def _merge_into(self, existing: MergedFeature, record: SourceFeatureRecord) -> None:
        if self.variable_merge_policy == VariableMergePolicy.DEDUPE:
            existing.variables = self._dedupe(existing.variables, record.all_variables)
        else:
            existing.variables.extend(record.all_variables)

        known = {normalize_key(v.name) for v in existing.variations}
        for variation in record.variations:
            if normalize_key(variation.name) not in known:
                existing.variations.append(variation)
                known.add(normalize_key(variation.name))

        if record.id:
            existing.source_ids.append(record.id)

        if not existing.has_targeting and record.has_targeting:
            existing.take_targeting(record)

    def _dedupe(
        self,
        current: List[SourceVariable],
        incoming: Iterable[SourceVariable]
    ) -> List[SourceVariable]:
        """Append incoming variables whose normalized key is new; first type wins."""
        result = list(current)
        seen = {normalize_key(v.name) for v in result}
        for variable in incoming:
            key = normalize_key(variable.name)
            if key in seen:
                continue
            seen.add(key)
            result.append(variable)
        return result
