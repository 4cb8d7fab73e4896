"""Construction of per-environment targeting rules."""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.destination import DestinationFeature, TargetingRule
from ..models.migration import DEFAULT_ENVIRONMENTS
from ..models.record import MergedFeature
from ..models.source import Audience, DistributionEntry, Target
from .filter_translator import FilterTranslator
from .key_normalizer import normalize_key

logger = logging.getLogger(__name__)

DISTRIBUTION_TOLERANCE = 1e-9


class TargetingError(Exception):
    """A targeting rule could not be built for a feature."""


def normalize_distribution(weights: Dict[str, float]) -> Dict[str, float]:
    """
    Scale weights so they sum to 1.0.

    Percent-style input (e.g. 70/30) is rescaled along with any other total.

    Raises:
        TargetingError: if any weight is negative or the total is not positive
    """
    if any(w < 0 for w in weights.values()):
        raise TargetingError(f"Negative distribution weight: {weights}")
    total = sum(weights.values())
    if total <= 0:
        raise TargetingError(f"Distribution total must be positive, got {total}")
    if abs(total - 1.0) <= DISTRIBUTION_TOLERANCE:
        return dict(weights)
    return {key: weight / total for key, weight in weights.items()}


class TargetingBuilder:
    """
    Builds the ``targets`` payload of each environment's configuration.

    Flat-audience features yield one target per environment. Target-list
    features yield one target per Target; a Target named after an
    environment applies to that environment only, and is skipped when that
    environment is a known one left out of the configured list.
    """

    def __init__(self, translator: FilterTranslator, environments: Sequence[str]):
        self.translator = translator
        self.environments = list(environments)

    def build(
        self,
        merged: MergedFeature,
        feature: DestinationFeature,
        variation_ids: Dict[str, str]
    ) -> Tuple[Dict[str, List[TargetingRule]], List[str]]:
        """
        Build targeting rules for every configured environment.

        Args:
            merged: The merged source feature
            feature: The payload that was used to create the feature
            variation_ids: Variation key -> DevCycle variation id

        Returns:
            (environment -> rules, warnings). Environments without rules are omitted.
        """
        warnings: List[str] = []
        rules: Dict[str, List[TargetingRule]] = {}

        if merged.targets is not None:
            sources = [(t, t.audience, t.distribution) for t in merged.targets]
        elif merged.audience is not None:
            sources = [(None, merged.audience, merged.distribution)]
        else:
            return rules, warnings

        configured = {normalize_key(env): env for env in self.environments}
        known = {normalize_key(env) for env in DEFAULT_ENVIRONMENTS} | set(configured)

        for target, audience, distribution in sources:
            if audience.filters.is_empty:
                continue

            bound_key = normalize_key(target.name) if target is not None else ""
            if bound_key in known and bound_key not in configured:
                message = f"Target '{target.name}' is bound to an environment that is not configured; target skipped"
                logger.warning(f"{merged.feature_name}: {message}")
                warnings.append(message)
                continue

            rule = self._build_rule(merged, feature, variation_ids, target, audience, distribution)
            if rule is None:
                message = f"Audience '{audience.name}' has no translatable filters; target skipped"
                logger.warning(f"{merged.feature_name}: {message}")
                warnings.append(message)
                continue

            bound_env = configured.get(bound_key)
            for env in ([bound_env] if bound_env else self.environments):
                rules.setdefault(env, []).append(rule)

        return rules, warnings

    def _build_rule(
        self,
        merged: MergedFeature,
        feature: DestinationFeature,
        variation_ids: Dict[str, str],
        target: Optional[Target],
        audience: Audience,
        distribution: List[DistributionEntry]
    ) -> Optional[TargetingRule]:
        translated = self.translator.translate_audience(audience)
        # Never widen a rule to everyone because all of its filters were dropped
        if not translated["filters"]["filters"]:
            return None

        return TargetingRule(
            name=target.name if target is not None and target.name else None,
            audience=translated,
            distribution=self.build_distribution(merged, feature, variation_ids, distribution),
        )

    def build_distribution(
        self,
        merged: MergedFeature,
        feature: DestinationFeature,
        variation_ids: Dict[str, str],
        entries: List[DistributionEntry]
    ) -> List[Dict[str, object]]:
        """
        Resolve a distribution into ``{_variation, percentage}`` entries.

        Falls back to per-variation weights from the export, then to 100% on
        the last variation.
        """
        weights: Dict[str, float] = {}
        for entry in entries:
            key = normalize_key(entry.name)
            weights[key] = weights.get(key, 0.0) + entry.percentage

        if not weights:
            for variation in merged.variations:
                if variation.distribution > 0:
                    key = normalize_key(variation.name)
                    weights[key] = weights.get(key, 0.0) + variation.distribution

        if not weights:
            if not feature.variations:
                raise TargetingError(f"Feature {feature.key} has no variations to serve")
            weights[feature.variations[-1].key] = 1.0

        weights = normalize_distribution(weights)

        result = []
        for key, percentage in weights.items():
            if feature.get_variation(key) is None:
                raise TargetingError(f"Distribution references unknown variation '{key}'")
            variation_id = variation_ids.get(key)
            if not variation_id:
                raise TargetingError(f"No variation id returned for '{key}'")
            result.append({"_variation": variation_id, "percentage": percentage})
        return result
