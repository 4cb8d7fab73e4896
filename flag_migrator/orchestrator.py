"""Import orchestrator - coordinates the complete migration process."""

import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests

from .models.destination import FeatureCreateResponse, DestinationFeature
from .models.migration import (
    FeatureImportResult,
    FeatureImportStatus,
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
    utcnow,
)
from .models.record import MergedFeature
from .models.source import ImportFile
from .services.feature_builder import FeatureBuilder
from .services.filter_translator import FilterTranslator, collect_all_requirements
from .services.merger import RecordMerger
from .services.targeting import TargetingBuilder, TargetingError
from .loaders.devcycle_client import (
    ConflictError,
    DevCycleAPIError,
    DevCycleClient,
    ServerError,
)

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (DevCycleAPIError, requests.RequestException)


class ImportOrchestrator:
    """
    Orchestrates an import into DevCycle.

    Stages, in order:
    - Discover custom data properties referenced by audience filters
    - Create the ones missing from the DevCycle project
    - Create each feature, then its targeting rules per environment
    - Report per-feature results
    """

    def __init__(self, client: DevCycleClient, config: Optional[MigrationConfig] = None):
        """
        Initialize the orchestrator.

        Args:
            client: Authenticated DevCycle client
            config: Migration configuration
        """
        self.client = client
        self.config = config or MigrationConfig()
        self.merger = RecordMerger(self.config.variable_merge_policy)
        self.translator = FilterTranslator(
            allowed_subtypes=self.config.allowed_subtypes,
            unknown_subtype_policy=self.config.unknown_subtype_policy,
        )
        self.builder = FeatureBuilder(source_label=self.config.source_label)
        self.targeting = TargetingBuilder(self.translator, self.config.environments)

        self.run: Optional[MigrationRun] = None

    def run_export(self, export: ImportFile) -> MigrationRun:
        """Merge the records of an export and import them."""
        project = self.config.target_project or export.dvc_project
        merged = self.merger.merge(export.records)
        return self.run_import(merged, project, source_project=export.tl_project)

    def run_import(
        self,
        merged_features: Dict[str, MergedFeature],
        project: str,
        source_project: str = ""
    ) -> MigrationRun:
        """
        Run the complete import.

        Returns:
            MigrationRun with per-feature results
        """
        if not project:
            raise ValueError("A DevCycle project key is required")

        self.run = MigrationRun(
            source_project=source_project,
            target_project=project,
            dry_run=self.config.dry_run,
        )
        self.run.started_at = utcnow()

        try:
            logger.info("=== STAGE 1: CUSTOM DATA DISCOVERY ===")
            self.run.status = MigrationStatus.DISCOVERING
            required = self.discover_custom_data(merged_features)
            self.run.required_custom_properties = dict(required)

            logger.info("=== STAGE 2: CUSTOM PROPERTY RECONCILIATION ===")
            self.run.status = MigrationStatus.RECONCILING
            created, existing = self.reconcile_custom_properties(project, required)
            self.run.custom_properties_created = created
            self.run.custom_properties_existing = existing

            logger.info(f"=== STAGE 3: IMPORTING {len(merged_features)} FEATURES ===")
            self.run.status = MigrationStatus.IMPORTING
            self._import_features(project, merged_features)

            if self.run.status == MigrationStatus.IMPORTING:
                self.run.status = MigrationStatus.COMPLETED
                logger.info("=== IMPORT COMPLETED ===")

        except REMOTE_ERRORS as e:
            logger.error(f"Import failed during {self.run.status.value}: {e}")
            self.run.errors.append({
                "stage": self.run.status.value,
                "error": str(e),
                "timestamp": utcnow().isoformat(),
            })
            self.run.status = MigrationStatus.FAILED

        finally:
            self.run.completed_at = utcnow()
            self._log_summary()
            if self.config.report_path:
                self._save_report(self.config.report_path)

        return self.run

    def discover_custom_data(self, merged_features: Dict[str, MergedFeature]) -> Dict[str, str]:
        """Union of custom data requirements across every feature's filters."""
        filters = []
        for feature in merged_features.values():
            filters.extend(feature.targeting_filters())
        required = collect_all_requirements(filters)
        logger.info(f"Custom data properties referenced: {required}")
        return required

    def reconcile_custom_properties(
        self,
        project: str,
        required: Dict[str, str]
    ) -> Tuple[List[str], List[str]]:
        """
        Create required custom properties that do not exist yet.

        Returns:
            (created keys, already existing keys)
        """
        if not required:
            return [], []

        existing_props = self.client.list_custom_properties(project)
        existing_keys = set()
        for prop in existing_props:
            existing_keys.add(prop.property_key)
            existing_keys.add(prop.key)

        created = []
        existing = []
        for key, data_type in required.items():
            if not key:
                continue
            if key in existing_keys:
                logger.info(f"Found existing custom property - skipping: {key}")
                existing.append(key)
                continue

            prop = self.client.create_custom_property(project, key, data_type)
            logger.info(f"Created custom property: {key} ({prop.type})")
            created.append(key)

        return created, existing

    def _import_features(self, project: str, merged_features: Dict[str, MergedFeature]) -> None:
        for name in sorted(merged_features):
            result = self.import_feature(project, merged_features[name])
            self.run.features.append(result)

            if result.status == FeatureImportStatus.FAILED and not self.config.continue_on_error:
                logger.error(f"Stopping import after failure of {name}")
                self.run.errors.append({
                    "stage": MigrationStatus.IMPORTING.value,
                    "error": f"Stopped after feature {name} failed: {result.error}",
                    "timestamp": utcnow().isoformat(),
                })
                self.run.status = MigrationStatus.FAILED
                return

    def import_feature(self, project: str, merged: MergedFeature) -> FeatureImportResult:
        """Create one feature and its targeting rules."""
        result = FeatureImportResult(feature_name=merged.feature_name)
        result.started_at = utcnow()

        try:
            feature = self.builder.build(merged)
            result.feature_key = feature.key

            if not feature.variables:
                result.status = FeatureImportStatus.SKIPPED
                result.warnings.append("No variables to import")
                logger.info(f"No variables to import for feature: {merged.feature_name}")
                return result

            try:
                created = self._create_feature_with_retry(project, feature, result)
            except ConflictError:
                result.status = FeatureImportStatus.CONFLICT
                logger.info(f"Feature already exists, skipping creation: {merged.feature_name}")
                return result

            result.feature_id = created.id

            if merged.has_targeting:
                self._configure_targeting(project, merged, feature, created, result)

            result.status = FeatureImportStatus.CREATED
            logger.info(f"Imported feature: {merged.feature_name}")

        except (TargetingError, *REMOTE_ERRORS) as e:
            result.status = FeatureImportStatus.FAILED
            result.error = str(e)
            result.error_code = getattr(e, "status_code", None)
            logger.error(f"Failed to import feature {merged.feature_name}: {e}")

        finally:
            result.completed_at = utcnow()

        return result

    def _create_feature_with_retry(
        self,
        project: str,
        feature: DestinationFeature,
        result: FeatureImportResult
    ) -> FeatureCreateResponse:
        """Create a feature, retrying once after a 5xx response."""
        try:
            return self.client.create_feature(project, feature)
        except ServerError as e:
            logger.warning(f"{e}; retrying feature creation in {self.config.retry_delay}s")
            time.sleep(self.config.retry_delay)
            result.retry_count += 1
            return self.client.create_feature(project, feature)

    def _configure_targeting(
        self,
        project: str,
        merged: MergedFeature,
        feature: DestinationFeature,
        created: FeatureCreateResponse,
        result: FeatureImportResult
    ) -> None:
        rules, warnings = self.targeting.build(merged, feature, created.variation_ids)
        result.warnings.extend(warnings)

        for environment in self.config.environments:
            targets = rules.get(environment)
            if not targets:
                continue
            self.client.update_feature_configuration(project, feature.key, environment, targets)
            result.environments_configured.append(environment)
            logger.info(f"Configured {feature.key} targeting in {environment}")

    def _log_summary(self) -> None:
        summary = self.run.summary()
        logger.info(
            f"Import {self.run.status.value}: {summary['created']} created, "
            f"{summary['conflict']} already existed, {summary['skipped']} skipped, "
            f"{summary['failed']} failed"
        )
        for feature in self.run.failed_features:
            logger.error(f"  {feature.feature_name}: {feature.error}")

    def _save_report(self, path: str) -> None:
        """Save the run report."""
        filepath = Path(path)
        report = self.run.to_dict()
        report["config"] = self.config.to_dict()
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w") as f:
                json.dump(report, f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Failed to save import report to {filepath}: {e}")
            self.run.errors.append({
                "stage": "report",
                "error": str(e),
                "timestamp": utcnow().isoformat(),
            })
            return
        logger.info(f"Saved import report to {filepath}")
