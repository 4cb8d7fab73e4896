"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime, timezone
import json
import uuid


DEFAULT_ENVIRONMENTS = ["development", "staging", "production"]

DEFAULT_ALLOWED_SUBTYPES = [
    "appVersion",
    "platformVersion",
    "customData",
    "platform",
    "country",
    "email",
    "user_id",
    "deviceModel",
    "ip",
    "all",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    DISCOVERING = "discovering"
    RECONCILING = "reconciling"
    IMPORTING = "importing"
    COMPLETED = "completed"
    FAILED = "failed"


class FeatureImportStatus(str, Enum):
    """Outcome of importing a single feature."""
    PENDING = "pending"
    CREATED = "created"
    CONFLICT = "conflict"  # Already existed in DevCycle
    SKIPPED = "skipped"
    FAILED = "failed"


class UnknownSubtypePolicy(str, Enum):
    DROP = "drop"
    PASSTHROUGH = "passthrough"


class VariableMergePolicy(str, Enum):
    DEDUPE = "dedupe"  # First variable per normalized key wins
    APPEND = "append"


@dataclass
class FeatureImportResult:
    """Result of importing one merged feature."""
    feature_name: str
    feature_key: str = ""
    status: FeatureImportStatus = FeatureImportStatus.PENDING
    feature_id: Optional[str] = None
    environments_configured: List[str] = field(default_factory=list)
    retry_count: int = 0
    error: Optional[str] = None
    error_code: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status in (
            FeatureImportStatus.CREATED,
            FeatureImportStatus.CONFLICT,
            FeatureImportStatus.SKIPPED,
        )

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "feature_name": self.feature_name,
            "feature_key": self.feature_key,
            "status": self.status.value,
            "feature_id": self.feature_id,
            "environments_configured": self.environments_configured,
            "retry_count": self.retry_count,
            "error": self.error,
            "error_code": self.error_code,
            "warnings": self.warnings,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class MigrationRun:
    """A complete import run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source_project: str = ""
    target_project: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    dry_run: bool = False

    # Timing
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Custom data properties
    required_custom_properties: Dict[str, str] = field(default_factory=dict)
    custom_properties_created: List[str] = field(default_factory=list)
    custom_properties_existing: List[str] = field(default_factory=list)

    features: List[FeatureImportResult] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "source_project": self.source_project,
            "target_project": self.target_project,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "required_custom_properties": self.required_custom_properties,
            "custom_properties_created": self.custom_properties_created,
            "custom_properties_existing": self.custom_properties_existing,
            "summary": self.summary(),
            "features": [f.to_dict() for f in self.features],
            "errors": self.errors,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def failed_features(self) -> List[FeatureImportResult]:
        return [f for f in self.features if f.status == FeatureImportStatus.FAILED]

    @property
    def succeeded(self) -> bool:
        """True when the run completed without errors and no feature failed."""
        return (
            self.status == MigrationStatus.COMPLETED
            and not self.errors
            and all(f.success for f in self.features)
        )

    def summary(self) -> Dict[str, int]:
        """Count of features per import status."""
        counts = {status.value: 0 for status in FeatureImportStatus}
        for feature in self.features:
            counts[feature.status.value] += 1
        counts["total"] = len(self.features)
        return counts


@dataclass
class MigrationConfig:
    """Configuration for an import run."""
    source_label: str = "Taplytics"
    target_project: Optional[str] = None  # Overrides the export's dvc_project

    # DevCycle API
    api_url: str = "https://api.devcycle.com/v1"
    auth_url: str = "https://auth.devcycle.com/oauth/token"
    auth_audience: str = "https://api.devcycle.com/"
    request_timeout: float = 10.0

    # Targeting
    environments: List[str] = field(default_factory=lambda: list(DEFAULT_ENVIRONMENTS))
    allowed_subtypes: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_SUBTYPES))
    unknown_subtype_policy: UnknownSubtypePolicy = UnknownSubtypePolicy.DROP

    # Merging
    variable_merge_policy: VariableMergePolicy = VariableMergePolicy.DEDUPE

    # Execution options
    dry_run: bool = False
    continue_on_error: bool = True
    retry_delay: float = 3.0  # Seconds before the single 5xx retry

    # Output
    report_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_label": self.source_label,
            "target_project": self.target_project,
            "api_url": self.api_url,
            "auth_url": self.auth_url,
            "auth_audience": self.auth_audience,
            "request_timeout": self.request_timeout,
            "environments": self.environments,
            "allowed_subtypes": self.allowed_subtypes,
            "unknown_subtype_policy": self.unknown_subtype_policy.value,
            "variable_merge_policy": self.variable_merge_policy.value,
            "dry_run": self.dry_run,
            "continue_on_error": self.continue_on_error,
            "retry_delay": self.retry_delay,
            "report_path": self.report_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        defaults = cls()
        return cls(
            source_label=data.get("source_label", defaults.source_label),
            target_project=data.get("target_project"),
            api_url=data.get("api_url", defaults.api_url),
            auth_url=data.get("auth_url", defaults.auth_url),
            auth_audience=data.get("auth_audience", defaults.auth_audience),
            request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
            environments=list(data.get("environments", defaults.environments)),
            allowed_subtypes=list(data.get("allowed_subtypes", defaults.allowed_subtypes)),
            unknown_subtype_policy=UnknownSubtypePolicy(
                data.get("unknown_subtype_policy", defaults.unknown_subtype_policy.value)
            ),
            variable_merge_policy=VariableMergePolicy(
                data.get("variable_merge_policy", defaults.variable_merge_policy.value)
            ),
            dry_run=data.get("dry_run", False),
            continue_on_error=data.get("continue_on_error", True),
            retry_delay=float(data.get("retry_delay", defaults.retry_delay)),
            report_path=data.get("report_path"),
        )

    @classmethod
    def from_json_file(cls, path: str) -> "MigrationConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))
