import pytest

from flag_migrator.loaders.devcycle_client import ConflictError, ServerError
from flag_migrator.models.destination import CustomDataProperty, FeatureCreateResponse
from flag_migrator.models.migration import MigrationConfig
from flag_migrator.models.source import SourceFeatureRecord


def make_record(feature_name, variables=None, record_id="", **extra):
    """Build a SourceFeatureRecord from export-style keyword data."""
    data = {
        "_id": record_id,
        "featureName": feature_name,
        "variables": variables or [],
    }
    data.update(extra)
    return SourceFeatureRecord.model_validate(data)


def make_audience(*items, operator="and", name="Test audience"):
    return {"name": name, "filters": {"operator": operator, "filters": list(items)}}


class FakeDevCycleClient:
    """In-memory stand-in for DevCycleClient that records every call."""

    def __init__(self, existing_properties=None):
        self.existing_properties = [
            CustomDataProperty(key=k.lower(), property_key=k, name=k) for k in (existing_properties or [])
        ]
        self.created_properties = []
        self.created_features = []
        self.configurations = []
        # feature key -> list of exceptions to raise before succeeding
        self.feature_failures = {}

    def list_custom_properties(self, project):
        return list(self.existing_properties)

    def create_custom_property(self, project, key, data_type):
        prop = CustomDataProperty(key=key.lower(), property_key=key, name=key, type=data_type or "String")
        self.created_properties.append((key, data_type))
        return prop

    def create_feature(self, project, feature):
        self.created_features.append(feature)
        failures = self.feature_failures.get(feature.key)
        if failures:
            raise failures.pop(0)
        return FeatureCreateResponse(
            id=f"feat-{feature.key}",
            key=feature.key,
            variations=[{"_id": f"var-{v.key}", "key": v.key} for v in feature.variations],
        )

    def update_feature_configuration(self, project, feature_key, environment, targets, status="active"):
        self.configurations.append({
            "project": project,
            "feature_key": feature_key,
            "environment": environment,
            "targets": [t.to_dict() for t in targets],
            "status": status,
        })


def conflict():
    return ConflictError("Failed to create feature", 409, '{"message": "exists"}')


def server_error():
    return ServerError("Failed to create feature", 503, "Service Unavailable")


@pytest.fixture
def fake_client():
    return FakeDevCycleClient()


@pytest.fixture
def config():
    return MigrationConfig(retry_delay=0)
