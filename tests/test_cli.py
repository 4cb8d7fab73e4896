import json
from pathlib import Path

import pytest

from flag_migrator.cli import build_config, build_parser, main, resolve_token
from flag_migrator.loaders.auth import AuthenticationError
from flag_migrator.models.migration import (
    MigrationConfig,
    UnknownSubtypePolicy,
    VariableMergePolicy,
)

SAMPLE_EXPORT = str(Path(__file__).parent.parent / "examples" / "taplytics_export.json")
SAMPLE_CONFIG = str(Path(__file__).parent.parent / "examples" / "config.json")

TOKEN_VARS = ("DEVCYCLE_API_TOKEN", "DEVCYCLE_CLIENT_ID", "DEVCYCLE_CLIENT_SECRET")


@pytest.fixture
def no_credentials(monkeypatch):
    for name in TOKEN_VARS:
        monkeypatch.delenv(name, raising=False)


def test_dry_run_sample_export(tmp_path, no_credentials):
    report = tmp_path / "report.json"

    exit_code = main([SAMPLE_EXPORT, "--dry-run", "--report", str(report)])

    assert exit_code == 0
    data = json.loads(report.read_text())
    assert data["dry_run"] is True
    assert data["target_project"] == "mobile-app"
    assert data["summary"]["created"] == 3
    assert sorted(data["custom_properties_created"]) == ["ordersPlaced", "plan"]
    statuses = {f["feature_key"]: f["environments_configured"] for f in data["features"]}
    assert statuses["subscription_v2_text_overwrite"] == ["production"]
    assert statuses["discovery_new-order-type-ui_ios"] == ["development", "staging", "production"]


def test_missing_source_project_exits_nonzero(tmp_path, no_credentials):
    path = tmp_path / "export.json"
    path.write_text(json.dumps({"dvc_project": "app", "records": []}))

    assert main([str(path), "--dry-run"]) == 1


def test_missing_file_exits_nonzero(tmp_path, no_credentials):
    assert main([str(tmp_path / "missing.json"), "--dry-run"]) == 1


def test_missing_destination_project_exits_nonzero(tmp_path, no_credentials):
    path = tmp_path / "export.json"
    path.write_text(json.dumps({"tl_project": "tl", "records": []}))

    assert main([str(path), "--dry-run"]) == 1


def test_missing_credentials_exits_nonzero(no_credentials):
    assert main([SAMPLE_EXPORT]) == 1


def test_resolve_token_prefers_api_token(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("token exchange should not run")

    monkeypatch.setattr("flag_migrator.cli.fetch_oauth_token", fail)
    environ = {"DEVCYCLE_API_TOKEN": "direct", "DEVCYCLE_CLIENT_ID": "id", "DEVCYCLE_CLIENT_SECRET": "secret"}

    assert resolve_token(MigrationConfig(), environ) == "direct"


def test_resolve_token_exchanges_client_credentials(monkeypatch):
    calls = []

    def fake_fetch(client_id, client_secret, **kwargs):
        calls.append((client_id, client_secret, kwargs["audience"]))
        return "exchanged"

    monkeypatch.setattr("flag_migrator.cli.fetch_oauth_token", fake_fetch)
    environ = {"DEVCYCLE_CLIENT_ID": "id", "DEVCYCLE_CLIENT_SECRET": "secret"}

    assert resolve_token(MigrationConfig(), environ) == "exchanged"
    assert calls == [("id", "secret", "https://api.devcycle.com/")]


def test_resolve_token_without_credentials():
    with pytest.raises(AuthenticationError):
        resolve_token(MigrationConfig(), {"DEVCYCLE_CLIENT_ID": "id"})


def test_build_config_defaults():
    config = build_config(build_parser().parse_args(["export.json"]))

    assert config.environments == ["development", "staging", "production"]
    assert config.continue_on_error is True
    assert config.dry_run is False
    assert config.retry_delay == 3.0


def test_build_config_overrides():
    args = build_parser().parse_args([
        "export.json",
        "--config", SAMPLE_CONFIG,
        "--project", "other",
        "-e", "production",
        "--stop-on-error",
        "--passthrough-unknown-subtypes",
        "--append-duplicate-variables",
        "--retry-delay", "0.5",
    ])

    config = build_config(args)

    assert config.target_project == "other"
    assert config.environments == ["production"]
    assert config.continue_on_error is False
    assert config.unknown_subtype_policy == UnknownSubtypePolicy.PASSTHROUGH
    assert config.variable_merge_policy == VariableMergePolicy.APPEND
    assert config.retry_delay == 0.5


def test_unwritable_report_exits_nonzero(tmp_path, no_credentials):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    assert main([SAMPLE_EXPORT, "--dry-run", "--report", str(blocker / "report.json")]) == 1
