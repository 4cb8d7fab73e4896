"""Command line entry point for the feature flag migration."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .extractors.export_file import ExportFileError, ExportFileExtractor
from .loaders.auth import AuthenticationError, fetch_oauth_token
from .loaders.devcycle_client import DevCycleClient
from .models.migration import (
    MigrationConfig,
    UnknownSubtypePolicy,
    VariableMergePolicy,
)
from .orchestrator import ImportOrchestrator
from .services.filter_translator import collect_all_requirements

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Feature Flag Migration Tool - Import Taplytics feature flags into DevCycle"
    )
    parser.add_argument("export_file", help="Path to the Taplytics export JSON file")
    parser.add_argument("--project", help="DevCycle project key (overrides dvc_project in the export)")
    parser.add_argument("--config", help="Path to a JSON migration config file")
    parser.add_argument(
        "--environment", "-e",
        action="append",
        dest="environments",
        help="Environment to create targeting rules in (repeatable; default: development, staging, production)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Simulate without changes")
    parser.add_argument("--report", help="Write a JSON run report to this path")
    parser.add_argument("--stop-on-error", action="store_true", help="Stop at the first failed feature")
    parser.add_argument(
        "--passthrough-unknown-subtypes",
        action="store_true",
        help="Copy filters with unrecognized sub-types instead of dropping them",
    )
    parser.add_argument(
        "--append-duplicate-variables",
        action="store_true",
        help="Keep same-named variables from merged records instead of deduplicating",
    )
    parser.add_argument("--retry-delay", type=float, help="Seconds to wait before retrying a 5xx feature creation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def build_config(args: argparse.Namespace) -> MigrationConfig:
    """Load the config file, if any, and apply command line overrides."""
    config = MigrationConfig.from_json_file(args.config) if args.config else MigrationConfig()

    if args.project:
        config.target_project = args.project
    if args.environments:
        config.environments = args.environments
    if args.dry_run:
        config.dry_run = True
    if args.report:
        config.report_path = args.report
    if args.stop_on_error:
        config.continue_on_error = False
    if args.passthrough_unknown_subtypes:
        config.unknown_subtype_policy = UnknownSubtypePolicy.PASSTHROUGH
    if args.append_duplicate_variables:
        config.variable_merge_policy = VariableMergePolicy.APPEND
    if args.retry_delay is not None:
        config.retry_delay = args.retry_delay

    return config


def resolve_token(config: MigrationConfig, environ=os.environ) -> str:
    """
    Get a Management API token from the environment.

    Uses DEVCYCLE_API_TOKEN when set, otherwise exchanges DEVCYCLE_CLIENT_ID
    and DEVCYCLE_CLIENT_SECRET for one.
    """
    token = environ.get("DEVCYCLE_API_TOKEN")
    if token:
        return token

    client_id = environ.get("DEVCYCLE_CLIENT_ID")
    client_secret = environ.get("DEVCYCLE_CLIENT_SECRET")
    if client_id and client_secret:
        return fetch_oauth_token(
            client_id,
            client_secret,
            auth_url=config.auth_url,
            audience=config.auth_audience,
            timeout=config.request_timeout,
        )

    raise AuthenticationError(
        "Set DEVCYCLE_API_TOKEN, or DEVCYCLE_CLIENT_ID and DEVCYCLE_CLIENT_SECRET"
    )


def run(args: argparse.Namespace) -> int:
    """Run an import and return the process exit code."""
    try:
        config = build_config(args)
        export = ExportFileExtractor(args.export_file).extract()
    except (ExportFileError, OSError, ValueError) as e:
        logger.error(str(e))
        return EXIT_FAILURE

    project = config.target_project or export.dvc_project
    if not project:
        logger.error("A DevCycle project is required: set dvc_project in the export or pass --project")
        return EXIT_FAILURE

    if config.dry_run:
        token = ""
    else:
        try:
            token = resolve_token(config)
        except AuthenticationError as e:
            logger.error(f"Authentication failed: {e}")
            return EXIT_FAILURE

    client = DevCycleClient(
        token=token,
        base_url=config.api_url,
        timeout=config.request_timeout,
        dry_run=config.dry_run,
    )

    logger.info(f"Source project: {export.tl_project}")
    logger.info(f"DevCycle project: {project}")
    filters = [f for record in export.records for f in record.audience_filters()]
    logger.info(f"CustomData properties in export: {collect_all_requirements(filters)}")

    orchestrator = ImportOrchestrator(client, config)
    result = orchestrator.run_export(export)

    print("\n" + "=" * 60)
    print("IMPORT COMPLETE" if result.succeeded else "IMPORT FINISHED WITH ERRORS")
    print("=" * 60)
    summary = result.summary()
    print(f"Status: {result.status.value}")
    print(f"Features: {summary['total']}")
    print(f"Created: {summary['created']}")
    print(f"Already existed: {summary['conflict']}")
    print(f"Skipped: {summary['skipped']}")
    print(f"Failed: {summary['failed']}")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")

    return EXIT_OK if result.succeeded else EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
