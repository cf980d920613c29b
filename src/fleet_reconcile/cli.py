#!/usr/bin/env python3
"""fleet-reconcile command line.

    fleet-reconcile status [--issues-only] [--remediate]
    fleet-reconcile cleanup --pattern GLOB
    fleet-reconcile orphans

Exit codes: 0 success, 1 completed with failures (or blocking issues with
--issues-only), 2 aborted before discovery.
"""

from __future__ import annotations
import argparse
import sys
from typing import Sequence

from .discovery import (
    ClusterRegistry,
    DiscoveryCache,
    DiscoveryScope,
    RepositoryConfig,
    discover,
    discover_orphans,
)
from .models import Config, FatalPrecondition, RunContext
from .output import (
    ENTITY_COLUMNS,
    FORMATS,
    OUTCOME_COLUMNS,
    STATUS_COLUMNS,
    Report,
    entity_row,
    outcome_row,
    status_row,
)
from .preflight import check_aws_access, check_kube_access, check_repository
from .reconcile import (
    compare,
    execute,
    plan,
    plan_cluster_remediation,
    select_strategy,
    tag_origins,
)
from .remediation import AWS_HANDLERS, cluster_handlers
from .utils import get_logger

logger = get_logger()

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_PRECONDITION = 2


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--format", choices=FORMATS, default="table", help="Output format")
    common.add_argument(
        "--region",
        action="append",
        dest="regions",
        default=[],
        help="AWS region to scan (repeatable)",
    )
    common.add_argument("--repo-root", help="GitOps repository checkout")
    common.add_argument(
        "--refresh-cache", action="store_true", help="Ignore cached discovery results"
    )
    common.add_argument(
        "--auto-confirm", action="store_true", help="Apply actions without asking"
    )
    common.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log what would be done without changing anything",
    )
    common.add_argument("--gitops-namespace", help="Namespace holding GitOps applications")

    parser = argparse.ArgumentParser(
        prog="fleet-reconcile",
        description="Compare declared, registered and live cluster state and clean up the gaps",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.required = True

    status_parser = subparsers.add_parser(
        "status", parents=[common], help="Repository vs cluster hub comparison"
    )
    status_parser.add_argument(
        "--issues-only", action="store_true", help="Hide clusters without issues"
    )
    status_parser.add_argument(
        "--remediate", action="store_true", help="Plan and apply hub remediation"
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup", parents=[common], help="Tear down AWS resources matching a pattern"
    )
    cleanup_parser.add_argument(
        "--pattern", required=True, help="Glob matched against id, Name and tags"
    )

    subparsers.add_parser(
        "orphans", parents=[common], help="Inventory every resource in the target regions"
    )
    return parser


def build_context(args: argparse.Namespace) -> RunContext:
    return RunContext.from_config(
        Config(),
        regions=list(args.regions),
        pattern=getattr(args, "pattern", None),
        repo_root=args.repo_root,
        dry_run=args.dry_run,
        auto_confirm=args.auto_confirm,
        refresh_cache=args.refresh_cache,
        gitops_namespace=args.gitops_namespace,
    )


def _cache(context: RunContext) -> DiscoveryCache:
    return DiscoveryCache(context.cache_dir, context.cache_max_age_seconds)


def run_status(args: argparse.Namespace, context: RunContext, report: Report) -> int:
    root = check_repository(context.repo_root)
    check_kube_access(context.api_timeout_seconds)

    repository = RepositoryConfig(root)
    declared = {cluster.name: cluster.region for cluster in repository.clusters()}
    registry = ClusterRegistry.from_context(context)
    snapshot = registry.build_records(declared)
    classified = compare(declared, snapshot.records)

    shown = [(r, i) for r, i in classified if i] if args.issues_only else classified
    report.add_section(
        "clusters",
        STATUS_COLUMNS,
        [status_row(record, issues) for record, issues in shown],
        documents=[
            dict(record.to_dict(), issues=sorted(tag.value for tag in issues))
            for record, issues in shown
        ],
    )
    report.add_warnings(snapshot.warnings)

    exit_code = EXIT_OK
    if not snapshot.registrations_complete:
        exit_code = EXIT_FAILURES
    if args.issues_only and any(
        tag.is_blocking for _, issues in classified for tag in issues
    ):
        exit_code = EXIT_FAILURES

    if args.remediate:
        actions = plan_cluster_remediation(classified)
        execution = execute(
            actions,
            select_strategy(context.auto_confirm),
            context,
            cluster_handlers(registry),
        )
        report.add_section(
            "actions",
            OUTCOME_COLUMNS,
            [outcome_row(o) for o in execution.outcomes],
            documents=[o.to_dict() for o in execution.outcomes],
        )
        report.add_summary(execution.summary())
        if execution.has_failures:
            exit_code = EXIT_FAILURES
    return exit_code


def run_cleanup(args: argparse.Namespace, context: RunContext, report: Report) -> int:
    if not context.pattern.strip("*?"):
        raise FatalPrecondition("cleanup requires a pattern that is not only wildcards")
    regions = context.regions or context.default_regions
    check_aws_access(regions, context.api_timeout_seconds)

    catalog = discover(
        DiscoveryScope(tuple(regions), context.pattern), context, cache=_cache(context)
    )
    entities = list(catalog)
    report.add_section(
        "resources",
        ENTITY_COLUMNS,
        [entity_row(e) for e in entities],
        documents=[e.to_dict() for e in entities],
    )
    report.add_warnings(catalog.warnings)

    actions = plan(entities)
    execution = execute(
        actions, select_strategy(context.auto_confirm), context, AWS_HANDLERS
    )
    report.add_section(
        "actions",
        OUTCOME_COLUMNS,
        [outcome_row(o) for o in execution.outcomes],
        documents=[o.to_dict() for o in execution.outcomes],
    )
    report.add_summary(execution.summary())

    # An incomplete inventory may have left resources behind
    if execution.has_failures or catalog.warnings:
        return EXIT_FAILURES
    return EXIT_OK


def run_orphans(args: argparse.Namespace, context: RunContext, report: Report) -> int:
    root = check_repository(context.repo_root)
    repository = RepositoryConfig(root)
    regions = sorted(
        set(context.regions) | repository.regions() | set(context.default_regions)
    )
    check_aws_access(regions, context.api_timeout_seconds)

    inventory = discover_orphans(
        context.regions, repository, context, cache=_cache(context)
    )
    entities = tag_origins(inventory.known_clusters, inventory.catalog)
    report.add_section(
        "resources",
        ENTITY_COLUMNS,
        [entity_row(e) for e in entities],
        documents=[e.to_dict() for e in entities],
    )
    report.add_warnings(inventory.catalog.warnings)
    report.add_summary(
        {
            "regions": ",".join(inventory.regions),
            "resources": len(inventory.catalog),
            "known_clusters": len(inventory.known_clusters),
            "warnings": len(inventory.catalog.warnings),
        }
    )
    return EXIT_FAILURES if inventory.catalog.warnings else EXIT_OK


COMMANDS = {
    "status": run_status,
    "cleanup": run_cleanup,
    "orphans": run_orphans,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    context = build_context(args)
    logger.append_keys(run_id=context.run_id, mode=args.command)
    logger.info(
        "Starting fleet reconciliation",
        extra={
            "command": args.command,
            "dry_run": context.dry_run,
            "regions": context.regions,
            "repo_root": str(context.repo_root),
        },
    )

    report = Report(args.format)
    try:
        exit_code = COMMANDS[args.command](args, context, report)
    except FatalPrecondition as e:
        logger.error("Preflight failed", extra={"error": str(e)})
        return EXIT_PRECONDITION

    report.render()
    logger.info("Fleet reconciliation finished", extra={"exit_code": exit_code})
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
