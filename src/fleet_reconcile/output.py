"""Report rendering to stdout: table, csv or json.

A report is a list of named sections. JSON emits one document keyed by
section name; csv emits one header+rows block per section, separated by
a blank line; table prints each section under its title.
"""

from __future__ import annotations
import csv
import json
import sys
from typing import Any, Iterable, TextIO

from .models import (
    ActionOutcome,
    ClusterRecord,
    IssueTag,
    ResourceEntity,
    describe_issues,
)
from .utils import QueryWarning
from .utils.aws_helpers import extract_cluster_name

FORMATS = ("table", "csv", "json")

STATUS_COLUMNS = [
    "name",
    "region",
    "registration",
    "available",
    "namespace",
    "repo_config",
    "applications",
    "issues",
]
ENTITY_COLUMNS = ["region", "kind", "identity", "name", "state", "cluster", "origin"]
OUTCOME_COLUMNS = [
    "operation",
    "kind",
    "identity",
    "region",
    "status",
    "attempts",
    "error_kind",
    "error",
]
WARNING_COLUMNS = ["source", "region", "message"]


def status_row(record: ClusterRecord, issues: frozenset[IssueTag]) -> dict[str, Any]:
    return {
        "name": record.name,
        "region": record.declared_region or "-",
        "registration": record.registration_status.value,
        "available": record.availability.value,
        "namespace": record.namespace_phase.value,
        "repo_config": "yes" if record.repo_config_present else "no",
        "applications": len(record.applications),
        "issues": describe_issues(issues),
    }


def entity_row(entity: ResourceEntity) -> dict[str, Any]:
    return {
        "region": entity.region,
        "kind": entity.kind.value,
        "identity": entity.identity,
        "name": entity.label,
        "state": entity.lifecycle_state,
        "cluster": extract_cluster_name(entity.tags) or entity.container_ref or "",
        "origin": entity.origin.value if entity.origin else "",
    }


def outcome_row(outcome: ActionOutcome) -> dict[str, Any]:
    action = outcome.action
    return {
        "operation": action.operation.value,
        "kind": action.target_kind.value,
        "identity": action.target_identity,
        "region": action.region,
        "status": outcome.status.value,
        "attempts": outcome.attempts,
        "error_kind": outcome.error_kind or "",
        "error": outcome.error or "",
    }


class Report:
    """Collects sections and renders them in one go."""

    def __init__(self, fmt: str = "table", stream: TextIO | None = None):
        if fmt not in FORMATS:
            raise ValueError(f"Unknown output format {fmt!r}")
        self.fmt = fmt
        self.stream = stream or sys.stdout
        self.sections: list[tuple[str, list[str], list[dict[str, Any]]]] = []
        self.documents: dict[str, Any] = {}

    def add_section(
        self,
        name: str,
        columns: list[str],
        rows: Iterable[dict[str, Any]],
        documents: Iterable[dict[str, Any]] | None = None,
    ) -> None:
        """Add a section; ``documents`` replaces the flat rows in JSON output."""
        rows = list(rows)
        self.sections.append((name, columns, rows))
        self.documents[name] = list(documents) if documents is not None else rows

    def add_warnings(self, warnings: Iterable[QueryWarning]) -> None:
        warnings = list(warnings)
        if warnings:
            self.add_section("warnings", WARNING_COLUMNS, [w.to_dict() for w in warnings])

    def add_summary(self, summary: dict[str, Any]) -> None:
        self.documents["summary"] = summary
        self.sections.append(("summary", list(summary), [summary]))

    def render(self) -> None:
        if self.fmt == "json":
            json.dump(self.documents, self.stream, indent=2, sort_keys=True, default=str)
            self.stream.write("\n")
        elif self.fmt == "csv":
            self._render_csv()
        else:
            self._render_table()

    def _render_csv(self) -> None:
        for index, (_, columns, rows) in enumerate(self.sections):
            if index:
                self.stream.write("\n")
            writer = csv.DictWriter(
                self.stream, fieldnames=columns, extrasaction="ignore", lineterminator="\n"
            )
            writer.writeheader()
            writer.writerows(rows)

    def _render_table(self) -> None:
        for index, (name, columns, rows) in enumerate(self.sections):
            if index:
                self.stream.write("\n")
            self.stream.write(f"== {name} ({len(rows)}) ==\n")
            if not rows:
                self.stream.write("(none)\n")
                continue
            widths = {
                column: max(len(column), *(len(str(row.get(column, ""))) for row in rows))
                for column in columns
            }
            header = "  ".join(column.upper().ljust(widths[column]) for column in columns)
            self.stream.write(header.rstrip() + "\n")
            for row in rows:
                line = "  ".join(
                    str(row.get(column, "")).ljust(widths[column]) for column in columns
                )
                self.stream.write(line.rstrip() + "\n")
