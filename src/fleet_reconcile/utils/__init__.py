"""Utility functions for fleet reconciliation."""

from .aws_helpers import (
    convert_tags_to_dict,
    extract_cluster_name,
    infra_id_belongs_to,
    matches_pattern,
    get_client,
)
from .logging_config import get_logger
from .result import QueryResult, QueryWarning, run_query

__all__ = [
    "convert_tags_to_dict",
    "extract_cluster_name",
    "infra_id_belongs_to",
    "matches_pattern",
    "get_client",
    "get_logger",
    "QueryResult",
    "QueryWarning",
    "run_query",
]
