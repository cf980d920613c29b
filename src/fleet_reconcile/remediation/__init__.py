"""Mutation handlers keyed by (resource kind, operation)."""

from .aws import AWS_HANDLERS
from .cluster import cluster_handlers

__all__ = ["AWS_HANDLERS", "cluster_handlers"]
