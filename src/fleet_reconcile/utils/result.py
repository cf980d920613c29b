"""Fallible query results.

A query that found nothing and a query that failed both yield no items;
``QueryResult`` keeps the two apart so a region with an API outage is
never reported as a region with zero resources.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class QueryWarning:
    """A discovery slice that could not be read."""

    source: str
    region: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "region": self.region, "message": self.message}


@dataclass
class QueryResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, items: list[T]) -> QueryResult[T]:
        return cls(items=list(items))

    @classmethod
    def failure(cls, error: Exception | str) -> QueryResult[T]:
        return cls(items=[], error=str(error))


def run_query(fn: Callable[..., list[T]], *args: Any, **kwargs: Any) -> QueryResult[T]:
    """Call ``fn`` and wrap its items, or its exception, in a QueryResult."""
    try:
        return QueryResult.success(fn(*args, **kwargs))
    except Exception as e:
        return QueryResult.failure(e)
