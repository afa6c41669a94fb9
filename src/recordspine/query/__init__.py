"""Predicate/ordering query builder."""

from .builder import OPERATORS, Ordering, Predicate, Query, RowSource, find

__all__ = ["OPERATORS", "Ordering", "Predicate", "Query", "RowSource", "find"]
