"""Additive schema synchronization (create missing tables, append missing columns)."""

from .synchronizer import (
    MigrationPlan,
    MigrationResult,
    SchemaSnapshot,
    SchemaSynchronizer,
    dependency_order,
)

__all__ = [
    "MigrationPlan",
    "MigrationResult",
    "SchemaSnapshot",
    "SchemaSynchronizer",
    "dependency_order",
]
