# =============================================================================
# core/models/drift.py - Drift Detection Schemas
# =============================================================================
# Drift compares the repository as it is now against the baseline captured
# by the latest snapshot.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class DriftStatus(str, Enum):
    """
    Lifecycle of a drift_results row.

    Flow: pending -> completed | error
    """
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


class FileChanges(BaseModel):
    """Paths added, removed or modified between two repository trees."""

    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)
