# =============================================================================
# core/models/task.py - Task Schemas
# =============================================================================
# A task is an implementation plan generated from a snapshot's architecture
# document and a short feature description written by the user.
# =============================================================================

import re
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 1000

# Fallback title length when the generated markdown has no "# Task:" heading
TITLE_FALLBACK_LENGTH = 100

TASK_TITLE_PATTERN = re.compile(r"^#\s*Task:\s*(.+)$", re.MULTILINE)


def extract_task_title(markdown: str, description: str) -> str:
    """
    Pull the title out of a generated task document.

    Uses the first "# Task: <title>" line, otherwise the first 100
    characters of the feature description.

    Example:
        extract_task_title("# Task: Add login\\n...", "Add a login page")
        # -> "Add login"
    """
    match = TASK_TITLE_PATTERN.search(markdown)
    if match:
        return match.group(1).strip()
    return description[:TITLE_FALLBACK_LENGTH]


class TaskCreateRequest(BaseModel):
    """
    Body for POST /tasks.

    The description is trimmed before its length is checked.

    Example:
        {
            "snapshot_id": "550e8400-e29b-41d4-a716-446655440000",
            "description": "Add password reset via email"
        }
    """

    snapshot_id: UUID = Field(..., description="Snapshot whose architecture the task builds on")
    description: str = Field(..., description="Feature to implement (10-1000 characters)")

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < DESCRIPTION_MIN_LENGTH:
            raise ValueError(f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters")
        if len(v) > DESCRIPTION_MAX_LENGTH:
            raise ValueError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
        return v


class GeneratedTask(BaseModel):
    """LLM output for a task: the markdown document and its title."""

    title: str
    markdown: str
