# =============================================================================
# core/prompts/ - LLM Prompts
# =============================================================================
# This package contains the prompts sent to the LLM provider:
# - architecture.py: Repository tree -> architecture.md
# - task.py: Architecture + feature request -> implementation plan
#
# Each module exposes a system prompt constant and a build_*_prompt()
# function for the user message.
# =============================================================================

from core.prompts.architecture import (
    ARCHITECTURE_SYSTEM_PROMPT,
    build_architecture_prompt,
)
from core.prompts.task import (
    TASK_SYSTEM_PROMPT,
    build_task_prompt,
)

__all__ = [
    "ARCHITECTURE_SYSTEM_PROMPT",
    "build_architecture_prompt",
    "TASK_SYSTEM_PROMPT",
    "build_task_prompt",
]
