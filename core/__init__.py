# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the business logic behind the API:
# - models/: Pydantic schemas and the plan catalogue
# - services/: Projects, snapshots, tasks, billing, drift, GitHub and LLM
# - prompts/: Prompt templates for architecture and task generation
#
# Code in this package should NOT import from FastAPI.
# This keeps the logic testable and reusable.
# =============================================================================
