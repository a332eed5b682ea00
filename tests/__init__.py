# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the ArchAssistant API:
# - conftest.py / fakes.py: In-memory Supabase double and row factories
# - test_models.py: Unit tests for Pydantic model validation
# - test_drift.py: Structure diffing and drift persistence
# - test_*_service.py: GitHub and LLM clients against mocked transports
# - test_projects.py, test_snapshots.py, test_tasks.py, test_billing.py:
#   Endpoint tests through FastAPI's TestClient
#
# Run tests with: pytest
# =============================================================================
