# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for request models and plan catalogue:
# - Valid data is accepted and parsed correctly
# - Invalid data raises ValidationError
# - Helpers derive titles, prices and public fields correctly
#
# Run with: pytest tests/test_models.py -v
# =============================================================================

from uuid import uuid4

import pytest
from pydantic import ValidationError

from core.models import (
    PLANS,
    UNLIMITED,
    BranchesRequest,
    ConnectRepoRequest,
    FileChanges,
    LimitType,
    PlanId,
    RepoFile,
    TaskCreateRequest,
    extract_task_title,
    get_plan,
    sanitize_project,
)


# =============================================================================
# Project Model Tests
# =============================================================================

class TestConnectRepoRequest:
    """Tests for ConnectRepoRequest model."""

    def test_valid_request(self):
        request = ConnectRepoRequest(
            repo_name="octocat/hello-world",
            github_token="gho_abc",
            branch="develop",
        )

        assert request.repo_name == "octocat/hello-world"
        assert request.branch == "develop"

    @pytest.mark.parametrize("repo_name", ["hello-world", "octocat/", "/hello", "a/b/c", "octo cat/x"])
    def test_rejects_malformed_repo_name(self, repo_name):
        with pytest.raises(ValidationError):
            ConnectRepoRequest(repo_name=repo_name, github_token="gho_abc")

    def test_accepts_dots_and_underscores(self):
        request = ConnectRepoRequest(repo_name="my_org.io/web-app.v2", github_token="t")
        assert request.repo_name == "my_org.io/web-app.v2"

    def test_requires_token(self):
        with pytest.raises(ValidationError):
            ConnectRepoRequest(repo_name="octocat/hello-world", github_token="")

    def test_blank_branch_means_default(self):
        request = ConnectRepoRequest(repo_name="octocat/hello-world", github_token="t", branch="  ")
        assert request.branch is None

    def test_branches_request_validates_repo_name(self):
        with pytest.raises(ValidationError):
            BranchesRequest(repo_name="nope", github_token="t")


class TestSanitizeProject:

    def test_removes_github_token(self):
        project = {"id": "p1", "repo_name": "octocat/hello-world", "github_token": "gho_secret"}

        result = sanitize_project(project)

        assert "github_token" not in result
        assert result["repo_name"] == "octocat/hello-world"
        # Original row is untouched
        assert project["github_token"] == "gho_secret"


# =============================================================================
# Task Model Tests
# =============================================================================

class TestTaskCreateRequest:
    """Tests for TaskCreateRequest model."""

    def test_trims_description(self):
        request = TaskCreateRequest(
            snapshot_id=uuid4(),
            description="   Add password reset via email   ",
        )
        assert request.description == "Add password reset via email"

    def test_rejects_short_description_after_trim(self):
        with pytest.raises(ValidationError) as exc_info:
            TaskCreateRequest(snapshot_id=uuid4(), description="   short    ")
        assert "at least 10" in str(exc_info.value)

    def test_rejects_long_description(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(snapshot_id=uuid4(), description="x" * 1001)

    def test_accepts_boundary_lengths(self):
        assert TaskCreateRequest(snapshot_id=uuid4(), description="x" * 10)
        assert TaskCreateRequest(snapshot_id=uuid4(), description="x" * 1000)

    def test_rejects_invalid_snapshot_id(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(snapshot_id="not-a-uuid", description="Add password reset")


class TestExtractTaskTitle:

    def test_uses_task_heading(self):
        markdown = "Intro line\n# Task: Add password reset  \n\n## Steps"
        assert extract_task_title(markdown, "ignored description") == "Add password reset"

    def test_heading_without_space(self):
        assert extract_task_title("#Task:Export CSV", "desc") == "Export CSV"

    def test_falls_back_to_description(self):
        description = "d" * 150
        assert extract_task_title("## Plan\nNo heading here", description) == "d" * 100


# =============================================================================
# Repository Tree Tests
# =============================================================================

class TestRepoFile:

    def test_iter_files_walks_nested_dirs(self):
        tree = RepoFile.model_validate({
            "name": "", "path": "", "type": "dir",
            "children": [
                {"name": "a.py", "path": "a.py", "type": "file", "size": 1},
                {"name": "pkg", "path": "pkg", "type": "dir", "children": [
                    {"name": "b.py", "path": "pkg/b.py", "type": "file", "size": 2},
                ]},
            ],
        })

        assert [f.path for f in tree.iter_files()] == ["a.py", "pkg/b.py"]

    def test_to_json_omits_unset_fields(self):
        node = RepoFile(name="a.py", path="a.py", type="file")
        assert node.to_json() == {"name": "a.py", "path": "a.py", "type": "file"}

    def test_file_changes_has_changes(self):
        assert not FileChanges().has_changes
        assert FileChanges(modified=["a.py"]).has_changes


# =============================================================================
# Plan Catalogue Tests
# =============================================================================

class TestPlans:

    def test_free_plan_limits(self):
        free = PLANS[PlanId.FREE]
        assert free.limits.for_type(LimitType.REPOS) == 1
        assert free.limits.for_type(LimitType.SNAPSHOTS) == 3
        assert free.limits.for_type(LimitType.TASKS) == 10

    def test_paid_plans_are_unlimited_for_monthly_usage(self):
        for plan_id in (PlanId.PRO, PlanId.TEAM):
            limits = PLANS[plan_id].limits
            assert limits.snapshots_per_month == UNLIMITED
            assert limits.tasks_per_month == UNLIMITED
        assert PLANS[PlanId.PRO].limits.repos == 5
        assert PLANS[PlanId.TEAM].limits.repos == UNLIMITED

    def test_price_display(self):
        assert PLANS[PlanId.FREE].price_display == "Free"
        assert PLANS[PlanId.PRO].price_display == "€19/mo"
        assert PLANS[PlanId.TEAM].price_display == "€49/mo"

    def test_public_dict_is_json_ready(self):
        data = PLANS[PlanId.PRO].to_public_dict()
        assert data["id"] == "pro"
        assert data["currency"] == "eur"
        assert data["price_display"] == "€19/mo"

    def test_team_includes_pro_features(self):
        team_features = PLANS[PlanId.TEAM].features
        assert all(feature in team_features for feature in PLANS[PlanId.PRO].features)

    @pytest.mark.parametrize("plan_id", [None, "", "enterprise"])
    def test_unknown_plan_falls_back_to_free(self, plan_id):
        assert get_plan(plan_id).id == PlanId.FREE
