# =============================================================================
# tests/test_github_service.py - GitHub Client Tests
# =============================================================================
# Exercises GitHubService against httpx.MockTransport handlers, plus the
# pure tree normalization.
#
# Run with: pytest tests/test_github_service.py -v
# =============================================================================

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.config import settings
from app.exceptions import ExternalServiceError, GitHubOAuthError
from core.services.github_service import GitHubService, should_skip_path


def make_service(handler):
    return GitHubService(client=httpx.Client(transport=httpx.MockTransport(handler)))


REPO = {
    "id": 1296269,
    "name": "hello-world",
    "full_name": "octocat/hello-world",
    "default_branch": "main",
    "description": "My first repo",
    "private": False,
}


# =============================================================================
# Path Filtering
# =============================================================================

@pytest.mark.parametrize("path", [
    "node_modules/react/index.js",
    ".next/cache/x",
    "web/dist/app.js",
    "package-lock.json",
    "assets/logo.png",
    "fonts/inter.woff2",
    ".env.local",
    ".env.production.local",
])
def test_skips_noise_paths(path):
    assert should_skip_path(path)


@pytest.mark.parametrize("path", ["src/main.py", "README.md", "package.json", ".env.example"])
def test_keeps_source_paths(path):
    assert not should_skip_path(path)


# =============================================================================
# Tree Normalization
# =============================================================================

class TestNormalizeRepoStructure:

    def test_builds_nested_tree(self, sample_tree):
        root = GitHubService.normalize_repo_structure(sample_tree)

        assert root.path == ""
        assert [c.name for c in root.children] == ["src", "README.md"]

        src = root.children[0]
        assert src.type == "dir"
        assert [c.path for c in src.children] == ["src/main.py", "src/api"]
        assert src.children[1].children[0].size == 1400

    def test_drops_skipped_paths(self, sample_tree):
        root = GitHubService.normalize_repo_structure(sample_tree)
        paths = [f.path for f in root.iter_files()]
        assert "node_modules/react/index.js" not in paths
        assert "public/logo.png" not in paths

    def test_creates_missing_parent_dirs(self):
        root = GitHubService.normalize_repo_structure({
            "tree": [{"path": "a/b/c.py", "type": "blob", "size": 3}],
        })

        a = root.children[0]
        assert (a.path, a.type) == ("a", "dir")
        assert a.children[0].children[0].path == "a/b/c.py"

    def test_empty_tree(self):
        root = GitHubService.normalize_repo_structure({})
        assert root.children == []


# =============================================================================
# REST Calls
# =============================================================================

class TestRepositoryCalls:

    def test_fetch_repo_info_sends_auth_headers(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["accept"] = request.headers["Accept"]
            seen["agent"] = request.headers["User-Agent"]
            return httpx.Response(200, json=REPO)

        with make_service(handler) as github:
            info = github.fetch_repo_info("octocat/hello-world", "gho_123")

        assert info.default_branch == "main"
        assert info.id == 1296269
        assert seen == {
            "auth": "Bearer gho_123",
            "accept": "application/vnd.github.v3+json",
            "agent": "ArchAssistant/1.0",
        }

    def test_fetch_branches_flags_default(self):
        def handler(request):
            if request.url.path.endswith("/branches"):
                assert request.url.params["per_page"] == "100"
                return httpx.Response(200, json=[{"name": "develop"}, {"name": "main"}])
            return httpx.Response(200, json=REPO)

        branches = make_service(handler).fetch_branches("octocat/hello-world", "t")

        assert [(b.name, b.is_default) for b in branches] == [("develop", False), ("main", True)]

    def test_fetch_tree_resolves_default_branch(self):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            if "/git/trees/" in request.url.path:
                assert request.url.params["recursive"] == "1"
                return httpx.Response(200, json={"sha": "x", "tree": []})
            return httpx.Response(200, json=REPO)

        make_service(handler).fetch_repo_tree("octocat/hello-world", "t")

        assert requested == ["/repos/octocat/hello-world", "/repos/octocat/hello-world/git/trees/main"]

    def test_fetch_tree_uses_given_branch(self):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            return httpx.Response(200, json={"tree": []})

        make_service(handler).fetch_repo_tree("octocat/hello-world", "t", "develop")

        assert requested == ["/repos/octocat/hello-world/git/trees/develop"]

    def test_error_carries_github_message(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        with pytest.raises(ExternalServiceError) as exc_info:
            make_service(handler).fetch_repo_info("octocat/missing", "t")

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "GitHub error: Not Found"

    def test_error_without_body_uses_status(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        with pytest.raises(ExternalServiceError) as exc_info:
            make_service(handler).fetch_repo_info("octocat/hello-world", "t")

        assert "HTTP 500" in exc_info.value.message

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(ExternalServiceError):
            make_service(handler).fetch_repo_info("octocat/hello-world", "t")


# =============================================================================
# OAuth
# =============================================================================

class TestOAuth:

    def test_authorize_url(self, monkeypatch):
        monkeypatch.setattr(settings, "GITHUB_CLIENT_ID", "client-abc")

        url = GitHubService.build_authorize_url("state-xyz")

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://github.com/login/oauth/authorize"
        assert query["client_id"] == ["client-abc"]
        assert query["scope"] == ["repo"]
        assert query["state"] == ["state-xyz"]
        assert query["redirect_uri"] == [settings.GITHUB_REDIRECT_URI]

    def test_exchange_code(self):
        def handler(request):
            assert request.url.host == "github.com"
            return httpx.Response(200, json={"access_token": "gho_new", "token_type": "bearer"})

        assert make_service(handler).exchange_code("code-1") == "gho_new"

    def test_exchange_code_error(self):
        def handler(request):
            return httpx.Response(200, json={
                "error": "bad_verification_code",
                "error_description": "The code passed is incorrect or expired.",
            })

        with pytest.raises(GitHubOAuthError) as exc_info:
            make_service(handler).exchange_code("stale")

        assert exc_info.value.message == "The code passed is incorrect or expired."
        assert exc_info.value.details == {"github_error": "bad_verification_code"}

    def test_exchange_code_without_token(self):
        def handler(request):
            return httpx.Response(200, json={})

        with pytest.raises(GitHubOAuthError, match="Failed to obtain access token"):
            make_service(handler).exchange_code("code")

    def test_fetch_user_and_repos(self):
        def handler(request):
            if request.url.path == "/user":
                return httpx.Response(200, json={"id": 1, "login": "octocat", "name": "The Octocat"})
            return httpx.Response(200, json=[REPO])

        github = make_service(handler)

        assert github.fetch_user("t").login == "octocat"
        repos = github.fetch_user_repos("t")
        assert repos[0].full_name == "octocat/hello-world"
