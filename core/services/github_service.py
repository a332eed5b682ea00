# =============================================================================
# core/services/github_service.py - GitHub REST API Client
# =============================================================================
# Reads repository metadata, branches and file trees from the GitHub REST
# API, and performs the OAuth code exchange used to connect repositories.
#
# Every call uses the user's OAuth token. Non-2xx responses and network
# failures raise ExternalServiceError("GitHub", ...) carrying GitHub's own
# message where it sends one.
#
# Usage:
#   with GitHubService() as github:
#       tree = github.fetch_repo_tree("octocat/hello-world", token)
#       structure = GitHubService.normalize_repo_structure(tree)
# =============================================================================

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlencode

import httpx

from app.config import settings
from app.exceptions import ExternalServiceError, GitHubOAuthError
from core.models.repo import (
    BranchInfo,
    GitHubRepository,
    GitHubUser,
    RepoFile,
    RepoInfo,
)

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
GITHUB_OAUTH_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_OAUTH_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_OAUTH_SCOPE = "repo"

USER_AGENT = "ArchAssistant/1.0"

# Results per page for list endpoints (GitHub's maximum)
PER_PAGE = 100

# -----------------------------------------------------------------------------
# Paths left out of normalized trees
# -----------------------------------------------------------------------------
# Dependencies, build output, caches, lockfiles, local env files and binary
# assets say nothing about the architecture and bloat the LLM prompt.
SKIP_PATTERNS = [
    re.compile(pattern)
    for pattern in (
        r"node_modules",
        r"\.git/",
        r"\.next/",
        r"dist/",
        r"build/",
        r"coverage/",
        r"\.cache/",
        r"\.turbo/",
        r"\.vercel/",
        r"\.DS_Store",
        r"\.env\.local",
        r"\.env\..*\.local",
        r"package-lock\.json",
        r"pnpm-lock\.yaml",
        r"yarn\.lock",
        r"\.ico$",
        r"\.png$",
        r"\.jpg$",
        r"\.jpeg$",
        r"\.gif$",
        r"\.svg$",
        r"\.woff2?$",
        r"\.ttf$",
        r"\.eot$",
    )
]


def should_skip_path(path: str) -> bool:
    """Check whether a tree path is excluded from normalized structures."""
    return any(pattern.search(path) for pattern in SKIP_PATTERNS)


class GitHubService:
    """
    Thin GitHub REST client over httpx.

    Pass `client` to reuse an existing httpx.Client (tests pass one backed
    by httpx.MockTransport). Otherwise the service owns its client and
    closes it on exit.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        api_base: str = GITHUB_API_BASE,
    ):
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self.api_base = api_base.rstrip("/")

    def __enter__(self) -> GitHubService:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    # -------------------------------------------------------------------------
    # HTTP Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """GitHub's JSON "message", or the HTTP status when there is none."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return f"HTTP {response.status_code}"

    def _get(self, path: str, token: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET an API path and return the decoded JSON body.

        Raises:
            ExternalServiceError: On network failure or non-2xx status
        """
        url = f"{self.api_base}{path}"
        try:
            response = self.client.get(url, headers=self._headers(token), params=params)
        except httpx.HTTPError as e:
            logger.error(f"GitHub request failed: GET {path}: {e}")
            raise ExternalServiceError("GitHub", str(e))

        if response.is_error:
            message = self._error_message(response)
            logger.warning(f"GitHub returned {response.status_code} for GET {path}: {message}")
            raise ExternalServiceError("GitHub", message)

        return response.json()

    # -------------------------------------------------------------------------
    # Repository Data
    # -------------------------------------------------------------------------

    def fetch_repo_info(self, repo_name: str, token: str) -> RepoInfo:
        """
        Fetch repository metadata.

        Args:
            repo_name: Repository full name (owner/repo)
            token: GitHub access token

        Returns:
            RepoInfo including the default branch
        """
        data = self._get(f"/repos/{repo_name}", token)
        return RepoInfo.model_validate(data)

    def fetch_branches(self, repo_name: str, token: str) -> list[BranchInfo]:
        """
        List branches, flagging the repository's default branch.

        Args:
            repo_name: Repository full name (owner/repo)
            token: GitHub access token

        Returns:
            Branches in GitHub's order
        """
        repo_info = self.fetch_repo_info(repo_name, token)
        data = self._get(f"/repos/{repo_name}/branches", token, params={"per_page": PER_PAGE})
        return [
            BranchInfo(name=branch["name"], is_default=branch["name"] == repo_info.default_branch)
            for branch in data
        ]

    def fetch_repo_tree(
        self,
        repo_name: str,
        token: str,
        branch: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch the full recursive git tree for a branch.

        Args:
            repo_name: Repository full name (owner/repo)
            token: GitHub access token
            branch: Branch name (default branch when omitted)

        Returns:
            GitHub tree response ({"sha", "tree": [{"path", "type", "size"?}, ...]})
        """
        target_branch = branch or self.fetch_repo_info(repo_name, token).default_branch
        logger.debug(f"Fetching tree for {repo_name}@{target_branch}")
        return self._get(
            f"/repos/{repo_name}/git/trees/{target_branch}",
            token,
            params={"recursive": "1"},
        )

    @staticmethod
    def normalize_repo_structure(tree_data: dict[str, Any]) -> RepoFile:
        """
        Build a nested RepoFile tree from GitHub's flat tree listing.

        Skipped paths are dropped. Missing parent directories are created
        on demand, so entries may arrive in any order.

        Args:
            tree_data: Response from fetch_repo_tree()

        Returns:
            Root RepoFile (name "", path "", type "dir")
        """
        root = RepoFile(name="", path="", type="dir", children=[])
        dirs: dict[str, RepoFile] = {"": root}

        def ensure_dir(path: str) -> RepoFile:
            if path in dirs:
                return dirs[path]
            parent_path, _, name = path.rpartition("/")
            parent = ensure_dir(parent_path)
            node = RepoFile(name=name, path=path, type="dir", children=[])
            parent.children.append(node)
            dirs[path] = node
            return node

        for item in tree_data.get("tree", []):
            path = item["path"]
            if should_skip_path(path):
                continue

            if item.get("type") == "tree":
                ensure_dir(path)
                continue

            parent_path, _, name = path.rpartition("/")
            parent = ensure_dir(parent_path)
            parent.children.append(
                RepoFile(name=name, path=path, type="file", size=item.get("size"))
            )

        return root

    # -------------------------------------------------------------------------
    # OAuth
    # -------------------------------------------------------------------------

    @staticmethod
    def build_authorize_url(state: str) -> str:
        """URL that sends the user to GitHub to authorize repository access."""
        query = urlencode({
            "client_id": settings.GITHUB_CLIENT_ID,
            "redirect_uri": settings.GITHUB_REDIRECT_URI,
            "scope": GITHUB_OAUTH_SCOPE,
            "state": state,
        })
        return f"{GITHUB_OAUTH_AUTHORIZE_URL}?{query}"

    def exchange_code(self, code: str) -> str:
        """
        Exchange an OAuth authorization code for an access token.

        GitHub answers 200 even for bad codes, with "error" and
        "error_description" in the body.

        Raises:
            GitHubOAuthError: If GitHub rejects the code or returns no token
            ExternalServiceError: On network failure
        """
        try:
            response = self.client.post(
                GITHUB_OAUTH_TOKEN_URL,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
                json={
                    "client_id": settings.GITHUB_CLIENT_ID,
                    "client_secret": settings.GITHUB_CLIENT_SECRET,
                    "code": code,
                },
            )
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"GitHub token exchange failed: {e}")
            raise ExternalServiceError("GitHub", str(e))
        except ValueError:
            raise GitHubOAuthError("Failed to obtain access token")

        if data.get("error"):
            logger.warning(f"GitHub token error: {data['error']} {data.get('error_description')}")
            raise GitHubOAuthError(
                data.get("error_description") or "Failed to obtain access token",
                error_code=data["error"],
            )

        access_token = data.get("access_token")
        if not access_token:
            raise GitHubOAuthError("Failed to obtain access token")

        return access_token

    def fetch_user(self, token: str) -> GitHubUser:
        """Fetch the GitHub account that owns the token."""
        return GitHubUser.model_validate(self._get("/user", token))

    def fetch_user_repos(self, token: str) -> list[GitHubRepository]:
        """List up to 100 repositories the token can access."""
        data = self._get("/user/repos", token, params={"per_page": PER_PAGE})
        return [GitHubRepository.model_validate(repo) for repo in data]
