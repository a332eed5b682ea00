# =============================================================================
# core/models/repo.py - GitHub Repository Schemas
# =============================================================================
# These models describe what we read from the GitHub REST API:
# - RepoFile: One node of the normalized repository tree (file or directory)
# - RepoInfo: Repository metadata (default branch, names, description)
# - BranchInfo: A branch plus whether it is the default
# - GitHubUser / GitHubRepository: OAuth callback payloads
#
# RepoFile trees are stored as JSON in snapshots.repo_structure and are the
# input to both architecture generation and drift detection.
# =============================================================================

from __future__ import annotations

from typing import Any, Iterator, Literal

from pydantic import BaseModel, Field


class RepoFile(BaseModel):
    """
    A file or directory in a normalized repository tree.

    Directories carry `children`; files carry `size` (bytes, when GitHub
    reports it). The root node has an empty name and path.

    Example:
        {
            "name": "src",
            "path": "src",
            "type": "dir",
            "children": [
                {"name": "main.py", "path": "src/main.py", "type": "file", "size": 812}
            ]
        }
    """

    name: str = Field(..., description="Last path segment")
    path: str = Field(..., description="Path relative to the repository root")
    type: Literal["file", "dir"] = Field(..., description="Node type")
    size: int | None = Field(default=None, description="File size in bytes")
    children: list[RepoFile] | None = Field(
        default=None,
        description="Child nodes (directories only)"
    )

    def iter_files(self) -> Iterator[RepoFile]:
        """Yield every file node below (and including) this node."""
        if self.type == "file":
            yield self
        for child in self.children or []:
            yield from child.iter_files()

    def to_json(self) -> dict[str, Any]:
        """Serialize for JSONB storage, omitting unset size/children."""
        return self.model_dump(exclude_none=True)


class RepoInfo(BaseModel):
    """Repository metadata from GET /repos/{owner}/{repo}."""

    id: int | None = None
    name: str
    full_name: str
    default_branch: str
    description: str | None = None
    private: bool = False


class BranchInfo(BaseModel):
    """A repository branch."""

    name: str
    is_default: bool = False


class GitHubUser(BaseModel):
    """The authenticated GitHub user returned by GET /user."""

    id: int
    login: str
    name: str | None = None
    email: str | None = None


class GitHubRepository(BaseModel):
    """A repository the GitHub user can access (GET /user/repos)."""

    id: int
    name: str
    full_name: str
    description: str | None = None
    private: bool = False
