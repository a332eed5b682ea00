# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data and the GitHub OAuth flow.
# =============================================================================

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from core.models.repo import GitHubRepository, GitHubUser


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    This is the minimal user info available from the token itself,
    without querying the database.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None


class UserResponse(BaseModel):
    """
    Full user response for API endpoints.

    Includes additional profile data from the public.users table.
    """
    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# -----------------------------------------------------------------------------
# GitHub OAuth
# -----------------------------------------------------------------------------

class GitHubAuthUrlResponse(BaseModel):
    """Where to send the user to authorize repository access."""
    auth_url: str
    state: str


class GitHubCallbackRequest(BaseModel):
    """Body for POST /auth/github/callback."""
    code: str = Field(..., min_length=1, description="Authorization code from GitHub")
    state: Optional[str] = Field(default=None, description="State echoed back by GitHub")


class GitHubCallbackResponse(BaseModel):
    """Token and repositories returned after a successful OAuth exchange."""
    success: bool = True
    github_token: str
    github_user: GitHubUser
    repositories: list[GitHubRepository]
