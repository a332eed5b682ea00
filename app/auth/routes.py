# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes cover:
# - Current user info and token verification
# - GitHub OAuth: authorize URL, code exchange, and connecting a repository
# =============================================================================

import logging
import secrets

from fastapi import APIRouter, BackgroundTasks, Depends

from app.auth.dependencies import get_current_user
from app.auth.models import (
    AuthUser,
    GitHubAuthUrlResponse,
    GitHubCallbackRequest,
    GitHubCallbackResponse,
    UserResponse,
)
from app.config import settings
from app.exceptions import ConfigurationError, GitHubOAuthError
from app.rate_limit import limit_auth
from core.models.billing import LimitType
from core.models.project import ConnectRepoRequest, sanitize_project
from core.services.billing_service import BillingService
from core.services.github_service import GitHubService
from core.services.project_service import ProjectService
from lib.analytics import AnalyticsEvent, track_server_event
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Returns:
        UserResponse: User profile with id, email, display_name, etc.

    Raises:
        401: If not authenticated
    """
    try:
        profile = SupabaseClient.fetch_user_profile(user.id)
        if profile:
            return UserResponse(**profile)
    except SupabaseClientError as e:
        logger.warning(f"Could not fetch user profile: {e}")

    # User exists in auth but not yet in public.users
    return UserResponse(id=user.id, email=user.email)


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Returns:
        dict: Confirmation with user_id

    Raises:
        401: If token is invalid or expired
    """
    return {
        "valid": True,
        "user_id": str(user.id),
        "email": user.email
    }


# =============================================================================
# GitHub OAuth
# =============================================================================

@router.get(
    "/github/url",
    response_model=GitHubAuthUrlResponse,
    dependencies=[Depends(limit_auth)],
)
async def get_github_auth_url() -> GitHubAuthUrlResponse:
    """
    Build the GitHub authorize URL (scope: repo).

    Public endpoint, rate limited per client IP. The returned state should
    be stored by the client and compared when GitHub redirects back.
    """
    if not settings.GITHUB_CLIENT_ID:
        raise ConfigurationError("GitHub client ID not configured", "GITHUB_CLIENT_ID")

    state = secrets.token_urlsafe(16)
    return GitHubAuthUrlResponse(
        auth_url=GitHubService.build_authorize_url(state),
        state=state,
    )


@router.post("/github/callback", response_model=GitHubCallbackResponse)
async def github_callback(
    request: GitHubCallbackRequest,
    user: AuthUser = Depends(get_current_user),
) -> GitHubCallbackResponse:
    """
    Exchange a GitHub authorization code for a token.

    Returns the token, the GitHub account, and up to 100 repositories the
    user can pick from.
    """
    with GitHubService() as github:
        token = github.exchange_code(request.code)
        github_user = github.fetch_user(token)
        repositories = github.fetch_user_repos(token)

    if not repositories:
        raise GitHubOAuthError("No repositories found")

    logger.info(f"User {user.id} authorized GitHub account {github_user.login}")
    return GitHubCallbackResponse(
        github_token=token,
        github_user=github_user,
        repositories=repositories,
    )


@router.post("/github/connect")
async def connect_repository(
    request: ConnectRepoRequest,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
):
    """
    Connect a GitHub repository as a new project.

    Uses the requested branch, or the repository's default branch.

    Raises:
        403: If the plan's repository limit is reached
    """
    BillingService.enforce_limit(user.id, LimitType.REPOS)

    with GitHubService() as github:
        repo_info = github.fetch_repo_info(request.repo_name, request.github_token)

    project = ProjectService.create_project(
        user_id=user.id,
        repo_name=request.repo_name,
        installation_id=str(repo_info.id) if repo_info.id is not None else None,
        github_token=request.github_token,
        branch=request.branch or repo_info.default_branch,
    )

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.PROJECT_CONNECTED,
        {"project_id": project["id"], "repo_name": request.repo_name},
        str(user.id),
    )

    return {"success": True, "project": sanitize_project(project)}
