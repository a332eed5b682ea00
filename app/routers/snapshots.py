# =============================================================================
# app/routers/snapshots.py - Snapshot Endpoints
# =============================================================================
# Read, delete and export generated architecture snapshots.
# All endpoints require authentication; ownership is checked through the
# snapshot's project.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query

from app.auth import get_current_user, AuthUser
from app.exceptions import NoSnapshotsError, PlanUpgradeRequiredError
from core.models.billing import PlanId
from core.services.billing_service import BillingService
from core.services.project_service import ProjectService
from core.services.snapshot_service import SnapshotService
from lib.analytics import AnalyticsEvent, track_server_event

router = APIRouter()

SnapshotId = Annotated[UUID, Path(description="Snapshot UUID")]


@router.get("")
async def list_snapshots(
    project_id: Annotated[UUID, Query(description="Project whose snapshots to list")],
    user: AuthUser = Depends(get_current_user),
):
    """
    List a project's snapshots, newest first.
    """
    ProjectService.get_project(str(project_id), user_id=user.id)
    return {"snapshots": SnapshotService.list_snapshots(str(project_id))}


@router.get("/project/{project_id}/latest")
async def get_latest_snapshot(
    project_id: Annotated[UUID, Path(description="Project UUID")],
    user: AuthUser = Depends(get_current_user),
):
    """
    Get the most recent snapshot for a project.

    Raises:
        404: NO_SNAPSHOTS if none has been generated yet
    """
    ProjectService.get_project(str(project_id), user_id=user.id)

    snapshot = SnapshotService.get_latest_snapshot(str(project_id))
    if not snapshot:
        raise NoSnapshotsError(str(project_id))

    return {"snapshot": snapshot}


@router.get("/{snapshot_id}")
async def get_snapshot(
    snapshot_id: SnapshotId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
):
    """
    Get a snapshot.
    """
    snapshot, project = SnapshotService.get_snapshot(str(snapshot_id), user.id)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.SNAPSHOT_VIEWED,
        {"snapshot_id": snapshot["id"], "project_id": project["id"]},
        str(user.id),
    )

    return {"snapshot": snapshot}


@router.delete("/{snapshot_id}")
async def delete_snapshot(
    snapshot_id: SnapshotId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
):
    """
    Delete a snapshot.
    """
    SnapshotService.delete_snapshot(str(snapshot_id), user.id)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.SNAPSHOT_DELETED,
        {"snapshot_id": str(snapshot_id)},
        str(user.id),
    )

    return {"success": True, "message": "Snapshot deleted successfully"}


@router.post("/{snapshot_id}/export-pdf")
async def export_snapshot(
    snapshot_id: SnapshotId,
    user: AuthUser = Depends(get_current_user),
):
    """
    Export a snapshot for PDF conversion (paid plans only).

    Returns the markdown; the client renders the PDF.

    Raises:
        403: PLAN_UPGRADE_REQUIRED on the free plan
    """
    snapshot, project = SnapshotService.get_snapshot(str(snapshot_id), user.id)

    plan = BillingService.get_plan_for_user(user.id)
    if plan.id == PlanId.FREE:
        raise PlanUpgradeRequiredError(
            "pdf_export",
            "PDF export is only available for Pro users. Upgrade to Pro to export snapshots as PDF.",
        )

    return {
        "success": True,
        "markdown": snapshot["markdown"],
        "repo_name": project["repo_name"],
        "created_at": snapshot["created_at"],
    }
