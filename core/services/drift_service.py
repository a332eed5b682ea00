# =============================================================================
# core/services/drift_service.py - Architecture Drift Detection
# =============================================================================
# Compares a repository's current state against the baseline stored in its
# latest snapshot:
# 1. File changes: added / removed / modified (same path, different size)
# 2. A markdown summary of those structural changes
# 3. A line diff between the old and regenerated architecture documents
# 4. A 0-100 drift score weighting architecture changes most heavily
#
# Each run is persisted in drift_results, moving pending -> completed, or
# pending -> error when anything fails.
# =============================================================================

import difflib
import logging
from typing import Any
from uuid import UUID

from core.models.drift import DriftStatus, FileChanges
from core.models.repo import RepoFile
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

NO_STRUCTURE_CHANGES = "No structural changes detected."
NO_ARCHITECTURE_CHANGES = "No changes detected in architecture documentation."
NO_SIGNIFICANT_ARCHITECTURE_CHANGES = "No significant changes detected in architecture documentation."

# Score caps per component (total capped at 100)
ARCHITECTURE_SCORE_CAP = 60
ARCHITECTURE_SECTION_WEIGHT = 15
ADDED_SCORE_CAP = 20
ADDED_WEIGHT = 2
REMOVED_SCORE_CAP = 15
REMOVED_WEIGHT = 3
MODIFIED_SCORE_CAP = 5
MODIFIED_WEIGHT = 1


def _as_repo_file(structure: RepoFile | dict[str, Any] | None) -> RepoFile | None:
    if structure is None or isinstance(structure, RepoFile):
        return structure
    return RepoFile.model_validate(structure)


def _file_map(structure: RepoFile) -> dict[str, int | None]:
    """Map each file path to its size."""
    return {node.path: node.size for node in structure.iter_files()}


# =============================================================================
# Pure Comparison Functions
# =============================================================================

def compare_repo_structures(
    current: RepoFile | dict[str, Any],
    previous: RepoFile | dict[str, Any] | None,
) -> FileChanges:
    """
    Diff two repository trees by file path and size.

    With no previous tree every current file counts as added.

    Args:
        current: Tree as it is now
        previous: Baseline tree, or None when the snapshot predates
            structure storage

    Returns:
        FileChanges in tree order
    """
    current_files = _file_map(_as_repo_file(current))
    previous_tree = _as_repo_file(previous)

    if previous_tree is None:
        return FileChanges(added=list(current_files))

    previous_files = _file_map(previous_tree)

    added = [path for path in current_files if path not in previous_files]
    modified = [
        path for path, size in current_files.items()
        if path in previous_files and previous_files[path] != size
    ]
    removed = [path for path in previous_files if path not in current_files]

    return FileChanges(added=added, removed=removed, modified=modified)


def generate_structure_diff(changes: FileChanges) -> str:
    """Render file changes as markdown."""
    lines = ["# Repository Structure Changes\n"]

    if not changes.has_changes:
        lines.append(NO_STRUCTURE_CHANGES)
        return "\n".join(lines)

    sections = (
        ("## Added Files\n", changes.added, "new"),
        ("## Removed Files\n", changes.removed, "deleted"),
        ("## Modified Files\n", changes.modified, "changed"),
    )
    for heading, paths, label in sections:
        if not paths:
            continue
        lines.append(heading)
        lines.extend(f"- `{path}` ({label})" for path in paths)
        lines.append("")

    return "\n".join(lines)


def compare_architecture_markdown(current: str, previous: str) -> str:
    """
    Line diff between two architecture documents.

    Blank lines are ignored. Removed lines are listed before added ones.
    """
    if current == previous:
        return NO_ARCHITECTURE_CHANGES

    previous_lines = previous.splitlines()
    current_lines = current.splitlines()
    matcher = difflib.SequenceMatcher(None, previous_lines, current_lines, autojunk=False)

    removed_lines: list[str] = []
    added_lines: list[str] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("delete", "replace"):
            removed_lines.extend(line for line in previous_lines[i1:i2] if line.strip())
        if tag in ("insert", "replace"):
            added_lines.extend(line for line in current_lines[j1:j2] if line.strip())

    if not removed_lines and not added_lines:
        return NO_SIGNIFICANT_ARCHITECTURE_CHANGES

    lines = ["# Architecture Documentation Changes\n"]
    if removed_lines:
        lines.append("## Removed\n")
        lines.extend(f"- {line}" for line in removed_lines)
        lines.append("")
    if added_lines:
        lines.append("## Added\n")
        lines.extend(f"+ {line}" for line in added_lines)
        lines.append("")

    return "\n".join(lines)


def calculate_drift_score(changes: FileChanges, architecture_diff: str) -> int:
    """
    Score drift from 0 (none) to 100.

    Up to 60 points for architecture sections, 20 for added files, 15 for
    removed files and 5 for modified files.
    """
    section_count = architecture_diff.count("## Added") + architecture_diff.count("## Removed")

    score = min(ARCHITECTURE_SCORE_CAP, section_count * ARCHITECTURE_SECTION_WEIGHT)
    score += min(ADDED_SCORE_CAP, len(changes.added) * ADDED_WEIGHT)
    score += min(REMOVED_SCORE_CAP, len(changes.removed) * REMOVED_WEIGHT)
    score += min(MODIFIED_SCORE_CAP, len(changes.modified) * MODIFIED_WEIGHT)

    return min(100, score)


# =============================================================================
# Persistence
# =============================================================================

class DriftService:
    """Runs drift detection and stores its results."""

    @staticmethod
    def detect_drift(
        project_id: str | UUID,
        current_structure: RepoFile,
        snapshot_id: str | UUID,
        previous_structure: RepoFile | dict[str, Any] | None,
        current_markdown: str,
        previous_markdown: str,
    ) -> dict[str, Any]:
        """
        Compare the current repository against a snapshot and store the result.

        Args:
            project_id: Project being checked
            current_structure: Freshly fetched, normalized tree
            snapshot_id: Baseline snapshot
            previous_structure: Baseline tree (None for older snapshots)
            current_markdown: Architecture document generated just now
            previous_markdown: Baseline architecture document

        Returns:
            Completed drift_results row

        Raises:
            Exception: Re-raised after marking the row as error
        """
        client = SupabaseClient.get_client()
        previous_tree = _as_repo_file(previous_structure)

        response = (
            client.table("drift_results")
            .insert({
                "project_id": normalize_uuid(project_id),
                "snapshot_id": normalize_uuid(snapshot_id),
                "current_repo_structure": current_structure.to_json(),
                "previous_repo_structure": previous_tree.to_json() if previous_tree else None,
                "status": DriftStatus.PENDING.value,
            })
            .execute()
        )
        if not response.data:
            raise Exception("Failed to create drift result: insert returned no data")

        drift_id = response.data[0]["id"]
        logger.info(f"Started drift detection {drift_id} for project {project_id}")

        try:
            file_changes = compare_repo_structures(current_structure, previous_tree)
            structure_diff = generate_structure_diff(file_changes)
            architecture_diff = compare_architecture_markdown(current_markdown, previous_markdown)
            drift_score = calculate_drift_score(file_changes, architecture_diff)

            updated = (
                client.table("drift_results")
                .update({
                    "file_changes": file_changes.model_dump(),
                    "structure_diff": structure_diff,
                    "architecture_diff": architecture_diff,
                    "drift_score": drift_score,
                    "status": DriftStatus.COMPLETED.value,
                    "completed_at": utc_now().isoformat(),
                })
                .eq("id", drift_id)
                .execute()
            )
            if not updated.data:
                raise Exception("Failed to update drift result: update returned no data")

            logger.info(f"Drift detection {drift_id} completed with score {drift_score}")
            return updated.data[0]

        except Exception as e:
            logger.error(f"Drift detection {drift_id} failed: {e}")
            client.table("drift_results").update({
                "status": DriftStatus.ERROR.value,
                "completed_at": utc_now().isoformat(),
            }).eq("id", drift_id).execute()
            raise

    @staticmethod
    def list_drift_results(project_id: str | UUID) -> list[dict[str, Any]]:
        """Completed drift results for a project, newest first."""
        client = SupabaseClient.get_client()
        response = (
            client.table("drift_results")
            .select("*")
            .eq("project_id", normalize_uuid(project_id))
            .eq("status", DriftStatus.COMPLETED.value)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []
