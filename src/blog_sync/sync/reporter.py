"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict

from .models import ActionKind, FailureKind, SyncOutcome, SyncReport

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _target(outcome: SyncOutcome) -> str:
    if outcome.record is not None:
        return f"{outcome.path} -> {outcome.record.remote_url}"
    return outcome.path


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one outcome.
    Skipped paths are summarised by count only to avoid excessive output.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    # Header
    header = f"Sync report for '{report.repository_id}'"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Processed {len(report.outcomes)} posts: "
        f"{len(report.created)} created, {len(report.updated)} updated, "
        f"{len(report.skipped)} unchanged, {len(report.failed)} failed"
    )
    lines.append("")

    if report.created:
        lines.append("Created:")
        for o in report.created:
            lines.append(f"  {_target(o)}")
        lines.append("")

    if report.updated:
        lines.append("Updated:")
        for o in report.updated:
            lines.append(f"  {_target(o)}")
        lines.append("")

    errors = [
        o for o in report.failed if o.failure_kind != FailureKind.NOT_FOUND
    ]
    if errors:
        lines.append("Failed:")
        for o in errors:
            kind = o.failure_kind.value if o.failure_kind else "error"
            lines.append(
                f"  {o.path} ({o.action.value}, {kind}, "
                f"{o.attempts} attempt(s)): {o.error}"
            )
        lines.append("")

    if report.needs_attention:
        lines.append("Needs attention (remote post no longer exists):")
        for o in report.needs_attention:
            lines.append(f"  {o.path}: {o.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)} posts (unchanged)")
        lines.append("")

    if report.warnings:
        lines.append("Warnings:")
        for warning in report.warnings:
            lines.append(f"  {warning}")
        lines.append("")

    if not report.dry_run and not report.persisted:
        lines.append("State NOT saved.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Each proposed action is shown as ``[ACTION]`` followed by its paths.

    Args:
        report: A dry-run sync report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append(f"Repository: {report.repository_id}")
    lines.append("")

    groups: dict[ActionKind, list[SyncOutcome]] = defaultdict(list)
    for o in report.outcomes:
        groups[o.action].append(o)

    for action in (ActionKind.CREATE, ActionKind.UPDATE):
        if action not in groups:
            continue
        lines.append(f"[{action.value.upper()}]")
        for o in groups[action]:
            lines.append(f"  {o.path}")
        lines.append("")

    skip_count = len(groups.get(ActionKind.SKIP, []))
    if skip_count > 0:
        lines.append(f"Skipped: {skip_count} posts (unchanged)")
        lines.append("")

    if not any(a != ActionKind.SKIP for a in groups):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with repository info, counts, and per-path details.
    """
    outcomes_list = []
    for o in report.outcomes:
        entry: dict = {
            "path": o.path,
            "action": o.action.value,
            "success": o.success,
            "attempts": o.attempts,
        }
        if o.record is not None:
            entry["remote_id"] = o.record.remote_id
            entry["remote_url"] = o.record.remote_url
        if o.error:
            entry["error"] = o.error
        if o.failure_kind is not None:
            entry["failure_kind"] = o.failure_kind.value
        outcomes_list.append(entry)

    return {
        "repository_id": report.repository_id,
        "dry_run": report.dry_run,
        "persisted": report.persisted,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.outcomes),
            "created": len(report.created),
            "updated": len(report.updated),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
            "needs_attention": len(report.needs_attention),
        },
        "outcomes": outcomes_list,
        "warnings": list(report.warnings),
        "exit_code": report.exit_code,
    }
