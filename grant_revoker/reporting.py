"""
Run report output - structured dicts, audit text and console summary
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from grant_revoker.models import RunReport, UserOutcome


logger = logging.getLogger(__name__)


def _timestamp(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def outcome_to_dict(outcome: UserOutcome) -> Dict[str, Any]:
    return asdict(outcome)


def report_to_dict(report: RunReport) -> Dict[str, Any]:
    """Convert a report to a JSON-serializable dict"""
    return {
        "config": asdict(report.config),
        "started_at": _timestamp(report.started_at),
        "ended_at": _timestamp(report.ended_at),
        "duration_seconds": report.duration_seconds,
        "total_users": report.total_users,
        "users_processed": report.users_processed,
        "users_with_match": report.users_with_match,
        "grants_revoked": report.grants_revoked,
        "total_matching_grants": report.total_matching_grants,
        "errors": report.errors,
        "cancelled": report.cancelled,
        "fatal_error": report.fatal_error,
        "per_user_details": [
            {"email": outcome.email, "matching_grants_found": outcome.matching_grants_found}
            for outcome in report.per_user_details
        ],
        "outcomes": [outcome_to_dict(outcome) for outcome in report.outcomes],
    }


def report_to_json(report: RunReport) -> str:
    return json.dumps(report_to_dict(report), indent=2, sort_keys=False)


def audit_lines(report: RunReport) -> List[str]:
    """Human-readable audit trail, one line per fact"""
    config = report.config
    mode = "DRY RUN" if config.dry_run else "LIVE"
    lines = [
        f"Grant revocation report ({mode})",
        f"Target client: {config.target_client_id}",
        f"Customer: {config.customer}",
        f"Max users: {config.max_users}",
        f"Started: {_timestamp(report.started_at)}",
        f"Ended: {_timestamp(report.ended_at)}",
        f"Users fetched: {report.total_users}",
        f"Users processed: {report.users_processed}",
        f"Users with match: {report.users_with_match}",
        f"Matching grants: {report.total_matching_grants}",
        f"Grants revoked: {report.grants_revoked}",
        f"Errors: {report.errors}",
    ]

    if report.fatal_error:
        lines.append(f"FATAL: {report.fatal_error}")
    if report.cancelled:
        lines.append("Run was cancelled before all users were processed")

    for outcome in report.outcomes:
        status = "ERROR" if outcome.errored else "ok"
        lines.append(
            f"  [{status}] {outcome.email}: grants={outcome.grants_found} "
            f"matching={outcome.matching_grants_found} revoked={outcome.revoked}"
        )
        for message in outcome.errors:
            lines.append(f"      {message}")

    return lines


def report_to_text(report: RunReport) -> str:
    return "\n".join(audit_lines(report)) + "\n"


def write_report_files(
    report: RunReport,
    json_path: Optional[Path] = None,
    text_path: Optional[Path] = None
) -> List[Path]:
    """Write the JSON and/or text report, returns the paths written"""
    written = []

    if json_path is not None:
        json_path.parent.mkdir(parents=True, exist_ok=True)
        json_path.write_text(report_to_json(report), encoding="utf-8")
        written.append(json_path)

    if text_path is not None:
        text_path.parent.mkdir(parents=True, exist_ok=True)
        text_path.write_text(report_to_text(report), encoding="utf-8")
        written.append(text_path)

    for path in written:
        logger.info(f"Wrote run report to {path}")
    return written


def print_summary(report: RunReport, console: Optional[Console] = None) -> None:
    """Print final summary table"""
    console = console or Console()

    if report.fatal_error:
        console.print(f"\n[bold red]Revocation Failed:[/bold red] {report.fatal_error}")
    elif report.cancelled:
        console.print(f"\n[bold yellow]Revocation Cancelled[/bold yellow]")
    else:
        console.print(f"\n[bold green]Revocation Complete![/bold green]")

    table = Table(title="Grant Revocation Results", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan", width=25)
    table.add_column("Count", justify="right", style="green", width=10)

    table.add_row("Users Fetched", f"{report.total_users:,}")
    table.add_row("Users Processed", f"{report.users_processed:,}")
    table.add_row("Users With Match", f"{report.users_with_match:,}")
    table.add_row("Matching Grants", f"{report.total_matching_grants:,}")
    table.add_row("Grants Revoked", f"{report.grants_revoked:,}")
    if report.errors > 0:
        table.add_row("Errors", f"[red]{report.errors:,}[/red]")

    console.print(table)

    if report.per_user_details:
        details = Table(title="Users With Matching Grants", show_header=True, header_style="bold cyan")
        details.add_column("User", style="cyan")
        details.add_column("Matching", justify="right")
        details.add_column("Revoked", justify="right", style="green")
        details.add_column("Status")
        for outcome in report.per_user_details:
            details.add_row(
                outcome.email,
                str(outcome.matching_grants_found),
                str(outcome.revoked),
                "[red]error[/red]" if outcome.errored else "ok"
            )
        console.print(details)

    if report.config.dry_run:
        console.print(f"\n[bold yellow]DRY RUN MODE:[/bold yellow]")
        console.print(f"  - No grants were actually revoked")
        console.print(f"  - {report.total_matching_grants:,} grants would be revoked")
        console.print(f"  - Run with --dry-run=false to revoke them")
