#!/usr/bin/env python3
"""
Grant Revoker CLI - revoke one OAuth client's grants across a Workspace directory
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from rich.console import Console

from grant_revoker.auth import build_directory_service
from grant_revoker.directory import DirectoryClient
from grant_revoker.errors import ConfigError
from grant_revoker.models import PRESETS, RunConfig
from grant_revoker.reporting import audit_lines, print_summary, write_report_files
from grant_revoker.revoker import GrantRevoker
from grant_revoker.settings import LOG_LEVELS, Settings, parse_bool


logger = logging.getLogger(__name__)

console = Console()

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_FATAL_DIRECTORY_ERROR = 2


def _bool_arg(value: str) -> bool:
    try:
        return parse_bool(value)
    except ConfigError as error:
        raise argparse.ArgumentTypeError(str(error))


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser"""
    parser = argparse.ArgumentParser(
        prog='grant-revoker',
        description='Revoke OAuth grants issued to one client across a Google Workspace directory'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    run = subparsers.add_parser('run', help='Run a revocation pass')
    run.add_argument('--client-id', required=True, help='OAuth client ID whose grants are revoked')
    run.add_argument('--dry-run', nargs='?', const=True, type=_bool_arg,
                     help='Only log what would be revoked (default: DRY_RUN env or true)')
    run.add_argument('--no-dry-run', dest='dry_run', action='store_false',
                     help='Actually revoke grants')
    run.add_argument('--max-users', type=int, help='Maximum number of users to process')
    run.add_argument('--preset', choices=sorted(PRESETS), help='Start from a named preset')
    run.add_argument('--customer', help='Directory customer alias (default: my_customer)')
    run.add_argument('--report-json', type=Path, help='Write the machine-readable report here')
    run.add_argument('--report-text', type=Path, help='Write the audit text report here')
    run.add_argument('--log-level', type=str.upper, choices=LOG_LEVELS,
                     help='Logging level (default: LOG_LEVEL env or INFO)')
    run.set_defaults(dry_run=None)

    return parser


def configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level_name.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_config(args: argparse.Namespace, settings: Settings) -> RunConfig:
    """Combine CLI arguments, preset and environment settings into a RunConfig"""
    customer = args.customer or settings.customer

    if args.preset:
        return RunConfig.from_preset(
            args.preset,
            args.client_id,
            dry_run=args.dry_run,
            max_users=args.max_users,
            customer=customer
        )

    return RunConfig(
        dry_run=settings.dry_run if args.dry_run is None else args.dry_run,
        max_users=settings.max_users if args.max_users is None else args.max_users,
        target_client_id=args.client_id,
        customer=customer
    )


async def print_event(event: str, data: Dict) -> None:
    """Print runner events to the console as they happen"""
    if event == 'run_started':
        mode = 'DRY RUN (no grants will be revoked)' if data['dry_run'] else 'LIVE MODE (grants will be revoked)'
        console.print(f"\n[bold blue]Starting Grant Revocation[/bold blue]")
        console.print(f"[yellow]Mode: {mode}[/yellow]")
        console.print(f"[cyan]Target client: {data['target_client_id']}[/cyan]")
        console.print(f"[blue]Processing Limit: {data['max_users']:,} users[/blue]")
    elif event == 'users_fetched':
        console.print(f"[cyan]Fetched {data['total_users']:,} users[/cyan]")
    elif event == 'would_revoke':
        console.print(f"[yellow]WOULD REVOKE[/yellow] {data['client_id']} for {data['email']}")
    elif event == 'revoked':
        console.print(f"[green]REVOKED[/green] {data['client_id']} for {data['email']}")
    elif event == 'already_revoked':
        console.print(f"[dim]Already revoked: {data['client_id']} for {data['email']}[/dim]")
    elif event in ('revoke_error', 'user_error'):
        console.print(f"[red]ERROR[/red] {data['email']}: {data['error']}")
    elif event == 'user_processed':
        console.print(
            f"[dim]({data['users_processed']}/{data['total_users']}) {data['email']}: "
            f"{data['grants_found']} grants, {data['matching_grants_found']} matching[/dim]"
        )
    elif event == 'run_cancelled':
        console.print("\n[yellow]Run cancelled. Summary shows users processed before interruption.[/yellow]")


def _install_interrupt_handler(revoker: GrantRevoker):
    """Ctrl+C once stops after the current user, twice exits immediately"""
    def handle_interrupt(signum, frame):
        if not revoker.interrupted:
            console.print("\n[yellow]Interrupt received. Finishing current user before stopping...[/yellow]")
            revoker.cancel()
        else:
            console.print("\n[red]Force quit requested. Exiting immediately.[/red]")
            sys.exit(1)

    return signal.signal(signal.SIGINT, handle_interrupt)


def run_command(args: argparse.Namespace, directory: Optional[DirectoryClient] = None) -> int:
    """Execute the run subcommand, returns the process exit code"""
    try:
        settings = Settings.from_env()
        configure_logging(args.log_level or settings.log_level)
        config = build_config(args, settings)
    except ConfigError as error:
        console.print(f"[red]Configuration error: {error}[/red]")
        return EXIT_CONFIG_ERROR

    if directory is None:
        try:
            service = build_directory_service(settings)
        except ConfigError as error:
            console.print(f"[red]Configuration error: {error}[/red]")
            return EXIT_CONFIG_ERROR
        except GoogleAuthError as error:
            logger.error(f"Authentication failed: {error}")
            console.print(f"[red]Authentication failed: {error}[/red]")
            return EXIT_FATAL_DIRECTORY_ERROR
        directory = DirectoryClient(service, call_timeout=settings.call_timeout)

    revoker = GrantRevoker(directory, event_callback=print_event)
    previous_handler = _install_interrupt_handler(revoker)
    try:
        report = asyncio.run(revoker.run(config))
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_summary(report, console)
    console.print()
    for line in audit_lines(report):
        console.print(line, markup=False, highlight=False)

    try:
        write_report_files(report, json_path=args.report_json, text_path=args.report_text)
    except OSError as error:
        # The run itself completed, so the exit code still reflects it
        logger.error(f"Could not write run report: {error}")
        console.print(f"[red]Could not write run report: {error}[/red]")

    if report.fatal_error:
        return EXIT_FATAL_DIRECTORY_ERROR
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == 'run':
        return run_command(args)

    parser.print_help()
    return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
