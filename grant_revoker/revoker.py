"""
Grant Revoker - Sweeps a directory and revokes OAuth grants for one client
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from grant_revoker.errors import ConfigError, DirectoryError, FatalDirectoryError, NotFound
from grant_revoker.models import RunConfig, RunReport, UserOutcome


logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Dict], Awaitable[None]]


class GrantRevoker:
    """Runs one revocation pass over the directory"""

    def __init__(
        self,
        directory,  # DirectoryClient or anything with the same coroutine methods
        event_callback: Optional[EventCallback] = None
    ):
        self.directory = directory
        self.event_callback = event_callback
        self.interrupted = False

    def cancel(self) -> None:
        """Ask the running pass to stop before the next user"""
        self.interrupted = True

    # === Main Entry Point ===

    async def run(self, config: RunConfig) -> RunReport:
        """Run a pass and return the report; directory failures end up in the report"""
        if not isinstance(config, RunConfig):
            raise ConfigError(f"Expected RunConfig, got {type(config).__name__}")

        report = RunReport(config=config)
        mode = "dry_run" if config.dry_run else "live"
        logger.info(
            f"Starting {mode} revocation for client {config.target_client_id} "
            f"(max users: {config.max_users})"
        )
        await self._emit("run_started", {
            "dry_run": config.dry_run,
            "max_users": config.max_users,
            "target_client_id": config.target_client_id,
            "customer": config.customer
        })

        try:
            users = await self.directory.list_users(config.customer, config.max_users)
        except DirectoryError as error:
            logger.error(f"Could not list users: {error}")
            report.errors += 1
            report.fatal_error = str(error)
            report.fatal_exception = error
            report.finalize()
            await self._emit("run_failed", {"error": str(error), "operation": error.operation})
            return report

        users = users[:config.max_users]
        report.total_users = len(users)
        await self._emit("users_fetched", {"total_users": report.total_users})

        if not users:
            logger.warning("Directory returned no users")
            report.finalize()
            await self._emit("run_completed", self._summary(report))
            return report

        for user in users:
            if self.interrupted:
                logger.warning(f"Run cancelled after {report.users_processed} of {report.total_users} users")
                report.cancelled = True
                await self._emit("run_cancelled", {
                    "users_processed": report.users_processed,
                    "total_users": report.total_users
                })
                break

            outcome = await self._process_user(user.primary_email, config, report)
            report.add_outcome(outcome)
            await self._emit("user_processed", {
                "email": outcome.email,
                "grants_found": outcome.grants_found,
                "matching_grants_found": outcome.matching_grants_found,
                "revoked": outcome.revoked,
                "errored": outcome.errored,
                "users_processed": report.users_processed,
                "total_users": report.total_users
            })

        report.finalize()
        summary = self._summary(report)
        logger.info(
            f"Revocation finished: {report.users_processed}/{report.total_users} users, "
            f"{report.users_with_match} with match, {report.grants_revoked} revoked, {report.errors} errors"
        )
        await self._emit("run_completed", summary)
        return report

    async def run_or_raise(self, config: RunConfig) -> RunReport:
        """Like run(), but raise FatalDirectoryError when users cannot be listed"""
        report = await self.run(config)
        if report.fatal_error is not None:
            raise FatalDirectoryError(report.fatal_error, cause=report.fatal_exception) from report.fatal_exception
        return report

    # === User Processing ===

    async def _process_user(self, email: str, config: RunConfig, report: RunReport) -> UserOutcome:
        """List one user's grants and revoke those matching the target client"""
        outcome = UserOutcome(email=email)

        try:
            grants = await self.directory.list_grants(email)
        except DirectoryError as error:
            logger.warning(f"Could not list grants for {email}: {error}")
            outcome.record_error(str(error))
            report.errors += 1
            await self._emit("user_error", {"email": email, "error": str(error)})
            return outcome

        outcome.grants_found = len(grants)
        matches = [grant for grant in grants if grant.client_id == config.target_client_id]
        outcome.matching_grants_found = len(matches)
        await self._emit("grants_listed", {
            "email": email,
            "grants_found": outcome.grants_found,
            "matching_grants_found": outcome.matching_grants_found
        })

        for grant in matches:
            event_data = {
                "email": email,
                "client_id": grant.client_id,
                "display_text": grant.display_text
            }

            if config.dry_run:
                logger.info(f"DRY RUN - would revoke {grant.client_id} for {email}")
                await self._emit("would_revoke", event_data)
                continue

            try:
                await self.directory.revoke_grant(email, grant.client_id)
            except NotFound:
                # Already gone: revocation is idempotent
                logger.info(f"Grant {grant.client_id} for {email} was already revoked")
                await self._emit("already_revoked", event_data)
                continue
            except DirectoryError as error:
                logger.error(f"Error revoking {grant.client_id} for {email}: {error}")
                outcome.record_error(str(error))
                report.errors += 1
                await self._emit("revoke_error", {**event_data, "error": str(error)})
                continue

            outcome.revoked += 1
            report.grants_revoked += 1
            logger.info(f"Revoked {grant.client_id} for {email}")
            await self._emit("revoked", event_data)

        return outcome

    # === Events ===

    async def _emit(self, event: str, data: Dict) -> None:
        """Send an event if a callback is set"""
        if self.event_callback:
            await self.event_callback(event, data)

    # === Results ===

    @staticmethod
    def _summary(report: RunReport) -> Dict:
        """Build the summary statistics dict sent with run_completed"""
        return {
            "dry_run": report.config.dry_run,
            "total_users": report.total_users,
            "users_processed": report.users_processed,
            "users_with_match": report.users_with_match,
            "grants_revoked": report.grants_revoked,
            "errors": report.errors,
            "cancelled": report.cancelled
        }
