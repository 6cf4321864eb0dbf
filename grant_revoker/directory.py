"""
Directory Client - Admin SDK calls used by the revoker
"""

import asyncio
import logging
from typing import Callable, List, Optional

from google.auth.exceptions import GoogleAuthError, TransportError
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from grant_revoker.errors import DirectoryError, NotFound, PermissionDenied, Unavailable
from grant_revoker.models import DirectoryUser, OAuthGrant


logger = logging.getLogger(__name__)

# Admin SDK caps users.list pages at 500
MAX_PAGE_SIZE = 500
DEFAULT_CALL_TIMEOUT = 30.0


class DirectoryClient:
    """Lists users and their OAuth tokens and revokes tokens through the Directory API"""

    def __init__(
        self,
        service,  # Admin SDK directory_v1 service object
        call_timeout: float = DEFAULT_CALL_TIMEOUT
    ):
        self.service = service
        self.call_timeout = call_timeout

    # === Users ===

    async def list_users(self, customer: str, max_results: int) -> List[DirectoryUser]:
        """Fetch up to max_results users, following pages until the cap is reached"""
        users: List[DirectoryUser] = []
        page_token = None

        while len(users) < max_results:
            page_size = min(max_results - len(users), MAX_PAGE_SIZE)
            results = await self._call(
                'list_users',
                lambda: self.service.users().list(
                    customer=customer,
                    maxResults=page_size,
                    orderBy='email',
                    pageToken=page_token
                ).execute()
            )

            for resource in results.get('users', []):
                if not resource.get('primaryEmail'):
                    logger.debug(f"Skipping user resource without primaryEmail: {resource.get('id')}")
                    continue
                users.append(DirectoryUser.from_api(resource))

            page_token = results.get('nextPageToken')
            if not page_token:
                break

        # The directory may return more than requested; the cap is hard
        users = users[:max_results]
        logger.debug(f"Listed {len(users)} users for customer {customer}")
        return users

    # === Grants ===

    async def list_grants(self, user_email: str) -> List[OAuthGrant]:
        """Fetch all OAuth tokens the user has granted"""
        results = await self._call(
            'list_grants',
            lambda: self.service.tokens().list(userKey=user_email).execute()
        )
        return [OAuthGrant.from_api(item, user_email) for item in (results or {}).get('items', [])]

    async def revoke_grant(self, user_email: str, client_id: str) -> None:
        """Delete all tokens the user issued to client_id"""
        await self._call(
            'revoke_grant',
            lambda: self.service.tokens().delete(userKey=user_email, clientId=client_id).execute()
        )

    # === Call Handling ===

    async def _call(self, operation: str, request: Callable):
        """Run a blocking API request in a worker thread, one call at a time

        The hard deadline is the transport's socket timeout. Past call_timeout
        the worker is still awaited so no two requests ever overlap, and its
        real outcome is what gets reported.
        """
        worker = asyncio.ensure_future(asyncio.to_thread(request))
        try:
            try:
                return await asyncio.wait_for(asyncio.shield(worker), timeout=self.call_timeout)
            except asyncio.TimeoutError:
                if not worker.done():
                    logger.warning(f"{operation} still running after {self.call_timeout}s, waiting for it to finish")
                return await worker
        except HttpError as error:
            raise self.map_http_error(operation, error) from error
        except asyncio.TimeoutError as error:
            raise Unavailable(f"{operation} timed out: {error}", operation=operation) from error
        except (TransportError, HttpLib2Error, OSError) as error:
            raise Unavailable(f"{operation} failed: {error}", operation=operation) from error
        except GoogleAuthError as error:
            # e.g. RefreshError when the delegated credentials are revoked mid-run
            raise PermissionDenied(f"{operation} failed to authorize: {error}", operation=operation) from error

    @staticmethod
    def map_http_error(operation: str, error: HttpError) -> DirectoryError:
        """Translate an API HttpError into the directory error taxonomy"""
        status: Optional[int] = getattr(error.resp, 'status', None)
        try:
            status = int(status)
        except (TypeError, ValueError):
            status = None

        message = f"{operation} failed with HTTP {status}: {error}"
        if status in (401, 403):
            return PermissionDenied(message, operation=operation, status=status)
        if status == 404:
            return NotFound(message, operation=operation, status=status)
        return Unavailable(message, operation=operation, status=status)
