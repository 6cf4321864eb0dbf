"""
Shared test fixtures for Grant Revoker tests
"""

import threading
import time
from typing import Dict, List, Optional, Set, Tuple, Union

import pytest
from googleapiclient.errors import HttpError

from grant_revoker.directory import DirectoryClient
from grant_revoker.models import RunConfig


# === Mock Admin SDK Directory Service ===

class MockHttpResponse:
    """Mock HTTP response for HttpError"""
    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason


def make_http_error(status: int, reason: str = 'Error') -> HttpError:
    return HttpError(resp=MockHttpResponse(status, reason), content=reason.encode('utf-8'))


def as_error(failure: Union[int, Exception], reason: str) -> Exception:
    """An int is an HTTP status; anything else is raised as-is"""
    if isinstance(failure, Exception):
        return failure
    return make_http_error(failure, reason)


class MockExecute:
    """Mock for the .execute() call; returns data or raises the stored error"""
    def __init__(self, data=None, error: Optional[Exception] = None, delay: float = 0.0, tracker=None):
        self._data = data
        self._error = error
        self._delay = delay
        self._tracker = tracker

    def execute(self):
        if self._tracker is not None:
            self._tracker.enter_call()
        try:
            if self._delay:
                time.sleep(self._delay)
            if self._error is not None:
                raise self._error
            return self._data
        finally:
            if self._tracker is not None:
                self._tracker.leave_call()


class MockUsersResource:
    """Mock for users()"""
    def __init__(self, directory: 'MockDirectoryService'):
        self._directory = directory

    def list(self, customer: str, maxResults: int = 100, orderBy: str = None, pageToken: Optional[str] = None):
        directory = self._directory
        directory.list_users_calls.append({'customer': customer, 'maxResults': maxResults, 'pageToken': pageToken})

        if directory.list_users_error is not None:
            return directory.respond(error=as_error(directory.list_users_error, 'Not Authorized'))

        start_idx = int(pageToken) if pageToken else 0
        page_size = len(directory.users_data) if directory.ignore_max_results else maxResults
        end_idx = min(start_idx + page_size, len(directory.users_data))

        result = {'users': directory.users_data[start_idx:end_idx]}
        if end_idx < len(directory.users_data):
            result['nextPageToken'] = str(end_idx)

        return directory.respond(result)


class MockTokensResource:
    """Mock for tokens()"""
    def __init__(self, directory: 'MockDirectoryService'):
        self._directory = directory

    def list(self, userKey: str):
        directory = self._directory
        directory.list_grants_calls.append(userKey)

        if userKey in directory.list_grants_errors:
            return directory.respond(error=as_error(directory.list_grants_errors[userKey], 'Backend Error'))
        if userKey not in directory.tokens_by_user:
            return directory.respond(error=make_http_error(404, 'Resource Not Found: userKey'))

        items = [dict(token) for token in directory.tokens_by_user[userKey]]
        # The real API omits 'items' when a user has no tokens
        return directory.respond({'kind': 'admin#directory#tokenList', 'items': items} if items else {'kind': 'admin#directory#tokenList'})

    def delete(self, userKey: str, clientId: str):
        directory = self._directory
        directory.revoke_calls.append((userKey, clientId))

        if (userKey, clientId) in directory.revoke_errors:
            return directory.respond(error=as_error(directory.revoke_errors[(userKey, clientId)], 'Backend Error'))
        if (userKey, clientId) in directory.stale_grants:
            # Listed but already gone by the time the delete arrives
            return directory.respond(error=make_http_error(404, 'Not Found'))

        tokens = directory.tokens_by_user.get(userKey, [])
        remaining = [token for token in tokens if token['clientId'] != clientId]
        if len(remaining) == len(tokens):
            return directory.respond(error=make_http_error(404, 'Not Found'))

        directory.tokens_by_user[userKey] = remaining
        directory.revoked.append((userKey, clientId))
        return directory.respond('')


class MockDirectoryService:
    """Mock Admin SDK directory_v1 service backed by in-memory users and tokens"""

    def __init__(
        self,
        users_data: List[Dict],
        tokens_by_user: Dict[str, List[Dict]],
        list_users_error: Optional[Union[int, Exception]] = None,
        list_grants_errors: Optional[Dict[str, Union[int, Exception]]] = None,
        revoke_errors: Optional[Dict[Tuple[str, str], Union[int, Exception]]] = None,
        stale_grants: Optional[Set[Tuple[str, str]]] = None,
        ignore_max_results: bool = False,
        call_delay: float = 0.0
    ):
        self.users_data = users_data
        self.tokens_by_user = tokens_by_user
        self.list_users_error = list_users_error
        self.list_grants_errors = list_grants_errors or {}
        self.revoke_errors = revoke_errors or {}
        self.stale_grants = stale_grants or set()
        self.ignore_max_results = ignore_max_results
        self.call_delay = call_delay

        self.list_users_calls: List[Dict] = []
        self.list_grants_calls: List[str] = []
        self.revoke_calls: List[Tuple[str, str]] = []
        self.revoked: List[Tuple[str, str]] = []

        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def users(self):
        return MockUsersResource(self)

    def tokens(self):
        return MockTokensResource(self)

    def respond(self, data=None, error: Optional[Exception] = None) -> MockExecute:
        return MockExecute(data, error=error, delay=self.call_delay, tracker=self)

    def enter_call(self) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

    def leave_call(self) -> None:
        with self._lock:
            self.in_flight -= 1


# === Helpers to create directory data ===

def make_user(email: str, full_name: Optional[str] = None) -> dict:
    """Helper to create a user dict matching Admin SDK structure"""
    return {
        'kind': 'admin#directory#user',
        'id': f'id-{email}',
        'primaryEmail': email,
        'name': {'fullName': full_name or email.split('@')[0].title()}
    }


def make_token(client_id: str, display_text: Optional[str] = None, scopes: List[str] = None) -> dict:
    """Helper to create a token dict matching Admin SDK structure"""
    return {
        'kind': 'admin#directory#token',
        'clientId': client_id,
        'displayText': display_text or f'App {client_id}',
        'scopes': scopes or ['openid', 'email'],
        'anonymous': False,
        'nativeApp': True
    }


def build_directory(users: Dict[str, List[str]], **kwargs) -> MockDirectoryService:
    """Build a mock service from {email: [client_id, ...]}"""
    return MockDirectoryService(
        users_data=[make_user(email) for email in users],
        tokens_by_user={email: [make_token(client_id) for client_id in client_ids] for email, client_ids in users.items()},
        **kwargs
    )


# === Fixtures ===

@pytest.fixture
def scenario_users() -> Dict[str, List[str]]:
    """Three users: A has [X, Y], B has [Y], C has nothing"""
    return {
        'alice@example.com': ['X', 'Y'],
        'bob@example.com': ['Y'],
        'carol@example.com': [],
    }


@pytest.fixture
def scenario_service(scenario_users) -> MockDirectoryService:
    return build_directory(scenario_users)


@pytest.fixture
def scenario_directory(scenario_service) -> DirectoryClient:
    return DirectoryClient(scenario_service, call_timeout=5)


@pytest.fixture
def five_users() -> Dict[str, List[str]]:
    return {f'user{i}@example.com': ['X'] for i in range(1, 6)}


@pytest.fixture
def five_user_service(five_users) -> MockDirectoryService:
    return build_directory(five_users)


@pytest.fixture
def live_config() -> RunConfig:
    return RunConfig(dry_run=False, max_users=10, target_client_id='X')


@pytest.fixture
def dry_run_config() -> RunConfig:
    return RunConfig(dry_run=True, max_users=10, target_client_id='X')
