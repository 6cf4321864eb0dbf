"""
Shared data models for Grant Revoker
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from grant_revoker.errors import ConfigError, DirectoryError


DEFAULT_CUSTOMER = 'my_customer'

# Named presets replace the separate debug / list-only / dry-run entry points
PRESETS: Dict[str, Dict[str, Any]] = {
    'dry-run': {'dry_run': True, 'max_users': 5},
    'debug': {'dry_run': True, 'max_users': 1},
    'live': {'dry_run': False, 'max_users': 500},
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RunConfig:
    """Configuration for a revocation run, immutable once built"""
    dry_run: bool
    max_users: int
    target_client_id: str
    customer: str = DEFAULT_CUSTOMER

    def __post_init__(self):
        if isinstance(self.max_users, bool) or not isinstance(self.max_users, int):
            raise ConfigError(f"max_users must be an integer, got {self.max_users!r}")
        if self.max_users <= 0:
            raise ConfigError(f"max_users must be greater than 0, got {self.max_users}")

        client_id = (self.target_client_id or '').strip()
        if not client_id:
            raise ConfigError("target_client_id must not be empty")
        # frozen dataclass, so bypass __setattr__ to store the normalized value
        object.__setattr__(self, 'target_client_id', client_id)

        if not (self.customer or '').strip():
            raise ConfigError("customer must not be empty")

    @classmethod
    def from_preset(cls, name: str, target_client_id: str, **overrides) -> 'RunConfig':
        """Build a config from a named preset; non-None overrides win"""
        if name not in PRESETS:
            raise ConfigError(f"Unknown preset '{name}'. Choose one of: {', '.join(sorted(PRESETS))}")

        values = dict(PRESETS[name])
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(target_client_id=target_client_id, **values)


@dataclass(frozen=True)
class DirectoryUser:
    """A user as listed by the directory"""
    primary_email: str
    display_name: Optional[str] = None

    @classmethod
    def from_api(cls, resource: Dict) -> 'DirectoryUser':
        """Parse an Admin SDK user resource"""
        name = resource.get('name') or {}
        return cls(
            primary_email=resource['primaryEmail'],
            display_name=name.get('fullName'),
        )


@dataclass(frozen=True)
class OAuthGrant:
    """An OAuth token issued to a client application for one user"""
    client_id: str
    owner_email: str
    display_text: Optional[str] = None
    scopes: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, resource: Dict, owner_email: str) -> 'OAuthGrant':
        """Parse an Admin SDK token resource"""
        return cls(
            client_id=resource.get('clientId', ''),
            owner_email=owner_email,
            display_text=resource.get('displayText'),
            scopes=list(resource.get('scopes', [])),
        )


@dataclass
class UserOutcome:
    """What happened to one user during a run"""
    email: str
    grants_found: int = 0
    matching_grants_found: int = 0
    revoked: int = 0
    errored: bool = False
    errors: List[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errored = True
        self.errors.append(message)


@dataclass
class RunReport:
    """Aggregate result of one run, built up incrementally by the revoker"""
    config: RunConfig
    total_users: int = 0
    users_processed: int = 0
    users_with_match: int = 0
    grants_revoked: int = 0
    errors: int = 0
    outcomes: List[UserOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    ended_at: Optional[datetime] = None
    cancelled: bool = False
    fatal_error: Optional[str] = None
    fatal_exception: Optional[DirectoryError] = field(default=None, repr=False, compare=False)

    @property
    def per_user_details(self) -> List[UserOutcome]:
        """Outcomes for users that had at least one matching grant"""
        return [outcome for outcome in self.outcomes if outcome.matching_grants_found > 0]

    @property
    def total_matching_grants(self) -> int:
        return sum(outcome.matching_grants_found for outcome in self.outcomes)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.fatal_error is None

    def add_outcome(self, outcome: UserOutcome) -> None:
        """Append a finished user outcome and update the counters"""
        self.outcomes.append(outcome)
        self.users_processed += 1
        if outcome.matching_grants_found > 0:
            self.users_with_match += 1

    def finalize(self) -> 'RunReport':
        self.ended_at = utc_now()
        return self
