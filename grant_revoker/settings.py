"""
Environment configuration for Grant Revoker
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from grant_revoker.errors import ConfigError
from grant_revoker.models import DEFAULT_CUSTOMER


TRUE_VALUES = {'1', 'true', 'yes', 'y', 'on'}
FALSE_VALUES = {'0', 'false', 'no', 'n', 'off'}
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def parse_bool(value: str) -> bool:
    """Parse a yes/no style string"""
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigError(f"Expected a boolean value, got '{value}'")


@dataclass(frozen=True)
class Settings:
    credentials_path: str = 'credentials.json'
    token_path: str = 'token.json'
    service_account_file: Optional[str] = None
    admin_subject: Optional[str] = None
    customer: str = DEFAULT_CUSTOMER
    call_timeout: float = 30.0
    dry_run: bool = True
    max_users: int = 100
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_env_file: bool = True) -> 'Settings':
        """Read settings from the environment, loading .env first"""
        if environ is None:
            if load_env_file:
                load_dotenv()
            environ = os.environ

        try:
            call_timeout = float(environ.get('DIRECTORY_CALL_TIMEOUT', '30'))
        except ValueError:
            raise ConfigError(f"DIRECTORY_CALL_TIMEOUT must be a number, got '{environ['DIRECTORY_CALL_TIMEOUT']}'")
        if call_timeout <= 0:
            raise ConfigError("DIRECTORY_CALL_TIMEOUT must be positive")

        log_level = environ.get('LOG_LEVEL', 'INFO').strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got '{log_level}'")

        try:
            max_users = int(environ.get('MAX_USERS', '100'))
        except ValueError:
            raise ConfigError(f"MAX_USERS must be an integer, got '{environ['MAX_USERS']}'")

        return cls(
            credentials_path=environ.get('GOOGLE_CREDENTIALS_PATH', 'credentials.json'),
            token_path=environ.get('GOOGLE_TOKEN_PATH', 'token.json'),
            service_account_file=environ.get('GOOGLE_SERVICE_ACCOUNT_FILE') or None,
            admin_subject=environ.get('GOOGLE_ADMIN_SUBJECT') or None,
            customer=environ.get('DIRECTORY_CUSTOMER', DEFAULT_CUSTOMER),
            call_timeout=call_timeout,
            dry_run=parse_bool(environ.get('DRY_RUN', 'true')),
            max_users=max_users,
            log_level=log_level,
        )
