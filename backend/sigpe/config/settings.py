"""Environment driven configuration consumed by create_app().

Values are read after load_dotenv() so a local .env file can provide them.
"""
from __future__ import annotations
from datetime import timedelta
from typing import Any, Dict
import os

# Feature flags names (also accepted as create_app overrides)
FLAG_TERRITORY_SCOPE = 'ENFORCE_TERRITORY_SCOPE'
FLAG_STRICT_REQUEST_TRANSITIONS = 'PERMIT_REQUEST_STRICT_TRANSITIONS'


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer')


def load_settings() -> Dict[str, Any]:
    return {
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'JWT_ACCESS_TOKEN_EXPIRES': timedelta(minutes=_env_int('JWT_ACCESS_TOKEN_EXPIRES_MINUTES', 24 * 60)),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        FLAG_TERRITORY_SCOPE: _env_bool(FLAG_TERRITORY_SCOPE, True),
        FLAG_STRICT_REQUEST_TRANSITIONS: _env_bool(FLAG_STRICT_REQUEST_TRANSITIONS, True),
        'PERMIT_NUMBER_MAX_RETRIES': _env_int('PERMIT_NUMBER_MAX_RETRIES', 5),
    }
