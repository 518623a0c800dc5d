"""
FleetCore configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])

Per-request settings (notification preferences, language) are resolved once
with resolve_settings() and passed explicitly to the services that need them.
"""
import os
import secrets
from dataclasses import dataclass, replace

from flask import current_app

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name, default):
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv('SECRET_KEY', _DEV_SECRET)
    DEBUG = False
    TESTING = False

    DATABASE_PATH = os.getenv('DATABASE_PATH', os.path.join(basedir, 'data', 'fleetcore.db'))

    # Notification defaults; stored overrides win (see resolve_settings)
    NOTIFICATIONS_ENABLED = _env_flag('NOTIFICATIONS_ENABLED', 'true')
    DEFAULT_LANGUAGE = os.getenv('DEFAULT_LANGUAGE', 'fr')


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    DATABASE_PATH = os.getenv('TEST_DATABASE_PATH', os.path.join(basedir, 'data', 'fleetcore_test.db'))


class ProductionConfig(Config):
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}


SETTINGS_KEY = 'settings:notifications'


@dataclass(frozen=True)
class Settings:
    """Notification and display preferences for one request."""
    notifications_enabled: bool = True
    inspection_completed: bool = True
    major_defects: bool = True
    language: str = 'fr'


def resolve_settings():
    """Build the Settings value from app config plus overrides saved in the store."""
    from fleetcore.services.db import get_document

    settings = Settings(
        notifications_enabled=current_app.config.get('NOTIFICATIONS_ENABLED', True),
        language=current_app.config.get('DEFAULT_LANGUAGE', 'fr'),
    )
    stored = get_document(SETTINGS_KEY) or {}
    known = {k: v for k, v in stored.items() if k in Settings.__dataclass_fields__}
    return replace(settings, **known)


def save_settings(**changes):
    """Persist notification preference overrides; each value must match its field type."""
    from fleetcore.exceptions import ValidationError
    from fleetcore.services.db import get_document, put_document

    fields = Settings.__dataclass_fields__
    errors = {}
    for key, value in changes.items():
        if key not in fields:
            errors[key] = 'unknown'
        elif not isinstance(value, fields[key].type):
            errors[key] = f'expected {fields[key].type.__name__}'
    if errors:
        raise ValidationError('Invalid settings', details=errors)

    stored = get_document(SETTINGS_KEY) or {}
    stored.update(changes)
    put_document(SETTINGS_KEY, stored)
    return resolve_settings()
