"""
Notification preferences: config defaults, stored overrides, validation.
"""
import pytest

from fleetcore.auth import register_technician
from fleetcore.config import Settings, resolve_settings, save_settings
from fleetcore.exceptions import ValidationError


class TestResolveSettings:

    def test_defaults_from_config(self):
        assert resolve_settings() == Settings()

    def test_stored_override(self):
        save_settings(major_defects=False, language='en')
        settings = resolve_settings()
        assert settings.major_defects is False
        assert settings.language == 'en'
        assert settings.notifications_enabled is True


class TestSaveSettings:

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            save_settings(theme='dark')
        assert exc_info.value.details == {'theme': 'unknown'}

    def test_string_flag_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            save_settings(notifications_enabled='false')
        assert exc_info.value.details == {'notifications_enabled': 'expected bool'}
        assert resolve_settings().notifications_enabled is True

    def test_language_must_be_text(self):
        with pytest.raises(ValidationError):
            save_settings(language=1)


class TestSettingsApi:

    @pytest.fixture()
    def manager_client(self, app):
        register_technician('mgr01', 'Sophie Roy', 'manager')
        test_client = app.test_client()
        with test_client.session_transaction() as sess:
            sess['user_id'] = 'mgr01'
            sess['user_name'] = 'Sophie Roy'
            sess['role'] = 'manager'
        return test_client

    def test_update(self, manager_client):
        res = manager_client.post('/settings', json={'inspection_completed': False})
        assert res.status_code == 200
        assert res.get_json()['inspection_completed'] is False

    def test_string_flag_is_422(self, manager_client):
        res = manager_client.post('/settings', json={'notifications_enabled': 'false'})
        assert res.status_code == 422
        assert manager_client.get('/settings').get_json()['notifications_enabled'] is True

    def test_list_body_is_422(self, manager_client):
        res = manager_client.post('/settings', json=['notifications_enabled'])
        assert res.status_code == 422
