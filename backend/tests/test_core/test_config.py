"""
Unit tests for application settings
"""
import pytest
from pydantic import ValidationError

from habitpush.core.config import Settings


class TestSettings:
    """Test Settings defaults and validation"""

    def test_push_defaults(self):
        config = Settings(_env_file=None)

        assert config.PUSH_TTL_SECONDS == 86400
        assert config.PUSH_URGENCY == "normal"
        assert config.PUSH_TIMEOUT_SECONDS == 10.0
        assert config.REMINDER_CONCURRENCY == 20
        assert config.VAPID_SUBJECT.startswith("mailto:")

    def test_vapid_configured_requires_both_keys(self):
        assert not Settings(_env_file=None, VAPID_PUBLIC_KEY="pub", VAPID_PRIVATE_KEY=None).vapid_configured
        assert Settings(_env_file=None, VAPID_PUBLIC_KEY="pub", VAPID_PRIVATE_KEY="priv").vapid_configured

    @pytest.mark.parametrize("subject", ["mailto:ops@example.com", "https://example.com/contact"])
    def test_valid_vapid_subject(self, subject):
        assert Settings(_env_file=None, VAPID_SUBJECT=subject).VAPID_SUBJECT == subject

    def test_invalid_vapid_subject(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, VAPID_SUBJECT="ops@example.com")

    def test_invalid_urgency(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, PUSH_URGENCY="urgent")

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PUSH_TTL_SECONDS", "3600")
        monkeypatch.setenv("REMINDER_SCHEDULE_ENABLED", "true")

        config = Settings(_env_file=None)

        assert config.PUSH_TTL_SECONDS == 3600
        assert config.REMINDER_SCHEDULE_ENABLED is True

    def test_cors_origins_list(self):
        config = Settings(_env_file=None, CORS_ORIGINS="http://a.test, http://b.test,")
        assert config.cors_origins_list == ["http://a.test", "http://b.test"]
