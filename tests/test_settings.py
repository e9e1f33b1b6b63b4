import pytest

from student_records.config.settings import Settings


pytestmark = pytest.mark.unit


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("ALLOWED_HOSTS", "ALLOWED_EMAIL_DOMAINS", "PHONE_NUMBER_PATTERN"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Test settings parsing from defaults and environment."""

    def test_default_hosts_are_a_list(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.ALLOWED_HOSTS == ["http://localhost:3000"]
        assert settings.ALLOWED_EMAIL_DOMAINS == []
        assert settings.PHONE_NUMBER_PATTERN is None

    def test_comma_separated_env_values(self, clean_env, monkeypatch):
        monkeypatch.setenv("ALLOWED_HOSTS", "http://a.test, http://b.test")
        monkeypatch.setenv("ALLOWED_EMAIL_DOMAINS", "example.edu.vn")

        settings = Settings(_env_file=None)

        assert settings.ALLOWED_HOSTS == ["http://a.test", "http://b.test"]
        assert settings.ALLOWED_EMAIL_DOMAINS == ["example.edu.vn"]

    def test_invalid_phone_pattern(self, clean_env, monkeypatch):
        monkeypatch.setenv("PHONE_NUMBER_PATTERN", "^(0[35789")

        with pytest.raises(ValueError):
            Settings(_env_file=None)
