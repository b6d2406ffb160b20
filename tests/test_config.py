import pytest

from tracker.config import ConfigError, load_config

OPTIONAL_KEYS = (
    "TRACKER_REQUIRE_USER_HEADER",
    "TRACKER_SERVICE_TOKEN",
    "TRACKER_TIMEZONE",
    "TRACKER_DEFAULT_SPACING_DAYS",
    "TRACKER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clear_optional_settings(monkeypatch):
    for key in OPTIONAL_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_requires_env(monkeypatch, tmp_path):
    monkeypatch.delenv("TRACKER_DATA_PATH", raising=False)
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert "TRACKER_DATA_PATH" in str(excinfo.value)


def test_load_config_reads_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TRACKER_DATA_PATH", str(tmp_path))
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.data_path == tmp_path.resolve()
    assert config.require_user_header is True
    assert config.service_token is None
    assert config.timezone is None
    assert config.default_spacing_days == 7
    assert config.log_level == "INFO"


def test_load_config_reads_dotenv_relative_path(monkeypatch, tmp_path):
    monkeypatch.delenv("TRACKER_DATA_PATH", raising=False)
    service_root = tmp_path / "service"
    service_root.mkdir()
    (service_root / ".env").write_text(
        'TRACKER_DATA_PATH="./data"\nexport TRACKER_DEFAULT_SPACING_DAYS=14\n',
        encoding="utf-8",
    )
    monkeypatch.chdir(service_root)

    config = load_config()

    assert config.data_path == (service_root / "data").resolve()
    assert config.default_spacing_days == 14


def test_load_config_prefers_env_over_dotenv(monkeypatch, tmp_path):
    env_root = tmp_path / "env"
    env_root.mkdir()
    dotenv_root = tmp_path / "dotenv"
    dotenv_root.mkdir()
    (tmp_path / ".env").write_text(
        f"TRACKER_DATA_PATH={dotenv_root}\n", encoding="utf-8"
    )
    monkeypatch.setenv("TRACKER_DATA_PATH", str(env_root))
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.data_path == env_root.resolve()


def test_load_config_reads_auth_and_time_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("TRACKER_DATA_PATH", str(tmp_path))
    monkeypatch.setenv("TRACKER_REQUIRE_USER_HEADER", "false")
    monkeypatch.setenv("TRACKER_SERVICE_TOKEN", "test-token")
    monkeypatch.setenv("TRACKER_TIMEZONE", "UTC")
    monkeypatch.setenv("TRACKER_LOG_LEVEL", "debug")
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.require_user_header is False
    assert config.service_token == "test-token"
    assert config.timezone == "UTC"
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("TRACKER_REQUIRE_USER_HEADER", "not-a-bool"),
        ("TRACKER_DEFAULT_SPACING_DAYS", "-1"),
        ("TRACKER_DEFAULT_SPACING_DAYS", "weekly"),
        ("TRACKER_TIMEZONE", "Mars/Olympus_Mons"),
        ("TRACKER_LOG_LEVEL", "LOUD"),
    ],
)
def test_load_config_rejects_invalid_values(monkeypatch, tmp_path, key, value):
    monkeypatch.setenv("TRACKER_DATA_PATH", str(tmp_path))
    monkeypatch.setenv(key, value)
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert key in str(excinfo.value)
