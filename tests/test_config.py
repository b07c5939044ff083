"""Tests for YAML and environment configuration."""

import tempfile
from pathlib import Path

import pytest
import yaml

from dappy.config import PointerSettings, load_settings, parse_managers
from dappy.errors import ConfigError

OWNER = "0x" + "1" * 40
MANAGER_1 = "0x" + "2" * 40
MANAGER_2 = "0x" + "3" * 40

FULL_ENV = {
    "USER_VERIFICATION_OWNER": OWNER,
    "USER_VERIFICATION_TOKEN_NAME": "UserVerificationToken",
    "USER_VERIFICATION_TOKEN_SYMBOL": "UVT",
    "USER_VERIFICATION_TOKEN_EXPIRATION_TIME": "31536000",
}


def _write_config(tmpdir: str, data: dict) -> str:
    path = Path(tmpdir) / "dappy.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return str(path)


def test_settings_from_environment():
    env = dict(FULL_ENV, MANAGERS=f"{MANAGER_1}, {MANAGER_2},")
    settings = load_settings(environ=env).verification.validate()
    assert settings.owner == OWNER
    assert settings.token_name == "UserVerificationToken"
    assert settings.token_symbol == "UVT"
    assert settings.token_expiration_time == 31536000
    assert settings.managers == [MANAGER_1, MANAGER_2]


@pytest.mark.parametrize(
    "missing",
    [
        "USER_VERIFICATION_OWNER",
        "USER_VERIFICATION_TOKEN_NAME",
        "USER_VERIFICATION_TOKEN_SYMBOL",
        "USER_VERIFICATION_TOKEN_EXPIRATION_TIME",
    ],
)
def test_missing_variable_is_reported(missing):
    env = {k: v for k, v in FULL_ENV.items() if k != missing}
    with pytest.raises(ConfigError) as exc:
        load_settings(environ=env).verification.validate()
    assert missing in exc.value.message
    assert "env variable not set" in exc.value.message


def test_invalid_expiration_rejected():
    env = dict(FULL_ENV, USER_VERIFICATION_TOKEN_EXPIRATION_TIME="soon")
    with pytest.raises(ConfigError):
        load_settings(environ=env).verification.validate()


def test_zero_owner_rejected():
    env = dict(FULL_ENV, USER_VERIFICATION_OWNER="0x" + "0" * 40)
    with pytest.raises(ConfigError):
        load_settings(environ=env).verification.validate()


def test_invalid_manager_rejected():
    env = dict(FULL_ENV, MANAGERS="0xnotanaddress")
    with pytest.raises(ConfigError):
        load_settings(environ=env).verification.validate()


def test_pointer_owner_required():
    with pytest.raises(ConfigError) as exc:
        PointerSettings().validate("SOCIAL_CONNECTIONS_OWNER")
    assert exc.value.message == "SOCIAL_CONNECTIONS_OWNER env variable not set"

    settings = load_settings(environ={"FILESYSTEM_CHANGES_OWNER": OWNER.upper().replace("0X", "0x")})
    assert settings.filesystem_changes.validate("FILESYSTEM_CHANGES_OWNER").owner == OWNER


def test_parse_managers():
    assert parse_managers("") == []
    assert parse_managers(f" {MANAGER_1} ,,{MANAGER_2}") == [MANAGER_1, MANAGER_2]


def test_yaml_file_overlaid_by_environment():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_config(
            tmpdir,
            {
                "verification": {
                    "owner": OWNER,
                    "token_name": "FromFile",
                    "token_symbol": "FF",
                    "token_expiration_time": 60,
                    "managers": [MANAGER_1],
                },
                "social_connections": {"owner": OWNER},
                "state_dir": str(Path(tmpdir) / "state"),
            },
        )
        settings = load_settings(path, environ={"USER_VERIFICATION_TOKEN_NAME": "FromEnv"})
        verification = settings.verification.validate()
        assert verification.token_name == "FromEnv"
        assert verification.token_symbol == "FF"
        assert verification.token_expiration_time == 60
        assert verification.managers == [MANAGER_1]
        assert settings.social_connections.owner == OWNER
        assert settings.state_path == Path(tmpdir) / "state"


def test_state_dir_from_environment():
    settings = load_settings(environ={"DAPPY_STATE_DIR": "/tmp/dappy-state"})
    assert settings.state_path == Path("/tmp/dappy-state")


def test_default_state_dir():
    assert load_settings(environ={}).state_path == Path.home() / ".dappy" / "state"


def test_missing_config_file():
    with pytest.raises(ConfigError):
        load_settings("/nonexistent/dappy.yaml", environ={})


def test_unknown_config_key():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_config(tmpdir, {"verification": {"colour": "blue"}})
        with pytest.raises(ConfigError):
            load_settings(path, environ={})


def test_yaml_managers_as_comma_separated_string():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_config(
            tmpdir,
            {
                "verification": {
                    "owner": OWNER,
                    "token_name": "UserVerificationToken",
                    "token_symbol": "UVT",
                    "token_expiration_time": 60,
                    "managers": f"{MANAGER_1}, {MANAGER_2}",
                },
            },
        )
        verification = load_settings(path, environ={}).verification.validate()
        assert verification.managers == [MANAGER_1, MANAGER_2]
