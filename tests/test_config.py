"""Tests for the persisted profile and ClientConfig assembly."""

import pytest

from klarna_payments.core import config as config_module
from klarna_payments.core.config import (
    DEFAULT_TIMEOUT_SECONDS,
    ClientConfig,
    ConfigStore,
    Credentials,
    load_client_config,
    resolve_setting_key,
)
from klarna_payments.core.errors import ConfigError, ErrorKind, PreconditionError


class TestConfigStore:
    def test_set_and_get(self, store):
        store.set("username", "merchant")

        assert store.get("username") == "merchant"
        assert store.variables() == {"KLARNA_USERNAME": "merchant"}

    def test_unset_key_reads_as_none(self, store):
        assert store.get("region") is None

    def test_setting_empty_value_removes_key(self, store):
        store.set("region", "na")
        store.set("region", "")

        assert store.get("region") is None

    def test_unknown_key_is_rejected(self, store):
        with pytest.raises(ConfigError):
            store.set("colour", "blue")

    def test_clear_removes_everything(self, store):
        store.update({"username": "merchant", "password": "s3cret"})
        store.clear()

        assert store.as_dict() == {
            "username": None,
            "password": None,
            "region": None,
            "api_key": None,
            "base_url": None,
            "timeout_seconds": None,
        }
        store.clear()

    def test_as_dict_masks_secrets(self, store):
        store.update({"username": "merchant", "password": "s3cret", "region": "na"})

        values = store.as_dict(mask_secrets=True)

        assert values["username"] == "merchant"
        assert values["password"] == "********"
        assert values["region"] == "na"

    @pytest.mark.parametrize(
        "values, expected",
        [
            ({}, False),
            ({"username": "merchant"}, False),
            ({"username": "merchant", "password": "s3cret"}, True),
            ({"api_key": "key"}, True),
            ({"base_url": "https://example.test"}, False),
        ],
        ids=["empty", "username_only", "basic", "api_key", "base_url_only"],
    )
    def test_is_configured(self, store, values, expected):
        store.update(values)

        assert store.is_configured() is expected

    def test_changes_are_visible_to_a_second_store_instance(self, store):
        other = ConfigStore(store.path)
        store.set("api_key", "key")

        assert other.get("api_key") == "key"

    @pytest.mark.parametrize(
        "password",
        ["secret'", "\"quoted\"", " padded ", "x'", "back\\slash\"", "a=b #c"],
        ids=["trailing_single_quote", "double_quoted", "padded", "short", "backslash", "equals_hash"],
    )
    def test_values_read_back_unchanged(self, store, password):
        store.update({"username": "merchant", "password": password})

        assert store.get("password") == password
        assert ConfigStore(store.path).get("username") == "merchant"

    @pytest.mark.parametrize("value", ["line\nbreak", "carriage\rreturn"])
    def test_line_breaks_are_rejected(self, store, value):
        with pytest.raises(ConfigError):
            store.set("password", value)

        assert not store.path.exists()

    def test_numbers_are_stored_as_text(self, store):
        store.set("timeout_seconds", 12.5)

        assert store.get("timeout_seconds") == "12.5"

    def test_unreadable_profile_is_a_config_error(self, tmp_path):
        store = ConfigStore(tmp_path)

        with pytest.raises(ConfigError, match="Cannot read configuration file"):
            store.get("username")

    def test_unwritable_profile_is_a_config_error(self, store, monkeypatch):
        def _deny(path, values):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(config_module, "write_env_file", _deny)

        with pytest.raises(ConfigError, match="Cannot write configuration file"):
            store.set("username", "merchant")

    def test_clear_failure_is_a_config_error(self, tmp_path):
        directory = tmp_path / "profile.env"
        directory.mkdir()

        with pytest.raises(ConfigError, match="Cannot remove configuration file"):
            ConfigStore(directory).clear()


class TestClientConfig:
    def test_from_mapping_normalizes_values(self):
        config = ClientConfig.from_mapping(
            {
                "KLARNA_USERNAME": "merchant",
                "KLARNA_PASSWORD": "s3cret",
                "KLARNA_REGION": " NA ",
                "KLARNA_BASE_URL": "https://playground.example.test/",
                "KLARNA_TIMEOUT_SECONDS": "12.5",
            }
        )

        assert config.credentials == Credentials(username="merchant", password="s3cret")
        assert config.region == "na"
        assert config.base_url == "https://playground.example.test"
        assert config.timeout_seconds == 12.5

    def test_defaults(self):
        config = ClientConfig.from_mapping({})

        assert config.region is None
        assert config.base_url is None
        assert config.timeout_seconds == DEFAULT_TIMEOUT_SECONDS == 30.0

    @pytest.mark.parametrize("raw", ["soon", "0", "-5", "inf", "-inf", "nan"])
    def test_invalid_timeout_is_a_config_error(self, raw):
        with pytest.raises(ConfigError) as exc_info:
            ClientConfig.from_mapping({"KLARNA_TIMEOUT_SECONDS": raw})

        assert isinstance(exc_info.value, PreconditionError)
        assert exc_info.value.kind is ErrorKind.PRECONDITION

    def test_credentials_repr_hides_secrets(self):
        rendered = repr(Credentials(username="merchant", password="s3cret", api_key="key"))

        assert "s3cret" not in rendered
        assert "'key'" not in rendered


class TestLoadClientConfig:
    def test_keyword_arguments_win_over_profile_and_environment(self, store, monkeypatch):
        store.update({"username": "profile-user", "password": "profile-pass", "region": "eu"})
        monkeypatch.setenv("KLARNA_REGION", "na")

        config = load_client_config(store=store, username="kwarg-user")

        assert config.credentials.username == "kwarg-user"
        assert config.credentials.password == "profile-pass"
        assert config.region == "na"

    def test_overrides_mapping_is_applied(self, store):
        config = load_client_config(
            store=store,
            base={},
            overrides={"KLARNA_API_KEY": "key", "KLARNA_BASE_URL": "https://x.test"},
        )

        assert config.credentials.api_key == "key"
        assert config.base_url == "https://x.test"

    def test_numeric_timeout_keyword(self, store):
        config = load_client_config(store=store, base={}, timeout_seconds=5)

        assert config.timeout_seconds == 5.0

    def test_unconfigured_profile_still_loads(self, store):
        config = load_client_config(store=store, base={})

        assert config.credentials == Credentials()


class TestResolveSettingKey:
    @pytest.mark.parametrize(
        "key, expected",
        [("region", "KLARNA_REGION"), ("KLARNA_REGION", "KLARNA_REGION"), ("api_key", "KLARNA_API_KEY")],
    )
    def test_short_and_variable_names(self, key, expected):
        assert resolve_setting_key(key) == expected

    @pytest.mark.parametrize("key", ["colour", "KLARNA_COLOUR", "REGION"])
    def test_unknown_names_are_rejected(self, key):
        with pytest.raises(ConfigError):
            resolve_setting_key(key)
