"""Tests for .env parsing and environment layering."""

from klarna_payments.core.environment import (
    build_environment,
    get_user_env_file,
    load_env_file,
    parse_env_file,
    write_env_file,
)


class TestParseEnvFile:
    def test_missing_file_yields_empty_mapping(self, tmp_path):
        assert parse_env_file(tmp_path / "missing.env") == {}

    def test_skips_comments_blank_lines_and_garbage(self, tmp_path):
        path = tmp_path / "profile.env"
        path.write_text(
            "# comment\n\nKLARNA_USERNAME=merchant\nnot a pair\nKLARNA_REGION = 'na'\n",
            encoding="utf-8",
        )

        assert parse_env_file(path) == {
            "KLARNA_USERNAME": "merchant",
            "KLARNA_REGION": "na",
        }

    def test_only_one_matching_quote_pair_is_removed(self, tmp_path):
        path = tmp_path / "profile.env"
        path.write_text(
            "KLARNA_USERNAME=''merchant''\nKLARNA_PASSWORD=secret'\n", encoding="utf-8"
        )

        assert parse_env_file(path) == {
            "KLARNA_USERNAME": "'merchant'",
            "KLARNA_PASSWORD": "secret'",
        }

    def test_values_may_contain_equals_signs(self, tmp_path):
        path = tmp_path / "profile.env"
        path.write_text("KLARNA_PASSWORD=a=b=c\n", encoding="utf-8")

        assert parse_env_file(path) == {"KLARNA_PASSWORD": "a=b=c"}


class TestWriteEnvFile:
    def test_written_file_parses_back(self, tmp_path):
        path = tmp_path / "nested" / "profile.env"
        write_env_file(path, {"KLARNA_REGION": "oc", "KLARNA_USERNAME": "merchant"})

        assert parse_env_file(path) == {"KLARNA_REGION": "oc", "KLARNA_USERNAME": "merchant"}

    def test_quotes_and_padding_survive_a_round_trip(self, tmp_path):
        values = {"KLARNA_PASSWORD": " it's \"odd\" \\ ", "KLARNA_USERNAME": "x'"}
        path = write_env_file(tmp_path / "profile.env", values)

        assert parse_env_file(path) == values

    def test_file_is_private(self, tmp_path):
        path = write_env_file(tmp_path / "profile.env", {"KLARNA_PASSWORD": "x"})

        assert path.stat().st_mode & 0o077 == 0


class TestLoadEnvFile:
    def test_existing_keys_are_preserved(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("KLARNA_REGION=na\nKLARNA_USERNAME=from-file\n", encoding="utf-8")
        environ = {"KLARNA_USERNAME": "from-env"}

        merged = load_env_file(str(path), environ=environ)

        assert merged == {"KLARNA_USERNAME": "from-env", "KLARNA_REGION": "na"}
        assert environ["KLARNA_REGION"] == "na"


class TestBuildEnvironment:
    def test_layers_profile_then_environment_then_overrides(self):
        environment = build_environment(
            profile={"KLARNA_USERNAME": "profile", "KLARNA_REGION": "eu"},
            base={"KLARNA_REGION": "na", "HOME": "/root"},
            overrides={"KLARNA_USERNAME": "override"},
        )

        assert environment.get("KLARNA_USERNAME") == "override"
        assert environment.get("KLARNA_REGION") == "na"

    def test_ignores_unrelated_variables(self):
        environment = build_environment(base={"PATH": "/usr/bin"})

        assert environment.get("PATH") is None

    def test_empty_environment_value_does_not_shadow_profile(self):
        environment = build_environment(
            profile={"KLARNA_API_KEY": "key"},
            base={"KLARNA_API_KEY": ""},
        )

        assert environment.get("KLARNA_API_KEY") == "key"

    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("KLARNA_REGION", "oc")

        assert build_environment().get("KLARNA_REGION") == "oc"


def test_user_env_file_honours_xdg_config_home(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert get_user_env_file() == tmp_path / "klarna-payments" / ".env"
