# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Tests for profile resolution across CLI flags, config files and environment."""

import json

import pytest

from gitlab_mr.config import (
    DEFAULT_BASE_URL,
    ProfileOverrides,
    ProfileResolver,
    ResolvedProfile,
    env_key_for,
    load_file_config,
    normalize_base_url,
    parse_csv,
    resolve_gitlab_profiles,
)
from gitlab_mr.errors import ConfigurationError


def resolve(overrides=None, document=None, env=None, require_project=True):
    resolver = ProfileResolver(env=env or {}, config_loader=lambda: document or {})
    return resolver.resolve(overrides or ProfileOverrides(), require_project=require_project)


class TestExplicitOverrides:
    """Token or base URL on the command line short-circuits resolution."""

    def test_cli_token_and_base_url_win_over_everything(self):
        document = {"token": "conf-token", "projectId": "111", "baseUrl": "https://conf.example.com"}
        env = {"GITLAB_TOKEN": "env-token", "GITLAB_PROFILES": "A", "GITLAB_A_TOKEN": "a"}
        overrides = ProfileOverrides(
            token="cli-token", project_id="333", base_url="https://cli.example.com/"
        )

        profiles = resolve(overrides, document, env)

        assert profiles == [
            ResolvedProfile(base_url="https://cli.example.com", token="cli-token", project_ref="333")
        ]

    def test_cli_base_url_only_takes_token_from_env(self):
        env = {"GITLAB_TOKEN": "env-token", "GITLAB_PROJECT_PATH": "group/app"}
        overrides = ProfileOverrides(base_url="https://self.example.com")

        profiles = resolve(overrides, {"token": "ignored", "projectId": "1"}, env)

        assert profiles == [
            ResolvedProfile(
                base_url="https://self.example.com", token="env-token", project_ref="group/app"
            )
        ]

    def test_cli_token_without_project_fails(self):
        with pytest.raises(ConfigurationError, match="Missing project reference"):
            resolve(ProfileOverrides(token="cli-token"))

    def test_cli_token_without_project_allowed_when_not_required(self):
        profiles = resolve(ProfileOverrides(token="cli-token"), require_project=False)

        assert profiles == [ResolvedProfile(base_url=DEFAULT_BASE_URL, token="cli-token")]


class TestConfigDocument:
    """Named profiles and top-level fields from the config documents."""

    def test_top_level_document_is_returned_verbatim(self):
        document = {"token": "conf-token", "projectId": "111", "baseUrl": "https://conf.example.com"}

        profiles = resolve(document=document)

        assert profiles == [
            ResolvedProfile(base_url="https://conf.example.com", token="conf-token", project_ref="111")
        ]

    def test_cli_project_override_wins_over_stored_project(self):
        document = {"profiles": {"teamA": {"token": "token-a", "projectId": "111"}}}

        profiles = resolve(ProfileOverrides(profile="teamA", project_id="999"), document)

        assert len(profiles) == 1
        assert profiles[0].token == "token-a"
        assert profiles[0].project_ref == "999"
        assert profiles[0].name == "teamA"

    def test_default_profile_is_used_without_profile_flag(self):
        document = {
            "defaultProfile": "work",
            "profiles": {
                "home": {"token": "home-token", "projectId": "1"},
                "work": {"token": "work-token", "projectId": "2", "baseUrl": "https://work.example.com/"},
            },
        }

        profiles = resolve(document=document)

        assert profiles == [
            ResolvedProfile(
                base_url="https://work.example.com", token="work-token", project_ref="2", name="work"
            )
        ]

    def test_dangling_default_falls_back_to_first_profile(self):
        document = {
            "defaultProfile": "removed",
            "profiles": {
                "first": {"token": "first-token", "projectId": "1"},
                "second": {"token": "second-token", "projectId": "2"},
            },
        }

        profiles = resolve(document=document)

        assert [p.name for p in profiles] == ["first"]

    def test_profile_list_is_trimmed_and_deduplicated(self):
        document = {
            "profiles": {
                "a": {"token": "ta", "projectId": "1"},
                "b": {"token": "tb", "projectId": "2"},
            }
        }

        profiles = resolve(ProfileOverrides(profile=" b, a ,b,"), document)

        assert [p.name for p in profiles] == ["b", "a"]

    def test_all_profiles_keeps_declaration_order(self):
        document = {
            "profiles": {
                "z": {"token": "tz", "projectId": "1"},
                "a": {"token": "ta", "projectPath": "group/a"},
            }
        }

        profiles = resolve(ProfileOverrides(all_profiles=True), document)

        assert [(p.name, p.project_ref) for p in profiles] == [("z", "1"), ("a", "group/a")]

    def test_profile_fields_fall_back_to_top_level(self):
        document = {
            "token": "shared-token",
            "baseUrl": "https://shared.example.com",
            "projectPath": "group/shared",
            "profiles": {"bare": {}},
        }

        profiles = resolve(ProfileOverrides(profile="bare"), document)

        assert profiles == [
            ResolvedProfile(
                base_url="https://shared.example.com",
                token="shared-token",
                project_ref="group/shared",
                name="bare",
            )
        ]

    def test_unknown_profile_name_falls_through_to_environment(self):
        document = {"profiles": {"known": {"token": "t", "projectId": "1"}}}
        env = {"GITLAB_GHOST_TOKEN": "ghost-token", "GITLAB_GHOST_PROJECT_ID": "7"}

        profiles = resolve(ProfileOverrides(profile="ghost"), document, env)

        assert profiles == [
            ResolvedProfile(base_url=DEFAULT_BASE_URL, token="ghost-token", project_ref="7", name="ghost")
        ]

    def test_present_profile_without_token_fails(self):
        document = {"profiles": {"broken": {"projectId": "1"}}}

        with pytest.raises(ConfigurationError, match='Missing token for profile "broken"'):
            resolve(ProfileOverrides(profile="broken"), document)

    def test_present_profile_without_project_fails_only_when_required(self):
        document = {"profiles": {"noproj": {"token": "t"}}}

        with pytest.raises(ConfigurationError, match='profile "noproj"'):
            resolve(ProfileOverrides(profile="noproj"), document)

        profiles = resolve(ProfileOverrides(profile="noproj"), document, require_project=False)
        assert profiles[0].project_ref is None

    def test_token_only_document_without_project_requirement(self):
        profiles = resolve(document={"token": "conf-token"}, require_project=False)

        assert profiles == [ResolvedProfile(base_url=DEFAULT_BASE_URL, token="conf-token")]

    def test_project_ref_only_override_does_not_short_circuit(self):
        document = {"token": "conf-token", "projectId": "111", "baseUrl": "https://conf.example.com"}
        env = {"GITLAB_TOKEN": "env-token"}

        profiles = resolve(ProfileOverrides(project_path="group/other"), document, env)

        assert profiles == [
            ResolvedProfile(
                base_url="https://conf.example.com", token="conf-token", project_ref="group/other"
            )
        ]

    def test_numeric_project_id_in_document_is_accepted(self):
        profiles = resolve(document={"token": "t", "projectId": 42})

        assert profiles[0].project_ref == "42"


class TestEnvironmentProfiles:
    """GITLAB_PROFILES with per-profile variables, then legacy variables."""

    ENV = {
        "GITLAB_PROFILES": "A,B",
        "GITLAB_A_TOKEN": "token-a",
        "GITLAB_A_PROJECT_ID": "100",
        "GITLAB_B_TOKEN": "token-b",
        "GITLAB_B_PROJECT_PATH": "group/b",
    }

    def test_all_profiles_from_environment(self):
        profiles = resolve(ProfileOverrides(all_profiles=True), env=self.ENV)

        assert profiles == [
            ResolvedProfile(base_url=DEFAULT_BASE_URL, token="token-a", project_ref="100", name="A"),
            ResolvedProfile(base_url=DEFAULT_BASE_URL, token="token-b", project_ref="group/b", name="B"),
        ]

    def test_first_declared_profile_without_flags(self):
        profiles = resolve(env=self.ENV)

        assert [p.name for p in profiles] == ["A"]

    def test_profile_flag_selects_environment_profile(self):
        profiles = resolve(ProfileOverrides(profile="B"), env=self.ENV)

        assert [(p.name, p.project_ref) for p in profiles] == [("B", "group/b")]

    def test_cli_project_override_wins_over_profile_env(self):
        profiles = resolve(ProfileOverrides(profile="A", project_id="555"), env=self.ENV)

        assert profiles[0].project_ref == "555"

    def test_per_profile_base_url_then_global_base_url(self):
        env = dict(
            self.ENV,
            GITLAB_A_BASE_URL="https://a.example.com/",
            GITLAB_BASE_URL="https://shared.example.com",
        )

        profiles = resolve(ProfileOverrides(all_profiles=True), env=env)

        assert [p.base_url for p in profiles] == ["https://a.example.com", "https://shared.example.com"]

    def test_missing_profile_token_names_the_variable(self):
        env = {"GITLAB_PROFILES": "team-x"}

        with pytest.raises(ConfigurationError, match="GITLAB_TEAM_X_TOKEN"):
            resolve(env=env)

    def test_missing_profile_project_names_both_variables(self):
        env = {"GITLAB_PROFILES": "A", "GITLAB_A_TOKEN": "token-a"}

        with pytest.raises(ConfigurationError) as excinfo:
            resolve(env=env)

        assert "GITLAB_A_PROJECT_ID" in str(excinfo.value)
        assert "GITLAB_A_PROJECT_PATH" in str(excinfo.value)

    def test_legacy_environment_variables(self):
        env = {
            "GITLAB_TOKEN": "legacy-token",
            "GITLAB_PROJECT_PATH": "group/legacy",
            "GITLAB_BASE_URL": "https://legacy.example.com//",
        }

        profiles = resolve(env=env)

        assert profiles == [
            ResolvedProfile(
                base_url="https://legacy.example.com", token="legacy-token", project_ref="group/legacy"
            )
        ]

    def test_nothing_configured_raises_missing_token(self):
        with pytest.raises(ConfigurationError, match="Missing GitLab token"):
            resolve()

    def test_token_without_project_raises_missing_project(self):
        with pytest.raises(ConfigurationError, match="Missing project reference"):
            resolve(env={"GITLAB_TOKEN": "t"})


class TestHelpers:
    def test_normalize_base_url_is_idempotent(self):
        once = normalize_base_url("https://x.com///")

        assert once == "https://x.com"
        assert normalize_base_url(once) == "https://x.com"

    def test_normalize_base_url_keeps_value_that_would_become_empty(self):
        assert normalize_base_url(" /// ") == "///"

    def test_parse_csv(self):
        assert parse_csv(" a, b ,,a , c") == ["a", "b", "c"]
        assert parse_csv(None) == []

    def test_env_key_for_sanitizes_names(self):
        assert env_key_for("team-a.prod", "TOKEN") == "GITLAB_TEAM_A_PROD_TOKEN"
        assert env_key_for("b2", "PROJECT_PATH") == "GITLAB_B2_PROJECT_PATH"

    def test_env_key_for_rejects_empty_name(self):
        with pytest.raises(ConfigurationError, match="Invalid profile name"):
            env_key_for("  ", "TOKEN")


class TestConfigFiles:
    """Loading the global and project-local documents from disk."""

    def test_local_file_overrides_global_per_key(self, write_global_config, isolated_env):
        write_global_config(
            {
                "baseUrl": "https://global.example.com",
                "profiles": {"a": {"token": "ta", "projectId": "1"}, "b": {"token": "tb"}},
            }
        )
        local = isolated_env / "work" / "gitlab-cli.config.json"
        local.write_text(json.dumps({"profiles": {"b": {"projectId": "2"}}}), encoding="utf-8")

        document = load_file_config()

        assert document["baseUrl"] == "https://global.example.com"
        assert document["profiles"]["a"] == {"token": "ta", "projectId": "1"}
        assert document["profiles"]["b"] == {"token": "tb", "projectId": "2"}

    def test_malformed_global_file_is_treated_as_empty(self, config_dir):
        config_dir.mkdir(parents=True)
        (config_dir / "config.json").write_text("{not json", encoding="utf-8")

        assert load_file_config() == {}

    def test_resolve_gitlab_profiles_reads_real_files(self, write_global_config):
        write_global_config({"profiles": {"main": {"token": "t", "projectId": "9"}}})

        profiles = resolve_gitlab_profiles(ProfileOverrides())

        assert profiles == [
            ResolvedProfile(base_url=DEFAULT_BASE_URL, token="t", project_ref="9", name="main")
        ]
