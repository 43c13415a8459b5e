"""Tests for preshare.config."""

import json
import os

from preshare import __version__, config
from preshare.config import DEFAULT_CONFIG, load_config, preparation_config_from, save_config
from preshare.types import ContributorMeta


class TestLoadSave:
    def test_defaults_when_missing(self, isolated_home):
        assert load_config() == DEFAULT_CONFIG

    def test_roundtrip_merges_over_defaults(self, isolated_home):
        save_config({"redact_pii": False, "custom_regex": ["x"]})
        loaded = load_config()
        assert loaded["redact_pii"] is False
        assert loaded["custom_regex"] == ["x"]
        assert loaded["redact_secrets"] is True

    def test_saved_file_is_private(self, isolated_home):
        save_config(dict(DEFAULT_CONFIG))
        if os.name != "nt":
            assert config.CONFIG_FILE.stat().st_mode & 0o777 == 0o600

    def test_corrupt_file_warns_and_uses_defaults(self, isolated_home, capsys):
        isolated_home.mkdir(parents=True)
        config.CONFIG_FILE.write_text("{broken", encoding="utf-8")
        assert load_config() == DEFAULT_CONFIG
        assert "could not read" in capsys.readouterr().err

    def test_save_writes_json(self, isolated_home):
        save_config({"redact_paths": False})
        assert json.loads(config.CONFIG_FILE.read_text(encoding="utf-8")) == {"redact_paths": False}


class TestPreparationConfigFrom:
    def test_defaults(self):
        prep = preparation_config_from({})
        assert prep.redaction.redact_secrets
        assert prep.redaction.custom_regex == []
        assert prep.selected_fields is None
        assert prep.contributor == ContributorMeta()
        assert prep.app_version == __version__

    def test_stored_values(self):
        prep = preparation_config_from({
            "redact_pii": False,
            "custom_regex": ["ACME-\\d+"],
            "selected_fields": ["type"],
            "high_entropy_threshold": 3.5,
        })
        assert not prep.redaction.redact_pii
        assert prep.redaction.custom_regex == ["ACME-\\d+"]
        assert prep.redaction.high_entropy_threshold == 3.5
        assert prep.selected_fields == ["type"]

    def test_explicit_empty_override_kept(self):
        assert preparation_config_from({}, overrides={"selected_fields": []}).selected_fields == []

    def test_stored_empty_selection_kept(self):
        assert preparation_config_from({"selected_fields": []}).selected_fields == []

    def test_stored_default_selection_uses_schema(self):
        assert preparation_config_from({"selected_fields": None}).selected_fields is None

    def test_none_overrides_are_ignored(self):
        prep = preparation_config_from(
            {"redact_pii": False, "custom_regex": ["a"]},
            overrides={"redact_pii": None, "custom_regex": ["b"], "redact_paths": False},
        )
        assert not prep.redaction.redact_pii
        assert prep.redaction.custom_regex == ["b"]
        assert not prep.redaction.redact_paths

    def test_contributor_passed_through(self):
        contributor = ContributorMeta(contributor_id="dev-7")
        assert preparation_config_from({}, contributor=contributor).contributor.contributor_id == "dev-7"
