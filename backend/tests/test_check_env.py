"""
Tests for the environment report script.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest

from scripts import check_env


class TestCheckEnv:

    @pytest.mark.unit
    def test_secrets_are_masked(self):
        assert check_env.mask("JWT_SECRET", "abcdefgh") == "ab****gh"
        assert check_env.mask("ADMIN_PASSWORD", "abc") == "****"
        assert check_env.mask("DATABASE_URL", "sqlite:///x.db") == "sqlite:///x.db"

    @pytest.mark.unit
    def test_missing_required(self):
        report = check_env.collect({"DATABASE_URL": "sqlite:///x.db", "WAWP_ACCESS_TOKEN": "tok-123456"})
        assert report["missing"] == ["ENVIRONMENT"]
        assert report["required"] == {"DATABASE_URL": "sqlite:///x.db"}
        assert report["optional"]["WAWP_ACCESS_TOKEN"] == "to******56"
        assert report["optional"]["GMAIL_USER"] is None

    @pytest.mark.unit
    def test_process_env_overrides_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("ENVIRONMENT=development\nFROM_EMAIL=file@bizchat.com\n")
        monkeypatch.setenv("ENVIRONMENT", "production")
        values = check_env.load_env(str(env_file))
        assert values["ENVIRONMENT"] == "production"
        assert values["FROM_EMAIL"] == "file@bizchat.com"
