"""Tests for ledger configuration."""

from pathlib import Path

import pytest

from timebank.config import LedgerConfig


class TestLedgerConfig:
    def test_defaults(self):
        config = LedgerConfig()
        assert config.initial_balance == 100
        assert config.initial_reputation == 50
        assert config.max_reputation == 100
        assert config.db_path.name == "ledger.db"

    def test_negative_grant_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(initial_balance=-5)

    def test_initial_reputation_out_of_bounds_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(initial_reputation=90, max_reputation=80)

    def test_bounds_must_stay_within_scale(self):
        with pytest.raises(ValueError):
            LedgerConfig(max_reputation=150)

    def test_db_path_expands_user(self):
        config = LedgerConfig(db_path=Path("~/ledger.db"))
        assert "~" not in str(config.db_path)


class TestFromEnv:
    def test_reads_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TIMEBANK_INITIAL_BALANCE", "250")
        monkeypatch.setenv("TIMEBANK_INITIAL_REPUTATION", "40")
        monkeypatch.setenv("TIMEBANK_DB_PATH", str(tmp_path / "env.db"))
        config = LedgerConfig.from_env()
        assert config.initial_balance == 250
        assert config.initial_reputation == 40
        assert config.db_path == tmp_path / "env.db"

    def test_explicit_path_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TIMEBANK_DB_PATH", str(tmp_path / "env.db"))
        config = LedgerConfig.from_env(db_path=tmp_path / "flag.db")
        assert config.db_path == tmp_path / "flag.db"

    def test_bad_integer_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("TIMEBANK_INITIAL_BALANCE", "lots")
        config = LedgerConfig.from_env()
        assert config.initial_balance == 100
        assert "TIMEBANK_INITIAL_BALANCE" in caplog.text
