"""Tests for RentalConfig and load_config."""

import pytest
import yaml

from rental_kernel.config import DATABASE_URL_ENV, RentalConfig, load_config


@pytest.fixture(autouse=True)
def _no_database_url_env(monkeypatch):
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


class TestRentalConfig:
    def test_defaults(self):
        config = RentalConfig.with_defaults()

        assert config.database_url == "sqlite:///rental.db"
        assert config.status_sweep_cron == "0 1 * * *"
        assert config.expiry_notice_days == 30
        assert config.urgent_expiry_notice_days == 7
        assert config.default_renewal_months == 12
        assert config.scheduling_enabled

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="sweep_hour"):
            RentalConfig.from_dict({"sweep_hour": 3})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"event_workers": 0},
            {"scheduler_tick_seconds": -1},
            {"renewal_scan_days": 0},
            {"database_url": ""},
            {"urgent_expiry_notice_days": 31, "expiry_notice_days": 30},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            RentalConfig.from_dict(overrides)


class TestLoadConfig:
    def test_no_path_gives_defaults(self):
        assert load_config() == RentalConfig()

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "rental.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "database_url": "sqlite:///other.db",
                    "expiry_notice_days": 45,
                    "scheduling_enabled": False,
                }
            )
        )

        config = load_config(path)

        assert config.database_url == "sqlite:///other.db"
        assert config.expiry_notice_days == 45
        assert not config.scheduling_enabled
        assert config.renewal_scan_days == 30

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == RentalConfig()

    def test_environment_overrides_database_url(self, tmp_path, monkeypatch):
        path = tmp_path / "rental.yaml"
        path.write_text("database_url: sqlite:///from_file.db\n")
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://rental@db/rental")

        assert load_config(path).database_url == "postgresql://rental@db/rental"

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")
