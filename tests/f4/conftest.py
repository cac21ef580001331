"""Fixtures for F4 tests - CLI and Web API."""

import pytest
import yaml

from trainer.config.app_config import ENV_CATALOG_PATH, ENV_DB_PATH, clear_config_cache
from trainer.web.service import reset_trainer


@pytest.fixture
def project_dir(tmp_path, monkeypatch, catalog_data):
    """Isolated project root with a config file and the test catalog."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(ENV_DB_PATH, raising=False)
    monkeypatch.delenv(ENV_CATALOG_PATH, raising=False)

    catalog_dir = tmp_path / "data" / "catalog"
    catalog_dir.mkdir(parents=True)
    (catalog_dir / "test.yaml").write_text(yaml.safe_dump(catalog_data), encoding="utf-8")

    config_dir = tmp_path / "data" / "config"
    config_dir.mkdir(parents=True)
    (config_dir / "trainer_config_v1.yaml").write_text(
        yaml.safe_dump(
            {
                "paths": {
                    "db_path": "db/trainer.db",
                    "catalog_path": "data/catalog/test.yaml",
                },
                "scheduler": {"active_track": "Test Track", "random_seed": 7},
                "log_level": "warning",
            }
        ),
        encoding="utf-8",
    )

    clear_config_cache()
    reset_trainer()
    yield tmp_path
    reset_trainer()
    clear_config_cache()
