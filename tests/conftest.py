from pathlib import Path

import pytest
from loguru import logger

from config.settings import get_settings
from digitlab.models import MoneyManagementConfig


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch):
    """Point the database/log directory at a temp dir and drop cached settings."""
    monkeypatch.setenv("DB_DIR", str(tmp_path / "db"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    # drop sinks bound to CliRunner streams
    logger.remove()


@pytest.fixture
def fixed_config() -> MoneyManagementConfig:
    return MoneyManagementConfig(mode="fixed", initial_stake=1.0, profit_percent=50.0)


@pytest.fixture
def scenario_digits() -> tuple[int, ...]:
    return (3, 3, 3, 2, 3, 9, 3, 0)
