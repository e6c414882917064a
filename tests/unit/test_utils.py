from pathlib import Path

from loguru import logger

from digitlab.utils.exceptions import (
    ConfigError,
    DataLoadError,
    DigitLabError,
    OrderError,
    StoreError,
)
from digitlab.utils.logging import setup_logging


def test_exception_messages() -> None:
    assert str(ConfigError("bad mode")) == "Configuration error: bad mode"
    assert str(DataLoadError("empty", "ticks.csv")) == "Failed to load digits from ticks.csv: empty"
    assert str(DataLoadError("empty")) == "Failed to load digits: empty"
    assert str(StoreError("locked")) == "Trade store error: locked"
    assert str(OrderError("rejected", "c9")) == "Order failed (contract c9): rejected"


def test_exceptions_share_base() -> None:
    for error in (ConfigError("x"), DataLoadError("x"), StoreError("x"), OrderError("x")):
        assert isinstance(error, DigitLabError)


def test_setup_logging_writes_file(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    setup_logging("DEBUG", log_dir)
    logger.info("backtest finished")
    logger.remove()

    content = (log_dir / "digitlab.log").read_text()
    assert "backtest finished" in content
