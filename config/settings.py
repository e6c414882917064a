from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from digitlab.models import ManagementMode, MoneyManagementConfig, RecoveryPolicyName


class MoneyManagementSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MM_")

    mode: ManagementMode = Field(default="martingale-soros", alias="MM_MODE")
    initial_stake: float = Field(default=0.35, alias="MM_INITIAL_STAKE")
    profit_percent: float = Field(default=22.0, alias="MM_PROFIT_PERCENT")
    max_stake: Optional[float] = Field(default=100.0, alias="MM_MAX_STAKE")
    max_loss_streak: Optional[int] = Field(default=7, alias="MM_MAX_LOSS_STREAK")
    soros_level: Optional[int] = Field(default=20, alias="MM_SOROS_LEVEL")
    target_tick: int = Field(default=8, alias="MM_TARGET_TICK")
    recovery: RecoveryPolicyName = Field(default="counter", alias="MM_RECOVERY")
    wins_before_recovery: int = Field(default=1, alias="MM_WINS_BEFORE_RECOVERY")
    min_stake: float = Field(default=0.35, alias="MM_MIN_STAKE")

    def to_config(self) -> MoneyManagementConfig:
        return MoneyManagementConfig(
            mode=self.mode,
            initial_stake=self.initial_stake,
            profit_percent=self.profit_percent,
            max_stake=self.max_stake,
            max_loss_streak=self.max_loss_streak,
            soros_level=self.soros_level,
            target_tick=self.target_tick,
            recovery=self.recovery,
            wins_before_recovery=self.wins_before_recovery,
            min_stake=self.min_stake,
        )


class BacktestSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BACKTEST_")

    strategy: str = Field(default="digit_over", alias="BACKTEST_STRATEGY")
    entry_digit: Optional[int] = Field(default=3, alias="BACKTEST_ENTRY_DIGIT")
    barrier: int = Field(default=1, alias="BACKTEST_BARRIER")
    min_ticks: int = Field(default=1, alias="BACKTEST_MIN_TICKS")
    virtual_loss: int = Field(default=0, alias="BACKTEST_VIRTUAL_LOSS")
    initial_balance: float = Field(default=100.0, alias="BACKTEST_INITIAL_BALANCE")
    pip_size: Optional[int] = Field(default=None, alias="BACKTEST_PIP_SIZE")
    workers: Optional[int] = Field(default=None, alias="BACKTEST_WORKERS")


class LiveSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIVE_")

    symbol: str = Field(default="R_10", alias="LIVE_SYMBOL")
    contract_ticks: int = Field(default=8, alias="LIVE_CONTRACT_TICKS")
    starting_balance: float = Field(default=100.0, alias="LIVE_STARTING_BALANCE")
    history_size: int = Field(default=21, alias="LIVE_HISTORY_SIZE")


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="")

    db_dir: Path = Field(default=Path("db"), alias="DB_DIR")

    @computed_field
    @property
    def sqlite_path(self) -> Path:
        return self.db_dir / "trades.db"

    @computed_field
    @property
    def log_dir(self) -> Path:
        return self.db_dir / "logs"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    money_management: MoneyManagementSettings = Field(default_factory=MoneyManagementSettings)
    backtest: BacktestSettings = Field(default_factory=BacktestSettings)
    live: LiveSettings = Field(default_factory=LiveSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()
