from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

ManagementMode = Literal["fixed", "martingale", "soros", "martingale-soros"]
RecoveryPolicyName = Literal["counter", "accumulated"]


class MoneyManagementConfig(BaseModel):
    """Money-management parameters shared by the backtest overlay and the live session."""

    model_config = {"from_attributes": True, "frozen": True}

    mode: ManagementMode = "fixed"
    initial_stake: float = Field(gt=0)
    profit_percent: float = Field(gt=0)
    max_stake: Optional[float] = Field(default=None, gt=0)
    max_loss_streak: Optional[int] = Field(default=None, ge=1)
    soros_level: Optional[int] = Field(default=None, ge=1)
    target_tick: int = Field(default=1, ge=1)
    recovery: RecoveryPolicyName = "counter"
    wins_before_recovery: int = Field(default=1, ge=1)
    min_stake: float = Field(default=0.35, ge=0)

    @model_validator(mode="after")
    def validate_stake_limits(self) -> "MoneyManagementConfig":
        if self.max_stake is not None and self.max_stake < self.initial_stake:
            raise ValueError(
                f"max_stake ({self.max_stake}) must not be below initial_stake ({self.initial_stake})"
            )
        return self

    @property
    def profit_rate(self) -> float:
        return self.profit_percent / 100

    @property
    def effective_soros_level(self) -> int:
        return self.soros_level or 1


class TradeResult(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    success: bool
    stake: float
    profit: float
    balance_after_trade: float

    @computed_field
    @property
    def kind(self) -> Literal["win", "loss"]:
        return "win" if self.success else "loss"


class EngineStats(BaseModel):
    model_config = {"from_attributes": True}

    current_balance: float
    consecutive_losses: int
    consecutive_wins: int
    soros_level: int
    last_stake: float
    last_profit: float
    recovery_mode: bool
    accumulated_loss: float
