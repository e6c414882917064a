"""Backtest result models: raw per-horizon sweeps, derived analytics and the financial overlay."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from digitlab.models.trade import TradeResult


class TradeSignal(BaseModel):
    """A fired strategy signal at ``position`` of the digit sequence."""

    model_config = {"frozen": True}

    success: bool
    position: int = Field(ge=0)


class HorizonResult(BaseModel):
    """Raw sweep output for one horizon."""

    model_config = {"frozen": True}

    ticks: int = Field(ge=1)
    total_trades: int = 0
    skipped_trades: int = 0
    possible_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    loss_rate: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    trades: tuple[TradeSignal, ...] = ()


class StreakStat(BaseModel):
    """What followed runs of one length: how often, how many signals until the streak flipped back."""

    occurrences: int = 0
    average_trades: float = 0.0
    rate: float = 0.0


class StreakDistribution(BaseModel):
    wins: dict[int, int] = {}
    losses: dict[int, int] = {}


class ProcessedHorizonResult(HorizonResult):
    """HorizonResult enriched with streak analytics.

    The financial fields stay at their neutral values: money is only simulated
    on the management horizon (see FinancialResult).
    """

    average_consecutive_wins: float = 0.0
    average_consecutive_losses: float = 0.0
    wins_after_consecutive_losses: dict[int, StreakStat] = {}
    losses_after_consecutive_wins: dict[int, StreakStat] = {}
    streak_distribution: StreakDistribution = Field(default_factory=StreakDistribution)
    final_balance: float = 0.0
    total_volume: float = 0.0
    max_drawdown: float = 0.0
    max_balance: float = 0.0
    min_balance: float = 0.0


class FinancialResult(BaseModel):
    """Stake-sizing replay over the management horizon's signals."""

    ticks: int
    initial_balance: float
    final_balance: float
    total_volume: float = 0.0
    max_drawdown: float = 0.0
    max_balance: float
    min_balance: float
    executed_trades: int = 0
    wins: int = 0
    losses: int = 0
    halted: bool = False
    halted_at: Optional[int] = None
    trades: list[TradeResult] = []

    @property
    def net_profit(self) -> float:
        return self.final_balance - self.initial_balance


class CompleteBacktestResult(BaseModel):
    backtest: list[ProcessedHorizonResult] = []
    management: Optional[FinancialResult] = None

    def horizon(self, ticks: int) -> Optional[ProcessedHorizonResult]:
        for result in self.backtest:
            if result.ticks == ticks:
                return result
        return None


class ScoredResult(BaseModel):
    """A ranking candidate. ``key`` is whatever was compared: horizon, entry digit or strategy name."""

    key: Any
    result: HorizonResult
    score: float
