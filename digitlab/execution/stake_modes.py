"""
Stake modes - one class per money-management mode.

A mode reads the engine state and the last settled trade and returns the
next raw stake. Balance and max_stake limits are applied by the engine
afterwards, so a mode never has to clamp.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Optional

from loguru import logger

from digitlab.models import MoneyManagementConfig, TradeResult
from digitlab.utils.exceptions import ConfigError


@dataclass
class EngineState:
    balance: float
    current_stake: float
    consecutive_losses: int = 0
    consecutive_wins: int = 0
    soros_level: int = 0
    last_trade: Optional[TradeResult] = None
    recovery_mode: bool = False
    accumulated_loss: float = 0.0
    ladder_closed: bool = False


class StakeMode(ABC):
    name: ClassVar[str]

    @abstractmethod
    def next_stake(self, state: EngineState, config: MoneyManagementConfig) -> float:
        """Raw next stake; only called once a trade has been recorded."""

    def on_settled(self, state: EngineState, trade: TradeResult) -> None:
        """Hook run after the engine has updated balance and streak counters."""


class FixedStake(StakeMode):
    name = "fixed"

    def next_stake(self, state: EngineState, config: MoneyManagementConfig) -> float:
        return config.initial_stake


class MartingaleStake(StakeMode):
    """
    Loss ladder sized so the next win recovers the last stake plus one initial stake.

    With max_loss_streak set, the ladder resets to the initial stake once that
    many losses in a row have been taken.
    """

    name = "martingale"

    def next_stake(self, state: EngineState, config: MoneyManagementConfig) -> float:
        last = state.last_trade
        assert last is not None

        if last.success:
            state.consecutive_losses = 0
            return config.initial_stake + last.stake * config.profit_rate

        if config.max_loss_streak and state.consecutive_losses >= config.max_loss_streak:
            logger.warning(
                f"Max loss streak reached ({state.consecutive_losses} >= "
                f"{config.max_loss_streak}), resetting to initial stake"
            )
            state.consecutive_losses = 0
            return config.initial_stake

        return (last.stake + config.initial_stake) / config.profit_rate


class SorosStake(StakeMode):
    """Compound the last win's profit into the next stake, up to ``soros_level`` levels."""

    name = "soros"

    def next_stake(self, state: EngineState, config: MoneyManagementConfig) -> float:
        last = state.last_trade
        assert last is not None

        if not last.success:
            state.soros_level = 0
            return config.initial_stake

        state.soros_level += 1
        if state.soros_level > config.effective_soros_level:
            logger.info(f"Soros cap {config.effective_soros_level} reached, back to initial stake")
            state.soros_level = 0
            return config.initial_stake

        return config.initial_stake + last.profit


class RecoveryPolicy(ABC):
    """How the combined martingale-soros mode climbs out of a losing run."""

    name: ClassVar[str]

    @abstractmethod
    def after_loss(self, state: EngineState, config: MoneyManagementConfig) -> float:
        ...

    @abstractmethod
    def after_win(self, state: EngineState, config: MoneyManagementConfig) -> Optional[float]:
        """Stake for a win inside a recovery episode, or None to fall through to soros."""

    @abstractmethod
    def on_settled(self, state: EngineState, trade: TradeResult) -> None:
        ...


class CounterRecovery(RecoveryPolicy):
    """
    Recovery driven purely by the consecutive-loss count.

    Each loss continues a martingale ladder. The win that ends the ladder
    banks its profit on top of the initial stake without counting as a soros
    level.
    """

    name = "counter"

    def __init__(self) -> None:
        self._martingale = MartingaleStake()

    def after_loss(self, state: EngineState, config: MoneyManagementConfig) -> float:
        return self._martingale.next_stake(state, config)

    def after_win(self, state: EngineState, config: MoneyManagementConfig) -> Optional[float]:
        if not state.ladder_closed:
            return None
        assert state.last_trade is not None
        return config.initial_stake + state.last_trade.profit

    def on_settled(self, state: EngineState, trade: TradeResult) -> None:
        if trade.success:
            state.ladder_closed = state.recovery_mode
            state.recovery_mode = False
        else:
            state.ladder_closed = False
            state.recovery_mode = True


class AccumulatedRecovery(RecoveryPolicy):
    """
    Recovery sized from the total loss of the episode.

    Losses drop the stake back to the initial stake and add to
    ``accumulated_loss``. After ``wins_before_recovery`` wins at the initial
    stake, a single recovery stake is placed whose payout covers the
    accumulated loss plus one initial stake. The episode closes when that
    stake wins.
    """

    name = "accumulated"

    def __init__(self, wins_before_recovery: int = 1):
        self.wins_before_recovery = wins_before_recovery

    def after_loss(self, state: EngineState, config: MoneyManagementConfig) -> float:
        return config.initial_stake

    def after_win(self, state: EngineState, config: MoneyManagementConfig) -> Optional[float]:
        if not state.recovery_mode:
            return None
        if state.consecutive_wins < self.wins_before_recovery:
            return config.initial_stake
        return (state.accumulated_loss + config.initial_stake) / config.profit_rate

    def on_settled(self, state: EngineState, trade: TradeResult) -> None:
        if not trade.success:
            state.recovery_mode = True
            state.accumulated_loss += abs(trade.profit)
            return

        # This win is already counted; the ones before it confirmed the recovery stake.
        confirming_wins = state.consecutive_wins - 1
        if state.recovery_mode and confirming_wins >= self.wins_before_recovery:
            logger.info(f"Recovered accumulated loss of {state.accumulated_loss:.2f}")
            state.recovery_mode = False
            state.accumulated_loss = 0.0
            state.consecutive_wins = 0


class MartingaleSorosStake(StakeMode):
    name = "martingale-soros"

    def __init__(self, recovery: RecoveryPolicy):
        self.recovery = recovery
        self._soros = SorosStake()

    def next_stake(self, state: EngineState, config: MoneyManagementConfig) -> float:
        last = state.last_trade
        assert last is not None

        if not last.success:
            return self.recovery.after_loss(state, config)

        stake = self.recovery.after_win(state, config)
        if stake is None:
            return self._soros.next_stake(state, config)
        return stake

    def on_settled(self, state: EngineState, trade: TradeResult) -> None:
        self.recovery.on_settled(state, trade)


def create_recovery_policy(config: MoneyManagementConfig) -> RecoveryPolicy:
    if config.recovery == "counter":
        return CounterRecovery()
    if config.recovery == "accumulated":
        return AccumulatedRecovery(config.wins_before_recovery)
    raise ConfigError(f"Unknown recovery policy '{config.recovery}'")


def create_stake_mode(config: MoneyManagementConfig) -> StakeMode:
    if config.mode == "fixed":
        return FixedStake()
    if config.mode == "martingale":
        return MartingaleStake()
    if config.mode == "soros":
        return SorosStake()
    if config.mode == "martingale-soros":
        return MartingaleSorosStake(create_recovery_policy(config))
    raise ConfigError(f"Unknown money management mode '{config.mode}'")
