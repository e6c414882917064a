"""
Money Manager - the stake-sizing state machine shared by backtests and live sessions.
"""
from __future__ import annotations

import math
from dataclasses import replace

from loguru import logger

from digitlab.execution.stake_modes import EngineState, StakeMode, create_stake_mode
from digitlab.models import EngineStats, MoneyManagementConfig, TradeResult
from digitlab.utils.exceptions import ConfigError


class MoneyManager:
    """
    Sizes each stake from the configured mode and the outcome of the last trade.

    The engine is sequential: every ``calculate_next_stake`` is followed by
    exactly one ``update_last_trade`` before the next stake is asked for.
    A stake of 0 means "do not trade": the balance is exhausted or the
    computed stake breaks the balance or max_stake limit. A declined stake
    leaves the state untouched.
    """

    def __init__(self, config: MoneyManagementConfig, initial_balance: float):
        """
        Args:
            config: Money-management settings (validated on construction)
            initial_balance: Starting balance; must be a finite, non-negative amount
        """
        if not math.isfinite(initial_balance) or initial_balance < 0:
            raise ConfigError(f"initial_balance must be non-negative, got {initial_balance}")

        self.config = config
        self.mode: StakeMode = create_stake_mode(config)
        self.state = EngineState(balance=initial_balance, current_stake=config.initial_stake)

    @property
    def current_stake(self) -> float:
        return self.state.current_stake

    def set_stake(self, value: float) -> bool:
        """Override the next stake; values below the venue minimum are ignored."""
        if value < self.config.min_stake:
            logger.warning(f"Stake override {value:.2f} below minimum {self.config.min_stake:.2f}")
            return False
        self.state.current_stake = value
        return True

    def calculate_next_stake(self) -> float:
        state = self.state

        if state.balance <= 0:
            logger.warning(f"Insufficient balance ({state.balance:.2f}), not trading")
            return 0.0

        if state.last_trade is None:
            state.current_stake = min(self.config.initial_stake, state.balance)
            return state.current_stake

        # modes advance their counters on a draft that is kept only if the stake is accepted
        draft = replace(state)
        next_stake = self.mode.next_stake(draft, self.config)

        if next_stake > state.balance:
            logger.warning(
                f"Stake {next_stake:.2f} exceeds balance {state.balance:.2f}, not trading"
            )
            return 0.0

        if self.config.max_stake is not None and next_stake > self.config.max_stake:
            logger.warning(
                f"Stake {next_stake:.2f} exceeds max_stake {self.config.max_stake:.2f}, not trading"
            )
            return 0.0

        draft.current_stake = next_stake
        self.state = draft
        logger.debug(f"{self.mode.name}: next stake {next_stake:.2f}")
        return next_stake

    def update_last_trade(self, success: bool) -> TradeResult:
        state = self.state
        stake = state.current_stake
        profit = stake * self.config.profit_rate if success else -stake

        state.balance += profit
        trade = TradeResult(
            success=success,
            stake=stake,
            profit=profit,
            balance_after_trade=state.balance,
        )
        state.last_trade = trade

        if success:
            state.consecutive_losses = 0
            state.consecutive_wins += 1
        else:
            state.consecutive_losses += 1
            state.consecutive_wins = 0
            state.soros_level = 0

        self.mode.on_settled(state, trade)

        logger.debug(
            f"Trade {trade.kind}: stake={stake:.2f} profit={profit:+.2f} "
            f"balance={state.balance:.2f}"
        )
        return trade

    def get_current_balance(self) -> float:
        return self.state.balance

    def get_last_trade(self) -> TradeResult | None:
        return self.state.last_trade

    def get_stats(self) -> EngineStats:
        last = self.state.last_trade
        return EngineStats(
            current_balance=self.state.balance,
            consecutive_losses=self.state.consecutive_losses,
            consecutive_wins=self.state.consecutive_wins,
            soros_level=self.state.soros_level,
            last_stake=last.stake if last else 0.0,
            last_profit=last.profit if last else 0.0,
            recovery_mode=self.state.recovery_mode,
            accumulated_loss=self.state.accumulated_loss,
        )
