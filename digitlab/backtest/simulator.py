"""
Backtest Simulator - sweeps trade horizons over a digit sequence.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence

from loguru import logger

from digitlab.analytics.streaks import StreakCounter
from digitlab.data.digits import validate_digits
from digitlab.models import HorizonResult, TradeSignal
from digitlab.strategies import MAX_TICKS, Outcome, Strategy


@dataclass
class EntryGate:
    """
    Real-capital gating for the management horizon.

    Two filters, checked in order:
    - throttle: one open position at a time, no entry while
      ``position < last_entry_index + horizon``
    - virtual loss: after a real loss, the next ``virtual_loss`` signals are
      skipped before real entries resume
    """

    horizon: int
    virtual_loss: int
    waiting_for_result: bool = False
    waiting_virtual_loss: bool = False
    virtual_loss_count: int = 0
    last_entry_index: int = field(init=False)

    def __post_init__(self) -> None:
        self.last_entry_index = -self.horizon

    def admit(self, position: int) -> bool:
        if self.waiting_for_result and position < self.last_entry_index + self.horizon:
            return False

        if self.waiting_virtual_loss:
            self.virtual_loss_count += 1
            if self.virtual_loss_count >= self.virtual_loss:
                self.waiting_virtual_loss = False
                self.virtual_loss_count = 0
                self.waiting_for_result = False
            return False

        return True

    def enter(self, position: int) -> None:
        self.last_entry_index = position
        self.waiting_for_result = True

    def settle(self, success: bool) -> None:
        if not success and self.virtual_loss > 0:
            self.waiting_virtual_loss = True
            self.virtual_loss_count = 0


class Backtest:
    """Runs one strategy over every horizon from ``strategy.min_ticks`` to MAX_TICKS."""

    def __init__(self, strategy: Strategy):
        self.strategy = strategy

    def run(self, digits: Sequence[int], workers: Optional[int] = None) -> list[HorizonResult]:
        """
        Sweep all horizons.

        Horizons share nothing but the read-only digit tuple, so with
        ``workers > 1`` they are fanned out to a thread pool. Results come
        back ordered by horizon either way.
        """
        sequence = validate_digits(digits, source="backtest input")
        horizons = range(self.strategy.min_ticks, MAX_TICKS + 1)

        if workers is not None and workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(lambda ticks: self.run_horizon(sequence, ticks), horizons))
        else:
            results = [self.run_horizon(sequence, ticks) for ticks in horizons]

        logger.info(
            f"Backtest {self.strategy.describe()} over {len(sequence)} digits: "
            f"{len(results)} horizons swept"
        )
        return results

    def run_horizon(self, digits: Sequence[int], ticks: int) -> HorizonResult:
        is_management_tick = ticks == self.strategy.target_tick
        gate = EntryGate(ticks, self.strategy.virtual_loss) if is_management_tick else None

        total_trades = 0
        skipped_trades = 0
        possible_trades = 0
        wins = 0
        losses = 0
        win_run = StreakCounter()
        loss_run = StreakCounter()
        trades: list[TradeSignal] = []

        for position in range(len(digits) - ticks):
            outcome = self.strategy.execute(digits, position, ticks)
            if outcome is Outcome.NO_SIGNAL:
                continue

            possible_trades += 1

            if gate is not None and not gate.admit(position):
                skipped_trades += 1
                continue

            success = outcome is Outcome.WIN
            total_trades += 1
            trades.append(TradeSignal(success=success, position=position))

            if gate is not None:
                gate.enter(position)
                gate.settle(success)

            if success:
                wins += 1
            else:
                losses += 1
            win_run = win_run.push(success)
            loss_run = loss_run.push(not success)

        result = HorizonResult(
            ticks=ticks,
            total_trades=total_trades,
            skipped_trades=skipped_trades,
            possible_trades=possible_trades,
            wins=wins,
            losses=losses,
            win_rate=(wins / total_trades) * 100 if total_trades > 0 else 0.0,
            loss_rate=(losses / total_trades) * 100 if total_trades > 0 else 0.0,
            max_consecutive_wins=win_run.longest,
            max_consecutive_losses=loss_run.longest,
            trades=tuple(trades),
        )

        logger.debug(
            f"ticks={ticks} trades={total_trades} skipped={skipped_trades} "
            f"possible={possible_trades} win_rate={result.win_rate:.2f}%"
            + (" [management]" if is_management_tick else "")
        )
        return result
