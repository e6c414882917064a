"""
Streak analytics over the ordered trade signals of one horizon.

Nothing here mutates its input: every function returns fresh values and
``post_process`` returns a new ProcessedHorizonResult.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from digitlab.models import (
    HorizonResult,
    ProcessedHorizonResult,
    StreakDistribution,
    StreakStat,
    TradeSignal,
)


@dataclass(frozen=True)
class StreakCounter:
    """Fold state for a running streak: (current run, longest run so far)."""

    current: int = 0
    longest: int = 0

    def push(self, hit: bool) -> StreakCounter:
        current = self.current + 1 if hit else 0
        return StreakCounter(current=current, longest=max(self.longest, current))


def get_streaks(trades: Sequence[TradeSignal], for_wins: bool) -> list[int]:
    """Lengths of the maximal runs of ``for_wins`` outcomes, in order of appearance."""
    streaks: list[int] = []
    current = 0

    for trade in trades:
        if trade.success == for_wins:
            current += 1
        elif current > 0:
            streaks.append(current)
            current = 0

    if current > 0:
        streaks.append(current)
    return streaks


def average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def count_streaks(streaks: Sequence[int]) -> dict[int, int]:
    histogram: dict[int, int] = {}
    for length in streaks:
        histogram[length] = histogram.get(length, 0) + 1
    return histogram


def trades_after_losses(trades: Sequence[TradeSignal]) -> dict[int, StreakStat]:
    """For each loss-run length, how many signals the following win streak lasted."""
    return _runs_followed_by(trades, run_of_wins=False)


def trades_after_wins(trades: Sequence[TradeSignal]) -> dict[int, StreakStat]:
    """For each win-run length, how many signals the following loss streak lasted."""
    return _runs_followed_by(trades, run_of_wins=True)


def _runs_followed_by(trades: Sequence[TradeSignal], run_of_wins: bool) -> dict[int, StreakStat]:
    table: dict[int, StreakStat] = {}
    run_length = 0

    # The final signal is never a breaking point: there is nothing after it.
    for i in range(len(trades) - 1):
        if trades[i].success == run_of_wins:
            run_length += 1
            continue

        if run_length > 0:
            following = 1
            for j in range(i + 1, len(trades)):
                if trades[j].success == run_of_wins:
                    break
                following += 1

            previous = table.get(run_length, StreakStat())
            occurrences = previous.occurrences + 1
            table[run_length] = StreakStat(
                occurrences=occurrences,
                average_trades=(previous.average_trades * (occurrences - 1) + following) / occurrences,
                rate=occurrences / len(trades) * 100,
            )
        run_length = 0

    return table


def post_process(result: HorizonResult, initial_balance: float) -> ProcessedHorizonResult:
    """Attach streak analytics to a raw horizon result; financial fields stay neutral."""
    win_streaks = get_streaks(result.trades, True)
    loss_streaks = get_streaks(result.trades, False)

    return ProcessedHorizonResult(
        **dict(result),
        average_consecutive_wins=average(win_streaks),
        average_consecutive_losses=average(loss_streaks),
        wins_after_consecutive_losses=trades_after_losses(result.trades),
        losses_after_consecutive_wins=trades_after_wins(result.trades),
        streak_distribution=StreakDistribution(
            wins=count_streaks(win_streaks),
            losses=count_streaks(loss_streaks),
        ),
        final_balance=initial_balance,
        total_volume=0.0,
        max_drawdown=0.0,
        max_balance=initial_balance,
        min_balance=initial_balance,
    )
