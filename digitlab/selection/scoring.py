"""
Selection - ranks backtest candidates by win rate and loss-streak depth.
"""
from __future__ import annotations

from typing import Any, Hashable, Iterable, Mapping, Optional, Sequence

from loguru import logger

from digitlab.backtest.simulator import Backtest
from digitlab.models import HorizonResult, MoneyManagementConfig, ScoredResult
from digitlab.strategies import Strategy, create_strategy

WIN_RATE_WEIGHT = 0.7
STREAK_CEILING = 10
STREAK_POINT = 3


def score(result: HorizonResult) -> float:
    return result.win_rate * WIN_RATE_WEIGHT + (STREAK_CEILING - result.max_consecutive_losses) * STREAK_POINT


def rank(candidates: Mapping[Hashable, HorizonResult]) -> list[ScoredResult]:
    """All candidates by descending score; ties keep their input order."""
    scored = [ScoredResult(key=key, result=result, score=score(result)) for key, result in candidates.items()]
    return sorted(scored, key=lambda item: item.score, reverse=True)


def select_best(candidates: Mapping[Hashable, HorizonResult]) -> Optional[ScoredResult]:
    """Highest-scoring candidate; on a tie the first one seen wins."""
    best: Optional[ScoredResult] = None
    for key, result in candidates.items():
        candidate = ScoredResult(key=key, result=result, score=score(result))
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def best_horizon(results: Iterable[HorizonResult]) -> Optional[ScoredResult]:
    return select_best({result.ticks: result for result in results})


def compare_entry_digits(
    digits: Sequence[int],
    strategy_name: str,
    money_management: MoneyManagementConfig,
    horizon: int,
    entry_digits: Iterable[int] = range(10),
    **params: Any,
) -> Optional[ScoredResult]:
    """Backtest one strategy per entry digit and pick the best at ``horizon``."""
    strategies = {
        entry_digit: create_strategy(strategy_name, money_management, entry_digit=entry_digit, **params)
        for entry_digit in entry_digits
    }
    return compare_strategies(digits, strategies, horizon)


def collect_candidates(
    digits: Sequence[int],
    strategies: Mapping[Hashable, Strategy],
    horizon: int,
) -> dict[Hashable, HorizonResult]:
    """Backtest each strategy variant and keep its result at ``horizon``."""
    candidates: dict[Hashable, HorizonResult] = {}
    for key, strategy in strategies.items():
        for result in Backtest(strategy).run(digits):
            if result.ticks == horizon:
                candidates[key] = result
                break
        else:
            logger.warning(f"Candidate {key!r} does not sweep horizon {horizon}, skipped")
    return candidates


def compare_strategies(
    digits: Sequence[int],
    strategies: Mapping[Hashable, Strategy],
    horizon: int,
) -> Optional[ScoredResult]:
    """Backtest each strategy variant and pick the best at ``horizon``."""
    best = select_best(collect_candidates(digits, strategies, horizon))
    if best is not None:
        logger.info(
            f"Best candidate at {horizon} ticks: {best.key!r} "
            f"(score={best.score:.2f}, win_rate={best.result.win_rate:.2f}%)"
        )
    return best
