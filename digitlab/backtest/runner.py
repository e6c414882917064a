"""
Backtest runner - signal sweep, streak analytics and the financial overlay in one call.
"""
from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from digitlab.analytics.streaks import post_process
from digitlab.backtest.simulator import Backtest
from digitlab.execution.money_manager import MoneyManager
from digitlab.models import (
    CompleteBacktestResult,
    FinancialResult,
    HorizonResult,
    MoneyManagementConfig,
    TradeResult,
)
from digitlab.strategies import Strategy


def run_backtest(
    digits: Sequence[int],
    strategy: Strategy,
    initial_balance: float = 100.0,
    workers: Optional[int] = None,
) -> CompleteBacktestResult:
    """
    Run the full backtest pipeline for one strategy.

    Every swept horizon gets streak analytics with neutral financial fields;
    money is only simulated on the management horizon (target_tick).

    Args:
        digits: Digit sequence to replay
        strategy: Strategy under test
        initial_balance: Starting balance for the financial overlay
        workers: Optional thread count for the horizon sweep

    Returns:
        CompleteBacktestResult with per-horizon analytics and the overlay
    """
    raw_results = Backtest(strategy).run(digits, workers=workers)
    processed = [post_process(result, initial_balance) for result in raw_results]

    management: Optional[FinancialResult] = None
    for result in raw_results:
        if result.ticks == strategy.target_tick:
            management = simulate_financials(result, strategy.money_management, initial_balance)
            break
    else:
        logger.warning(
            f"target_tick {strategy.target_tick} outside swept horizons "
            f"[{strategy.min_ticks}, {raw_results[-1].ticks if raw_results else strategy.min_ticks}], "
            "no financial overlay"
        )

    return CompleteBacktestResult(backtest=processed, management=management)


def simulate_financials(
    result: HorizonResult,
    config: MoneyManagementConfig,
    initial_balance: float,
) -> FinancialResult:
    """
    Replay a horizon's recorded signals through a fresh MoneyManager.

    The overlay halts at the first declined stake (0), the same point where a
    live session would stop trading.
    """
    manager = MoneyManager(config, initial_balance)

    ledger: list[TradeResult] = []
    total_volume = 0.0
    peak = initial_balance
    max_balance = initial_balance
    min_balance = initial_balance
    max_drawdown = 0.0
    halted_at: Optional[int] = None

    for signal in result.trades:
        stake = manager.calculate_next_stake()
        if stake <= 0:
            halted_at = signal.position
            logger.warning(
                f"Financial overlay halted at position {signal.position}: "
                f"balance={manager.get_current_balance():.2f}"
            )
            break

        trade = manager.update_last_trade(signal.success)
        ledger.append(trade)
        total_volume += stake

        balance = trade.balance_after_trade
        max_balance = max(max_balance, balance)
        min_balance = min(min_balance, balance)
        if balance > peak:
            peak = balance
        drawdown = (peak - balance) / peak if peak > 0 else 0.0
        max_drawdown = max(max_drawdown, drawdown)

    wins = sum(1 for trade in ledger if trade.success)
    financial = FinancialResult(
        ticks=result.ticks,
        initial_balance=initial_balance,
        final_balance=manager.get_current_balance(),
        total_volume=total_volume,
        max_drawdown=max_drawdown,
        max_balance=max_balance,
        min_balance=min_balance,
        executed_trades=len(ledger),
        wins=wins,
        losses=len(ledger) - wins,
        halted=halted_at is not None,
        halted_at=halted_at,
        trades=ledger,
    )

    logger.info(
        f"Financial overlay ({config.mode}) at {result.ticks} ticks: "
        f"{financial.executed_trades} trades, final balance {financial.final_balance:.2f}, "
        f"max drawdown {financial.max_drawdown:.1%}"
    )
    return financial
