from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from pydantic import ValidationError

from config.settings import Settings, get_settings
from digitlab.utils.logging import setup_logging
from digitlab.utils.exceptions import ConfigError, DigitLabError
from digitlab.backtest import run_backtest
from digitlab.data import load_digits
from digitlab.execution import MoneyManager
from digitlab.models import MoneyManagementConfig
from digitlab.selection import best_horizon, collect_candidates, rank, score
from digitlab.strategies import STRATEGIES, create_strategy
from bot.state.store import SQLiteTradeStore

app = typer.Typer(no_args_is_help=True)


def _money_config(settings: Settings, **overrides: object) -> MoneyManagementConfig:
    """Settings-derived money config with any CLI options that were given applied on top."""
    base = settings.money_management.to_config().model_dump()
    base.update({key: value for key, value in overrides.items() if value is not None})
    return MoneyManagementConfig(**base)


def _parse_outcomes(outcomes: str) -> list[bool]:
    parsed = []
    for char in outcomes.strip().upper():
        if char == "W":
            parsed.append(True)
        elif char == "L":
            parsed.append(False)
        else:
            raise ConfigError(f"Outcomes must be a string of W and L, got '{char}'")
    if not parsed:
        raise ConfigError("Outcomes must contain at least one W or L")
    return parsed


@app.command()
def backtest(
    data: Path = typer.Argument(..., help="Digit or price file (JSON, CSV or text)"),
    strategy: Optional[str] = typer.Option(None, help="Strategy name"),
    entry_digit: Optional[int] = typer.Option(None, help="Trigger digit (0-9)"),
    barrier: Optional[int] = typer.Option(None, help="Settlement barrier (0-9)"),
    min_ticks: Optional[int] = typer.Option(None, help="Smallest horizon to sweep"),
    virtual_loss: Optional[int] = typer.Option(None, help="Signals to skip after a loss"),
    target_tick: Optional[int] = typer.Option(None, help="Management horizon"),
    mode: Optional[str] = typer.Option(None, help="fixed, martingale, soros or martingale-soros"),
    initial_stake: Optional[float] = typer.Option(None, help="Initial stake"),
    profit_percent: Optional[float] = typer.Option(None, help="Payout percent on a win"),
    max_stake: Optional[float] = typer.Option(None, help="Stake ceiling"),
    max_loss_streak: Optional[int] = typer.Option(None, help="Martingale circuit breaker"),
    soros_level: Optional[int] = typer.Option(None, help="Soros compounding cap"),
    recovery: Optional[str] = typer.Option(None, help="counter or accumulated"),
    balance: Optional[float] = typer.Option(None, help="Initial balance"),
    pip_size: Optional[int] = typer.Option(None, help="Decimals when the file holds prices"),
    workers: Optional[int] = typer.Option(None, help="Threads for the horizon sweep"),
) -> None:
    """Sweep every horizon for one strategy and replay the management horizon with money."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.database.log_dir)
        defaults = settings.backtest

        money = _money_config(
            settings,
            mode=mode,
            initial_stake=initial_stake,
            profit_percent=profit_percent,
            max_stake=max_stake,
            max_loss_streak=max_loss_streak,
            soros_level=soros_level,
            target_tick=target_tick,
            recovery=recovery,
        )
        strat = create_strategy(
            strategy or defaults.strategy,
            money,
            entry_digit=entry_digit if entry_digit is not None else defaults.entry_digit,
            barrier=barrier if barrier is not None else defaults.barrier,
            min_ticks=min_ticks if min_ticks is not None else defaults.min_ticks,
            virtual_loss=virtual_loss if virtual_loss is not None else defaults.virtual_loss,
        )
        digits = load_digits(data, pip_size if pip_size is not None else defaults.pip_size)
        initial_balance = balance if balance is not None else defaults.initial_balance

        result = run_backtest(
            digits,
            strat,
            initial_balance=initial_balance,
            workers=workers if workers is not None else defaults.workers,
        )

        typer.echo(f"Backtest: {strat.describe()} over {len(digits)} digits")
        typer.echo("=" * 86)
        typer.echo(
            f"{'Ticks':>5}  {'Trades':>6}  {'Skipped':>7}  {'Possible':>8}  {'Wins':>5}  "
            f"{'Losses':>6}  {'Win %':>6}  {'MaxW':>4}  {'MaxL':>4}  {'Score':>6}"
        )
        typer.echo("=" * 86)
        for row in result.backtest:
            marker = "*" if row.ticks == strat.target_tick else " "
            typer.echo(
                f"{row.ticks:>4}{marker}  {row.total_trades:>6}  {row.skipped_trades:>7}  "
                f"{row.possible_trades:>8}  {row.wins:>5}  {row.losses:>6}  "
                f"{row.win_rate:>6.2f}  {row.max_consecutive_wins:>4}  "
                f"{row.max_consecutive_losses:>4}  {score(row):>6.2f}"
            )

        best = best_horizon(result.backtest)
        if best is not None:
            typer.echo("")
            typer.echo(f"Best horizon: {best.key} ticks (score {best.score:.2f})")

        typer.echo("")
        overlay = result.management
        if overlay is None:
            typer.echo(f"No financial overlay: target tick {strat.target_tick} was not swept")
        else:
            typer.echo(f"Money management ({money.mode}) at {overlay.ticks} ticks:")
            typer.echo(f"  Trades executed: {overlay.executed_trades} ({overlay.wins}W / {overlay.losses}L)")
            typer.echo(f"  Final balance: ${overlay.final_balance:.2f} (net {overlay.net_profit:+.2f})")
            typer.echo(f"  Volume: ${overlay.total_volume:.2f}")
            typer.echo(f"  Balance range: ${overlay.min_balance:.2f} - ${overlay.max_balance:.2f}")
            typer.echo(f"  Max drawdown: {overlay.max_drawdown * 100:.1f}%")
            if overlay.halted:
                typer.echo(f"  HALTED at position {overlay.halted_at}")

    except (DigitLabError, ValidationError) as e:
        typer.echo(f"Backtest failed: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Backtest command failed")
        raise typer.Exit(code=1)


@app.command()
def select(
    data: Path = typer.Argument(..., help="Digit or price file (JSON, CSV or text)"),
    horizon: int = typer.Option(..., help="Horizon to compare entry digits at"),
    strategy: Optional[str] = typer.Option(None, help="Strategy name"),
    barrier: Optional[int] = typer.Option(None, help="Settlement barrier (0-9)"),
    min_ticks: Optional[int] = typer.Option(None, help="Smallest horizon to sweep"),
    virtual_loss: Optional[int] = typer.Option(None, help="Signals to skip after a loss"),
    target_tick: Optional[int] = typer.Option(None, help="Management horizon"),
    pip_size: Optional[int] = typer.Option(None, help="Decimals when the file holds prices"),
) -> None:
    """Rank entry digits 0-9 for one strategy at a fixed horizon."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.database.log_dir)
        defaults = settings.backtest

        money = _money_config(settings, target_tick=target_tick)
        digits = load_digits(data, pip_size if pip_size is not None else defaults.pip_size)
        name = strategy or defaults.strategy

        params = {
            "barrier": barrier if barrier is not None else defaults.barrier,
            "min_ticks": min_ticks if min_ticks is not None else defaults.min_ticks,
            "virtual_loss": virtual_loss if virtual_loss is not None else defaults.virtual_loss,
        }
        strategies = {
            entry_digit: create_strategy(name, money, entry_digit=entry_digit, **params)
            for entry_digit in range(10)
        }
        ranking = rank(collect_candidates(digits, strategies, horizon))
        if not ranking:
            raise ConfigError(f"Horizon {horizon} is outside the swept range [{params['min_ticks']}, 10]")

        typer.echo(f"Entry digit ranking for {name} at {horizon} ticks")
        typer.echo("=" * 50)
        typer.echo(f"{'Digit':>5}  {'Trades':>6}  {'Win %':>6}  {'MaxL':>4}  {'Score':>6}")
        typer.echo("=" * 50)
        for item in ranking:
            typer.echo(
                f"{item.key:>5}  {item.result.total_trades:>6}  {item.result.win_rate:>6.2f}  "
                f"{item.result.max_consecutive_losses:>4}  {item.score:>6.2f}"
            )

        best = ranking[0]
        typer.echo("")
        typer.echo(f"Best entry digit: {best.key} (score {best.score:.2f})")

    except (DigitLabError, ValidationError) as e:
        typer.echo(f"Selection failed: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Select command failed")
        raise typer.Exit(code=1)


@app.command()
def simulate(
    outcomes: str = typer.Option(..., help="Outcome string, e.g. WLLW"),
    mode: Optional[str] = typer.Option(None, help="fixed, martingale, soros or martingale-soros"),
    initial_stake: Optional[float] = typer.Option(None, help="Initial stake"),
    profit_percent: Optional[float] = typer.Option(None, help="Payout percent on a win"),
    max_stake: Optional[float] = typer.Option(None, help="Stake ceiling"),
    max_loss_streak: Optional[int] = typer.Option(None, help="Martingale circuit breaker"),
    soros_level: Optional[int] = typer.Option(None, help="Soros compounding cap"),
    recovery: Optional[str] = typer.Option(None, help="counter or accumulated"),
    balance: Optional[float] = typer.Option(None, help="Initial balance"),
) -> None:
    """Replay an explicit win/loss sequence through the money manager."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.database.log_dir)

        money = _money_config(
            settings,
            mode=mode,
            initial_stake=initial_stake,
            profit_percent=profit_percent,
            max_stake=max_stake,
            max_loss_streak=max_loss_streak,
            soros_level=soros_level,
            recovery=recovery,
        )
        results = _parse_outcomes(outcomes)
        manager = MoneyManager(
            money, balance if balance is not None else settings.backtest.initial_balance
        )

        typer.echo(f"Simulating {len(results)} trades in {money.mode} mode")
        typer.echo("=" * 48)
        typer.echo(f"{'#':>3}  {'Result':<6}  {'Stake':>10}  {'Profit':>10}  {'Balance':>10}")
        typer.echo("=" * 48)
        for index, success in enumerate(results, start=1):
            stake = manager.calculate_next_stake()
            if stake <= 0:
                typer.echo(f"Stopped before trade {index}: stake declined")
                break
            trade = manager.update_last_trade(success)
            typer.echo(
                f"{index:>3}  {trade.kind:<6}  {trade.stake:>10.2f}  "
                f"{trade.profit:>+10.2f}  {trade.balance_after_trade:>10.2f}"
            )

        typer.echo("")
        typer.echo(f"Final balance: ${manager.get_current_balance():.2f}")

    except (DigitLabError, ValidationError) as e:
        typer.echo(f"Simulation failed: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Simulate command failed")
        raise typer.Exit(code=1)


@app.command()
def status() -> None:
    """Show the effective configuration and the live trade history summary."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.database.log_dir)
        mm = settings.money_management
        bt = settings.backtest
        live = settings.live

        typer.echo("DigitLab Status")
        typer.echo("=" * 50)
        typer.echo(f"Log level: {settings.log_level}")
        typer.echo(f"Database directory: {settings.database.db_dir}")
        typer.echo("")

        typer.echo("Money management:")
        typer.echo(f"  Mode: {mm.mode} (recovery: {mm.recovery})")
        typer.echo(f"  Initial stake: ${mm.initial_stake:.2f}")
        typer.echo(f"  Profit percent: {mm.profit_percent:.1f}%")
        typer.echo(f"  Max stake: {'none' if mm.max_stake is None else f'${mm.max_stake:.2f}'}")
        typer.echo(f"  Max loss streak: {mm.max_loss_streak or 'none'}")
        typer.echo(f"  Soros level: {mm.soros_level or 'none'}")
        typer.echo(f"  Target tick: {mm.target_tick}")
        typer.echo("")

        typer.echo("Backtest defaults:")
        typer.echo(f"  Strategy: {bt.strategy} (available: {', '.join(sorted(STRATEGIES))})")
        typer.echo(f"  Entry digit: {bt.entry_digit if bt.entry_digit is not None else 'any'}")
        typer.echo(f"  Barrier: {bt.barrier}")
        typer.echo(f"  Min ticks: {bt.min_ticks}")
        typer.echo(f"  Virtual loss: {bt.virtual_loss}")
        typer.echo(f"  Initial balance: ${bt.initial_balance:.2f}")
        typer.echo("")

        typer.echo("Live session:")
        typer.echo(f"  Symbol: {live.symbol}")
        typer.echo(f"  Contract ticks: {live.contract_ticks}")
        typer.echo(f"  Starting balance: ${live.starting_balance:.2f}")
        typer.echo("")

        sqlite_path = settings.database.sqlite_path
        typer.echo(f"Trade store: {'EXISTS' if sqlite_path.exists() else 'NOT FOUND'}")
        if sqlite_path.exists():
            with SQLiteTradeStore(sqlite_path) as store:
                summary = store.get_summary()
            typer.echo(f"  Trades: {summary['total']} ({summary['wins']}W / {summary['losses']}L)")
            typer.echo(f"  Win rate: {summary['win_rate']:.2f}%")
            typer.echo(f"  Net profit: ${summary['net_profit']:+.2f}")

    except (DigitLabError, ValidationError) as e:
        typer.echo(f"Status check failed: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Status command failed")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
