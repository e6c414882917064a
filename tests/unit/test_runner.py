import pytest

from digitlab.backtest import Backtest, run_backtest, simulate_financials
from digitlab.models import MoneyManagementConfig
from digitlab.strategies import DigitOverStrategy


def _config(**overrides) -> MoneyManagementConfig:
    params = {"initial_stake": 1.0, "profit_percent": 50.0}
    params.update(overrides)
    return MoneyManagementConfig(**params)


def test_overlay_on_management_horizon(scenario_digits) -> None:
    strategy = DigitOverStrategy(_config(target_tick=2), entry_digit=3, barrier=1, min_ticks=2)

    result = run_backtest(scenario_digits, strategy, initial_balance=10.0)

    assert len(result.backtest) == 9
    overlay = result.management
    assert overlay is not None
    assert overlay.ticks == 2
    assert overlay.executed_trades == 3
    assert overlay.wins == 3
    assert overlay.final_balance == pytest.approx(11.5)
    assert overlay.net_profit == pytest.approx(1.5)
    assert overlay.total_volume == pytest.approx(3.0)
    assert overlay.max_balance == pytest.approx(11.5)
    assert overlay.min_balance == pytest.approx(10.0)
    assert overlay.max_drawdown == 0.0
    assert overlay.halted is False


def test_every_horizon_keeps_neutral_financials(scenario_digits) -> None:
    strategy = DigitOverStrategy(_config(target_tick=2), entry_digit=3, barrier=1, min_ticks=2)

    result = run_backtest(scenario_digits, strategy, initial_balance=10.0)

    horizon_two = result.horizon(2)
    assert horizon_two.final_balance == 10.0
    assert horizon_two.total_volume == 0.0
    assert result.horizon(1) is None


def test_no_overlay_when_target_tick_not_swept(scenario_digits) -> None:
    strategy = DigitOverStrategy(_config(target_tick=1), entry_digit=3, barrier=1, min_ticks=2)

    result = run_backtest(scenario_digits, strategy)

    assert result.management is None
    assert [r.ticks for r in result.backtest] == list(range(2, 11))


def test_overlay_halts_at_first_declined_stake() -> None:
    strategy = DigitOverStrategy(_config(target_tick=1), barrier=8)
    raw = Backtest(strategy).run([0, 0, 0, 0])[0]

    overlay = simulate_financials(raw, strategy.money_management, initial_balance=1.0)

    assert overlay.executed_trades == 1
    assert overlay.losses == 1
    assert overlay.halted is True
    assert overlay.halted_at == 1
    assert overlay.final_balance == pytest.approx(0.0)
    assert overlay.max_drawdown == pytest.approx(1.0)


def test_overlay_drawdown_is_peak_relative() -> None:
    strategy = DigitOverStrategy(_config(target_tick=1), barrier=4)
    # win, win, loss, loss
    raw = Backtest(strategy).run([0, 5, 5, 0, 0])[0]

    overlay = simulate_financials(raw, strategy.money_management, initial_balance=10.0)

    assert [trade.kind for trade in overlay.trades] == ["win", "win", "loss", "loss"]
    assert overlay.max_balance == pytest.approx(11.0)
    assert overlay.final_balance == pytest.approx(9.0)
    assert overlay.max_drawdown == pytest.approx(2.0 / 11.0)
