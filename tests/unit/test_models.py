import pytest
from pydantic import ValidationError

from digitlab.models import (
    CompleteBacktestResult,
    FinancialResult,
    MoneyManagementConfig,
    ProcessedHorizonResult,
    TradeResult,
    TradeSignal,
)


class TestMoneyManagementConfig:
    def test_defaults(self) -> None:
        config = MoneyManagementConfig(initial_stake=0.35, profit_percent=22.0)

        assert config.mode == "fixed"
        assert config.recovery == "counter"
        assert config.target_tick == 1
        assert config.min_stake == 0.35
        assert config.profit_rate == pytest.approx(0.22)
        assert config.effective_soros_level == 1

    @pytest.mark.parametrize(
        "params",
        [
            {"initial_stake": 0, "profit_percent": 22.0},
            {"initial_stake": 1.0, "profit_percent": -5.0},
            {"initial_stake": 1.0, "profit_percent": 22.0, "target_tick": 0},
            {"initial_stake": 1.0, "profit_percent": 22.0, "max_loss_streak": 0},
            {"initial_stake": 1.0, "profit_percent": 22.0, "mode": "kelly"},
            {"initial_stake": 1.0, "profit_percent": 22.0, "recovery": "hope"},
        ],
    )
    def test_invalid_values(self, params: dict) -> None:
        with pytest.raises(ValidationError):
            MoneyManagementConfig(**params)

    def test_max_stake_below_initial(self) -> None:
        with pytest.raises(ValidationError, match="max_stake"):
            MoneyManagementConfig(initial_stake=5.0, profit_percent=22.0, max_stake=2.0)

    def test_frozen(self) -> None:
        config = MoneyManagementConfig(initial_stake=1.0, profit_percent=22.0)
        with pytest.raises(ValidationError):
            config.initial_stake = 2.0


def test_trade_result_kind() -> None:
    win = TradeResult(success=True, stake=1.0, profit=0.5, balance_after_trade=10.5)
    assert win.kind == "win"
    assert win.model_dump()["kind"] == "win"


def test_trade_signal_position_non_negative() -> None:
    with pytest.raises(ValidationError):
        TradeSignal(success=True, position=-1)


def test_financial_result_net_profit() -> None:
    result = FinancialResult(
        ticks=8,
        initial_balance=100.0,
        final_balance=92.5,
        max_balance=101.0,
        min_balance=90.0,
    )
    assert result.net_profit == pytest.approx(-7.5)


def test_complete_result_lookup_by_horizon() -> None:
    complete = CompleteBacktestResult(
        backtest=[ProcessedHorizonResult(ticks=2), ProcessedHorizonResult(ticks=3)]
    )
    assert complete.horizon(3).ticks == 3
    assert complete.horizon(9) is None
