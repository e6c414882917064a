from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from bot.session import LogNotifier, TradingSession
from digitlab.execution import MoneyManager
from digitlab.models import MoneyManagementConfig
from digitlab.strategies import DigitOverStrategy
from digitlab.utils.exceptions import OrderError

PIP = 2
ENTRY_QUOTE = 100.13  # last digit 3
OTHER_QUOTE = 100.15  # last digit 5


class FakeGateway:
    def __init__(self) -> None:
        self.orders: list[tuple[float, int]] = []
        self.fail_next = False

    def buy(self, amount: float, duration_ticks: int) -> str:
        if self.fail_next:
            self.fail_next = False
            raise OrderError("market closed")
        self.orders.append((amount, duration_ticks))
        return f"c{len(self.orders)}"


class FakeNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def send_message(self, text: str) -> None:
        self.messages.append(text)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


def _session(gateway, notifier, balance: float = 10.0, virtual_loss: int = 0, **kwargs) -> TradingSession:
    config = MoneyManagementConfig(initial_stake=1.0, profit_percent=50.0, target_tick=8)
    strategy = DigitOverStrategy(config, entry_digit=3, barrier=1, virtual_loss=virtual_loss)
    return TradingSession(
        strategy,
        MoneyManager(config, balance),
        gateway,
        notifier=notifier,
        **kwargs,
    )


def test_ticks_ignored_until_started(gateway, notifier) -> None:
    session = _session(gateway, notifier)

    assert session.on_tick(ENTRY_QUOTE, PIP) is None
    assert list(session.state.digits) == [3]
    assert gateway.orders == []


def test_entry_places_order(gateway, notifier) -> None:
    session = _session(gateway, notifier)
    session.start()

    assert session.on_tick(OTHER_QUOTE, PIP) is None
    assert session.on_tick(ENTRY_QUOTE, PIP) == "entered"
    assert gateway.orders == [(1.0, 8)]
    assert session.state.is_trading
    assert session.state.contract_id == "c1"
    assert any("Stake: $1.00" in m for m in notifier.messages)


def test_no_second_entry_while_trading(gateway, notifier) -> None:
    session = _session(gateway, notifier)
    session.start()
    session.on_tick(ENTRY_QUOTE, PIP)

    for _ in range(17):
        assert session.on_tick(ENTRY_QUOTE, PIP) is None

    assert len(gateway.orders) == 1
    assert session.state.tick_count == 17
    assert session.needs_status_poll


def test_settlement_records_and_notifies(gateway, notifier) -> None:
    recorder = Mock()
    session = _session(gateway, notifier, recorder=recorder)
    session.start()
    session.on_tick(ENTRY_QUOTE, PIP)

    assert session.on_contract_update("open") is None
    trade = session.on_contract_update("won", contract_id="c1")

    assert trade.profit == pytest.approx(0.5)
    assert not session.state.is_trading
    assert session.state.wins == 1
    recorder.save_trade.assert_called_once_with(
        is_win=True, stake=1.0, profit=0.5, balance_after=10.5
    )
    assert "Balance: $10.50" in notifier.messages[-1]


def test_update_for_other_contract_is_ignored(gateway, notifier) -> None:
    session = _session(gateway, notifier)
    session.start()
    session.on_tick(ENTRY_QUOTE, PIP)

    assert session.on_contract_update("won", contract_id="stale") is None
    assert session.state.is_trading


def test_update_without_open_contract_is_ignored(gateway, notifier) -> None:
    session = _session(gateway, notifier)
    session.start()

    assert session.on_contract_update("lost") is None
    assert session.state.losses == 0


def test_loss_arms_virtual_gate(gateway, notifier) -> None:
    session = _session(gateway, notifier, virtual_loss=1)
    session.start()
    session.on_tick(ENTRY_QUOTE, PIP)
    session.on_contract_update("lost")

    assert session.state.waiting_virtual_loss
    assert session.on_tick(ENTRY_QUOTE, PIP) == "virtual"
    assert not session.state.waiting_virtual_loss
    assert session.on_tick(ENTRY_QUOTE, PIP) == "entered"
    assert len(gateway.orders) == 2


def test_order_failure_returns_flat_and_reuses_stake(gateway, notifier) -> None:
    session = _session(gateway, notifier)
    session.start()
    gateway.fail_next = True

    assert session.on_tick(ENTRY_QUOTE, PIP) is None
    assert not session.state.is_trading
    assert session.state.pending_stake == pytest.approx(1.0)
    assert any("Order failed" in m for m in notifier.messages)

    assert session.on_tick(ENTRY_QUOTE, PIP) == "entered"
    assert session.state.pending_stake is None
    assert gateway.orders == [(1.0, 8)]


def test_stops_when_stake_below_minimum(gateway, notifier) -> None:
    session = _session(gateway, notifier, balance=0.2)
    session.start()

    assert session.on_tick(ENTRY_QUOTE, PIP) is None
    assert not session.state.running
    assert gateway.orders == []
    assert any("CRITICAL" in m for m in notifier.messages)


def test_status_report(gateway, notifier) -> None:
    now = [datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)]
    session = _session(gateway, notifier, clock=lambda: now[0])
    session.start()
    session.on_tick(ENTRY_QUOTE, PIP)
    session.on_contract_update("won")
    session.on_tick(ENTRY_QUOTE, PIP)
    session.on_contract_update("lost")
    now[0] += timedelta(minutes=75)

    report = session.status_report()

    assert "Status: running" in report
    assert "Runtime: 1h 15m" in report
    assert "Trades: 2" in report
    assert "Win rate: 50.00%" in report
    assert "Balance: $9.50" in report


def test_start_twice_and_stop(gateway, notifier) -> None:
    session = _session(gateway, notifier)
    session.start()
    session.start()
    session.stop()

    assert notifier.messages == ["Bot started", "Bot is already running", "Bot stopped"]
    assert "Status: stopped" in session.status_report()


def test_contract_open_at_stop_is_still_settled(gateway, notifier) -> None:
    recorder = Mock()
    session = _session(gateway, notifier, virtual_loss=1, recorder=recorder)
    session.start()
    session.on_tick(ENTRY_QUOTE, PIP)
    session.stop()

    assert session.state.is_trading
    assert "c1 will be settled" in notifier.messages[-1]
    assert session.on_tick(ENTRY_QUOTE, PIP) is None

    trade = session.on_contract_update("lost", "c1")

    assert trade is not None
    assert session.money_manager.get_current_balance() == pytest.approx(9.0)
    assert session.state.losses == 1
    assert not session.state.is_trading
    assert not session.state.waiting_virtual_loss
    recorder.save_trade.assert_called_once()
    assert len(gateway.orders) == 1


def test_load_history_keeps_rolling_window(gateway, notifier) -> None:
    session = _session(gateway, notifier, history_size=3)
    session.load_history([100.11, 100.12, 100.13, 100.14], PIP)

    assert list(session.state.digits) == [2, 3, 4]


def test_default_notifier_logs() -> None:
    config = MoneyManagementConfig(initial_stake=1.0, profit_percent=50.0)
    session = TradingSession(DigitOverStrategy(config), MoneyManager(config, 10.0), FakeGateway())
    assert isinstance(session.notifier, LogNotifier)
    session.notifier.send_message("hello")
