"""Live trading session: turns tick and contract events into stake-sized entries."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Protocol

from loguru import logger

from digitlab.data.digits import digits_from_prices, last_digit
from digitlab.execution.money_manager import MoneyManager
from digitlab.models import TradeResult
from digitlab.strategies import DigitStrategy
from digitlab.utils.exceptions import OrderError


class OrderGateway(Protocol):
    def buy(self, amount: float, duration_ticks: int) -> str:
        """Place a contract and return its id; raise OrderError on rejection."""
        ...


class Notifier(Protocol):
    def send_message(self, text: str) -> None:
        ...


class TradeRecorder(Protocol):
    def save_trade(self, is_win: bool, stake: float, profit: float, balance_after: float) -> int:
        ...


class LogNotifier:
    """Default notifier: operator messages go to the log."""

    def send_message(self, text: str) -> None:
        logger.info(f"[notify] {text}")


@dataclass
class SessionState:
    running: bool = False
    started_at: Optional[datetime] = None
    is_trading: bool = False
    contract_id: Optional[str] = None
    tick_count: int = 0
    waiting_virtual_loss: bool = False
    virtual_loss_count: int = 0
    pending_stake: Optional[float] = None
    wins: int = 0
    losses: int = 0
    digits: deque = field(default_factory=deque)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradingSession:
    """
    One live trading session.

    All mutable session flags live on ``self.state``; the event handlers
    (``on_tick``, ``on_contract_update``) are the only writers. Handlers must
    be called from a single event-processing path since the MoneyManager is
    strictly sequential.
    """

    def __init__(
        self,
        strategy: DigitStrategy,
        money_manager: MoneyManager,
        gateway: OrderGateway,
        notifier: Optional[Notifier] = None,
        recorder: Optional[TradeRecorder] = None,
        contract_ticks: int = 8,
        history_size: int = 21,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.strategy = strategy
        self.money_manager = money_manager
        self.gateway = gateway
        self.notifier: Notifier = notifier or LogNotifier()
        self.recorder = recorder
        self.contract_ticks = contract_ticks
        self.clock = clock
        self.state = SessionState(digits=deque(maxlen=history_size))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.state.running:
            self.notifier.send_message("Bot is already running")
            return
        self.state.running = True
        self.state.started_at = self.clock()
        self.notifier.send_message("Bot started")

    def stop(self) -> None:
        """Stop taking entries. An open contract stays tracked until it settles."""
        self.state.running = False
        self.state.waiting_virtual_loss = False
        self.state.virtual_loss_count = 0
        if self.state.is_trading:
            self.notifier.send_message(
                f"Bot stopped, contract {self.state.contract_id} will be settled when it closes"
            )
            return
        self.state.tick_count = 0
        self.notifier.send_message("Bot stopped")

    # ------------------------------------------------------------------
    # Market events
    # ------------------------------------------------------------------
    def load_history(self, prices: Iterable[float], pip_size: int) -> None:
        self.state.digits.clear()
        self.state.digits.extend(digits_from_prices(prices, pip_size))

    def on_tick(self, quote: float, pip_size: int) -> Optional[str]:
        """
        Handle a new price tick.

        Returns:
            "entered" when an order was placed, "virtual" when a signal was
            absorbed by the virtual-loss gate, otherwise None
        """
        state = self.state
        digit = last_digit(quote, pip_size)
        state.digits.append(digit)

        if state.is_trading:
            state.tick_count += 1
            return None

        if not state.running:
            return None

        if not self.strategy.is_entry(digit):
            return None

        if state.waiting_virtual_loss:
            state.virtual_loss_count += 1
            if state.virtual_loss_count >= self.strategy.virtual_loss:
                state.waiting_virtual_loss = False
                state.virtual_loss_count = 0
                self.notifier.send_message("Virtual loss window complete, resuming real entries")
            else:
                self.notifier.send_message(
                    f"Waiting for virtual loss confirmation "
                    f"({state.virtual_loss_count}/{self.strategy.virtual_loss})"
                )
            return "virtual"

        # A stake sized for a rejected order is reused so the engine sees one
        # calculate_next_stake per settled trade.
        if state.pending_stake is not None:
            stake = state.pending_stake
        else:
            stake = self.money_manager.calculate_next_stake()
        if not self._check_stake_and_balance(stake):
            return None

        try:
            contract_id = self.gateway.buy(stake, self.contract_ticks)
        except OrderError as exc:
            logger.error(f"Order rejected: {exc}")
            state.pending_stake = stake
            self.notifier.send_message(f"Order failed: {exc}")
            return None

        state.pending_stake = None
        state.is_trading = True
        state.contract_id = contract_id
        state.tick_count = 0
        self.notifier.send_message(f"Signal identified on digit {digit}\nStake: ${stake:.2f}")
        return "entered"

    @property
    def needs_status_poll(self) -> bool:
        """True when an open contract has gone unsettled for twice its duration."""
        return self.state.is_trading and self.state.tick_count > self.contract_ticks * 2

    def on_contract_update(self, status: str, contract_id: Optional[str] = None) -> Optional[TradeResult]:
        """
        Handle a contract status event ("open", "won", "lost", ...).

        The MoneyManager is the source of truth for stake and profit; the
        venue only reports whether the contract won.
        """
        state = self.state
        if status == "open":
            return None
        if not state.is_trading:
            logger.warning(f"Contract update '{status}' received with no open contract")
            return None
        if contract_id is not None and contract_id != state.contract_id:
            logger.debug(f"Ignoring update for stale contract {contract_id}")
            return None

        won = status == "won"
        trade = self.money_manager.update_last_trade(won)

        state.is_trading = False
        state.contract_id = None
        state.tick_count = 0
        if won:
            state.wins += 1
        else:
            state.losses += 1
            if self.strategy.virtual_loss > 0 and state.running:
                state.waiting_virtual_loss = True
                state.virtual_loss_count = 0

        if self.recorder is not None:
            self.recorder.save_trade(
                is_win=won,
                stake=trade.stake,
                profit=trade.profit,
                balance_after=trade.balance_after_trade,
            )

        self.notifier.send_message(
            f"{'Trade won' if won else 'Trade lost'}\n"
            f"{'Profit' if won else 'Loss'}: ${abs(trade.profit):.2f}\n"
            f"Balance: ${trade.balance_after_trade:.2f}"
        )
        return trade

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def status_report(self) -> str:
        state = self.state
        total = state.wins + state.losses
        win_rate = (state.wins / total) * 100 if total > 0 else 0.0
        return (
            "Bot statistics\n"
            f"Status: {'running' if state.running else 'stopped'}\n"
            f"Runtime: {self._runtime()}\n"
            f"Trades: {total}\n"
            f"Wins: {state.wins}\n"
            f"Losses: {state.losses}\n"
            f"Win rate: {win_rate:.2f}%\n"
            f"Balance: ${self.money_manager.get_current_balance():.2f}"
        )

    def _runtime(self) -> str:
        if self.state.started_at is None:
            return "not started"
        minutes = int((self.clock() - self.state.started_at).total_seconds() // 60)
        hours = minutes // 60
        if hours > 0:
            return f"{hours}h {minutes % 60}m"
        return f"{minutes}m"

    def _check_stake_and_balance(self, stake: float) -> bool:
        minimum = self.money_manager.config.min_stake
        balance = self.money_manager.get_current_balance()
        if stake <= 0 or stake < minimum or balance < minimum:
            self.notifier.send_message(
                "CRITICAL: bot stopped automatically\n"
                "Stake or balance below the venue minimum\n"
                f"Final balance: ${balance:.2f}"
            )
            self.stop()
            return False
        return True
