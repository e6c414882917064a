"""
Strategy Evaluator - pure signal functions over a digit sequence.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import ClassVar, Optional, Sequence

from digitlab.models import MoneyManagementConfig
from digitlab.utils.exceptions import ConfigError

MAX_TICKS = 10


class Outcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    NO_SIGNAL = "no_signal"


class Strategy(ABC):
    """
    Base class for every strategy variant.

    A strategy holds only configuration. ``execute`` must stay a pure function
    of its arguments so that horizons can be swept independently and a run
    can be replayed bit-for-bit.
    """

    name: ClassVar[str] = "base"

    def __init__(
        self,
        money_management: MoneyManagementConfig,
        min_ticks: int = 1,
        virtual_loss: int = 0,
    ):
        """
        Args:
            money_management: Sizing config; its target_tick is the management horizon
            min_ticks: Smallest horizon worth evaluating (1..10)
            virtual_loss: Signals to skip after a real loss at the management horizon
        """
        if not 1 <= min_ticks <= MAX_TICKS:
            raise ConfigError(f"min_ticks must be in [1, {MAX_TICKS}], got {min_ticks}")
        if virtual_loss < 0:
            raise ConfigError(f"virtual_loss must be non-negative, got {virtual_loss}")

        self.money_management = money_management
        self.min_ticks = min_ticks
        self.virtual_loss = virtual_loss

    @property
    def target_tick(self) -> int:
        return self.money_management.target_tick

    @abstractmethod
    def execute(self, digits: Sequence[int], position: int, horizon: int) -> Outcome:
        """Evaluate the signal entered at ``position`` and settled ``horizon`` ticks later."""

    def describe(self) -> str:
        return self.name


class DigitStrategy(Strategy):
    """
    Entry on a single trigger digit, settlement on the digit ``horizon`` ticks later.

    Subclasses only decide what a winning settlement digit is.
    """

    def __init__(
        self,
        money_management: MoneyManagementConfig,
        entry_digit: Optional[int] = None,
        barrier: int = 0,
        min_ticks: int = 1,
        virtual_loss: int = 0,
    ):
        super().__init__(money_management, min_ticks=min_ticks, virtual_loss=virtual_loss)

        if entry_digit is not None and not 0 <= entry_digit <= 9:
            raise ConfigError(f"entry_digit must be in [0, 9], got {entry_digit}")
        if not 0 <= barrier <= 9:
            raise ConfigError(f"barrier must be in [0, 9], got {barrier}")

        self.entry_digit = entry_digit
        self.barrier = barrier

    def is_entry(self, digit: int) -> bool:
        return self.entry_digit is None or digit == self.entry_digit

    @abstractmethod
    def settles_win(self, digit: int) -> bool:
        ...

    def execute(self, digits: Sequence[int], position: int, horizon: int) -> Outcome:
        assert horizon >= 1, "horizon must be >= 1"

        if not self.is_entry(digits[position]):
            return Outcome.NO_SIGNAL
        return Outcome.WIN if self.settles_win(digits[position + horizon]) else Outcome.LOSS

    def describe(self) -> str:
        entry = "any" if self.entry_digit is None else str(self.entry_digit)
        return f"{self.name}(entry={entry}, barrier={self.barrier})"
