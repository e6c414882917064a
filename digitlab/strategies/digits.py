from digitlab.strategies.base import DigitStrategy


class DigitOverStrategy(DigitStrategy):
    """Win when the settlement digit is strictly above the barrier."""

    name = "digit_over"

    def settles_win(self, digit: int) -> bool:
        return digit > self.barrier


class DigitUnderStrategy(DigitStrategy):
    name = "digit_under"

    def settles_win(self, digit: int) -> bool:
        return digit < self.barrier


class DigitMatchesStrategy(DigitStrategy):
    name = "digit_matches"

    def settles_win(self, digit: int) -> bool:
        return digit == self.barrier


class DigitDiffersStrategy(DigitStrategy):
    name = "digit_differs"

    def settles_win(self, digit: int) -> bool:
        return digit != self.barrier


class DigitEvenStrategy(DigitStrategy):
    name = "digit_even"

    def settles_win(self, digit: int) -> bool:
        return digit % 2 == 0

    def describe(self) -> str:
        entry = "any" if self.entry_digit is None else str(self.entry_digit)
        return f"{self.name}(entry={entry})"


class DigitOddStrategy(DigitEvenStrategy):
    name = "digit_odd"

    def settles_win(self, digit: int) -> bool:
        return digit % 2 == 1
