from typing import Any

from digitlab.models import MoneyManagementConfig
from digitlab.strategies.base import MAX_TICKS, DigitStrategy, Outcome, Strategy
from digitlab.strategies.digits import (
    DigitDiffersStrategy,
    DigitEvenStrategy,
    DigitMatchesStrategy,
    DigitOddStrategy,
    DigitOverStrategy,
    DigitUnderStrategy,
)
from digitlab.utils.exceptions import ConfigError

STRATEGIES: dict[str, type[DigitStrategy]] = {
    cls.name: cls
    for cls in (
        DigitOverStrategy,
        DigitUnderStrategy,
        DigitMatchesStrategy,
        DigitDiffersStrategy,
        DigitEvenStrategy,
        DigitOddStrategy,
    )
}


def create_strategy(
    name: str,
    money_management: MoneyManagementConfig,
    **params: Any,
) -> DigitStrategy:
    """Build a registered strategy by name."""
    try:
        cls = STRATEGIES[name]
    except KeyError:
        raise ConfigError(
            f"Unknown strategy '{name}'. Available: {', '.join(sorted(STRATEGIES))}"
        ) from None
    return cls(money_management, **params)


__all__ = [
    "MAX_TICKS",
    "Outcome",
    "Strategy",
    "DigitStrategy",
    "DigitOverStrategy",
    "DigitUnderStrategy",
    "DigitMatchesStrategy",
    "DigitDiffersStrategy",
    "DigitEvenStrategy",
    "DigitOddStrategy",
    "STRATEGIES",
    "create_strategy",
]
