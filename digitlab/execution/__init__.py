from digitlab.execution.money_manager import MoneyManager
from digitlab.execution.stake_modes import (
    AccumulatedRecovery,
    CounterRecovery,
    EngineState,
    FixedStake,
    MartingaleSorosStake,
    MartingaleStake,
    RecoveryPolicy,
    SorosStake,
    StakeMode,
    create_stake_mode,
)

__all__ = [
    "MoneyManager",
    "EngineState",
    "StakeMode",
    "FixedStake",
    "MartingaleStake",
    "SorosStake",
    "MartingaleSorosStake",
    "RecoveryPolicy",
    "CounterRecovery",
    "AccumulatedRecovery",
    "create_stake_mode",
]
