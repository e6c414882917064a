from digitlab.models.trade import (
    ManagementMode,
    RecoveryPolicyName,
    MoneyManagementConfig,
    TradeResult,
    EngineStats,
)
from digitlab.models.backtest import (
    TradeSignal,
    HorizonResult,
    StreakStat,
    StreakDistribution,
    ProcessedHorizonResult,
    FinancialResult,
    CompleteBacktestResult,
    ScoredResult,
)

__all__ = [
    "ManagementMode",
    "RecoveryPolicyName",
    "MoneyManagementConfig",
    "TradeResult",
    "EngineStats",
    "TradeSignal",
    "HorizonResult",
    "StreakStat",
    "StreakDistribution",
    "ProcessedHorizonResult",
    "FinancialResult",
    "CompleteBacktestResult",
    "ScoredResult",
]
