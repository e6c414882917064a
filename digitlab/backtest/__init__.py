from digitlab.backtest.simulator import Backtest, EntryGate
from digitlab.backtest.runner import run_backtest, simulate_financials

__all__ = ["Backtest", "EntryGate", "run_backtest", "simulate_financials"]
