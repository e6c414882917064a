from digitlab.selection.scoring import (
    best_horizon,
    collect_candidates,
    compare_entry_digits,
    compare_strategies,
    rank,
    score,
    select_best,
)

__all__ = [
    "score",
    "rank",
    "select_best",
    "best_horizon",
    "collect_candidates",
    "compare_entry_digits",
    "compare_strategies",
]
