from digitlab.analytics.streaks import (
    StreakCounter,
    average,
    count_streaks,
    get_streaks,
    post_process,
    trades_after_losses,
    trades_after_wins,
)

__all__ = [
    "StreakCounter",
    "get_streaks",
    "average",
    "count_streaks",
    "trades_after_losses",
    "trades_after_wins",
    "post_process",
]
