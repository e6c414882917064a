import random

import pytest

from digitlab.backtest import Backtest, EntryGate
from digitlab.models import MoneyManagementConfig
from digitlab.strategies import DigitOverStrategy
from digitlab.utils.exceptions import DataLoadError


def _strategy(target_tick: int = 1, **params) -> DigitOverStrategy:
    config = MoneyManagementConfig(initial_stake=1.0, profit_percent=50.0, target_tick=target_tick)
    return DigitOverStrategy(config, **params)


def test_sweeps_from_min_ticks_to_ten(scenario_digits) -> None:
    results = Backtest(_strategy(entry_digit=3, barrier=1, min_ticks=2)).run(scenario_digits)
    assert [r.ticks for r in results] == list(range(2, 11))


def test_scenario_outside_management_horizon(scenario_digits) -> None:
    results = Backtest(_strategy(entry_digit=3, barrier=1, min_ticks=2)).run(scenario_digits)
    horizon_two = results[0]

    assert horizon_two.possible_trades == 4
    assert horizon_two.total_trades == 4
    assert horizon_two.skipped_trades == 0
    assert horizon_two.wins == 4
    assert horizon_two.win_rate == pytest.approx(100.0)
    assert [t.position for t in horizon_two.trades] == [0, 1, 2, 4]


def test_scenario_throttled_at_management_horizon(scenario_digits) -> None:
    results = Backtest(_strategy(target_tick=2, entry_digit=3, barrier=1, min_ticks=2)).run(scenario_digits)
    horizon_two = results[0]

    assert horizon_two.possible_trades == 4
    assert horizon_two.total_trades == 3
    assert horizon_two.skipped_trades == 1
    assert horizon_two.wins == 3
    assert [t.position for t in horizon_two.trades] == [0, 2, 4]


def test_virtual_loss_skips_then_resumes() -> None:
    digits = [5, 0, 5, 5, 5, 5, 5, 5]
    strategy = _strategy(target_tick=1, barrier=1, virtual_loss=2)

    horizon_one = Backtest(strategy).run(digits)[0]

    assert horizon_one.possible_trades == 7
    assert horizon_one.skipped_trades == 2
    assert horizon_one.total_trades == 5
    assert [t.position for t in horizon_one.trades] == [0, 3, 4, 5, 6]
    assert horizon_one.losses == 1


def test_horizon_longer_than_sequence_is_empty() -> None:
    result = Backtest(_strategy(barrier=1)).run([3, 4, 5])[-1]

    assert result.ticks == 10
    assert result.total_trades == 0
    assert result.win_rate == 0.0
    assert result.loss_rate == 0.0


def test_invariants_hold_on_random_sequence() -> None:
    rng = random.Random(42)
    digits = [rng.randint(0, 9) for _ in range(500)]
    strategy = _strategy(target_tick=3, entry_digit=7, barrier=4, virtual_loss=1)

    for result in Backtest(strategy).run(digits):
        if result.ticks == 3:
            assert result.total_trades + result.skipped_trades == result.possible_trades
        else:
            assert result.skipped_trades == 0
            assert result.total_trades == result.possible_trades
        assert result.wins + result.losses == result.total_trades
        if result.total_trades:
            assert result.win_rate + result.loss_rate == pytest.approx(100.0)
        assert result.max_consecutive_wins <= result.wins
        assert result.max_consecutive_losses <= result.losses


def test_runs_are_deterministic() -> None:
    rng = random.Random(7)
    digits = [rng.randint(0, 9) for _ in range(300)]
    backtest = Backtest(_strategy(target_tick=4, entry_digit=1, barrier=2, virtual_loss=2))

    assert backtest.run(digits) == backtest.run(digits)


def test_thread_fanout_matches_sequential_sweep() -> None:
    rng = random.Random(11)
    digits = [rng.randint(0, 9) for _ in range(300)]
    backtest = Backtest(_strategy(target_tick=5, entry_digit=0, barrier=3))

    assert backtest.run(digits, workers=4) == backtest.run(digits)


def test_rejects_invalid_digits() -> None:
    with pytest.raises(DataLoadError):
        Backtest(_strategy()).run([1, 2, 12])


class TestEntryGate:
    def test_throttle_blocks_until_position_settles(self) -> None:
        gate = EntryGate(horizon=3, virtual_loss=0)

        assert gate.admit(0)
        gate.enter(0)
        gate.settle(True)
        assert not gate.admit(1)
        assert not gate.admit(2)
        assert gate.admit(3)

    def test_no_virtual_wait_without_virtual_loss(self) -> None:
        gate = EntryGate(horizon=1, virtual_loss=0)
        gate.enter(0)
        gate.settle(False)

        assert not gate.waiting_virtual_loss
        assert gate.admit(1)
