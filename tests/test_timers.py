"""Tests for the delay and sound timers."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.timers import TIMER_PERIOD, Timers


class TestTimerLoading:
    """Test timer values and clamping."""

    def test_defaults(self):
        timers = Timers()
        assert timers.delay == 0
        assert timers.sound == 0
        assert timers.sound_active is False

    def test_set_clamps(self):
        timers = Timers()
        timers.set_delay(300)
        timers.set_sound(-5)
        assert timers.delay == 255
        assert timers.sound == 0

    def test_sound_active(self):
        timers = Timers()
        timers.set_sound(2)
        assert timers.sound_active is True


class TestResetMode:
    """Test the default accumulator-reset behavior."""

    def test_no_tick_below_period(self):
        timers = Timers(delay=5)
        assert timers.tick(TIMER_PERIOD / 2) == 0
        assert timers.delay == 5

    def test_accumulates_small_steps(self):
        """Two half-periods add up to one tick."""
        timers = Timers(delay=5)
        timers.tick(TIMER_PERIOD * 0.6)
        assert timers.tick(TIMER_PERIOD * 0.6) == 1
        assert timers.delay == 4
        assert timers.accumulator == 0.0

    def test_single_tick_for_long_interval(self):
        """A long interval still produces one decrement and drops the surplus."""
        timers = Timers(delay=10, sound=10)
        assert timers.tick(TIMER_PERIOD * 5) == 1
        assert timers.delay == 9
        assert timers.sound == 9
        assert timers.accumulator == 0.0

    def test_delay_counts_down_six_frames(self):
        timers = Timers(delay=10)
        for _ in range(6):
            timers.tick(1 / 60)
        assert timers.delay == 4

    def test_saturates_at_zero(self):
        timers = Timers(delay=1, sound=0)
        for _ in range(5):
            timers.tick(1 / 60)
        assert timers.delay == 0
        assert timers.sound == 0

    def test_negative_elapsed_rejected(self):
        with pytest.raises(ValueError):
            Timers().tick(-0.1)


class TestSubtractMode:
    """Test the subtract-threshold accumulator."""

    def test_multiple_ticks(self):
        timers = Timers(delay=10, mode="subtract")
        assert timers.tick(TIMER_PERIOD * 3.5) == 3
        assert timers.delay == 7
        assert timers.accumulator == pytest.approx(TIMER_PERIOD * 0.5)

    def test_remainder_carries_over(self):
        timers = Timers(delay=10, mode="subtract")
        timers.tick(TIMER_PERIOD * 1.5)
        assert timers.tick(TIMER_PERIOD * 0.6) == 1
        assert timers.delay == 8
