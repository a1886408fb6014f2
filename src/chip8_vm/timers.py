"""Delay and sound timers.

Both timers count down at 60 Hz independent of how many instructions run.
The host reports elapsed wall time on each cycle; the accumulated time is
flushed once it reaches one timer period.
"""

from dataclasses import dataclass


TIMER_HZ = 60
TIMER_PERIOD = 1.0 / TIMER_HZ
TIMER_MAX = 0xFF


@dataclass
class Timers:
    """The two 8-bit countdown timers plus the elapsed-time accumulator.

    Attributes:
        delay: Delay timer, readable by programs through Fx07
        sound: Sound timer, a tone plays while nonzero
        accumulator: Wall time (seconds) not yet converted into ticks
        mode: "reset" or "subtract" (see Chip8Config.timer_mode)
    """
    delay: int = 0
    sound: int = 0
    accumulator: float = 0.0
    mode: str = "reset"

    def set_delay(self, value: int) -> None:
        self.delay = max(0, min(TIMER_MAX, value))

    def set_sound(self, value: int) -> None:
        self.sound = max(0, min(TIMER_MAX, value))

    def decrement(self) -> None:
        """Count both timers down by one, saturating at zero."""
        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1

    def tick(self, elapsed: float) -> int:
        """Account for elapsed wall time.

        Args:
            elapsed: Seconds since the previous call

        Returns:
            Number of 60 Hz decrements applied
        """
        if elapsed < 0:
            raise ValueError(f"elapsed time cannot be negative: {elapsed}")

        self.accumulator += elapsed
        if self.accumulator < TIMER_PERIOD:
            return 0

        if self.mode == "subtract":
            ticks = 0
            while self.accumulator >= TIMER_PERIOD:
                self.accumulator -= TIMER_PERIOD
                self.decrement()
                ticks += 1
            return ticks

        # reset mode: one tick per flush, surplus time is dropped
        self.accumulator = 0.0
        self.decrement()
        return 1

    @property
    def sound_active(self) -> bool:
        return self.sound > 0
