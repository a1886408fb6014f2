"""Chip8Config: run-time options for the CHIP-8 VM.

Most fields are compatibility switches ("quirks") where interpreters
historically disagree. Defaults follow the behavior documented for this
VM; hosts can flip them for ROMs written against other interpreters.
"""

from dataclasses import dataclass, asdict
from typing import Optional


TIMER_MODES = ("reset", "subtract")


@dataclass
class Chip8Config:
    """VM configuration.

    Attributes:
        max_cycles: Safety limit on executed instructions for run()
        timer_mode: "reset" clears the timer accumulator after each tick,
            "subtract" removes one period and may tick several times
        halt_on_zero: Treat opcode 0000 as a halt instruction
        add_immediate_sets_carry: 7xkk writes the carry out to VF
        shift_uses_vy: 8xy6/8xyE shift Vy into Vx instead of shifting Vx
        load_store_increments_index: Fx55/Fx65 leave I = I + x + 1
        seed: Seed for the Cxkk random source (None = nondeterministic)
        trace: Record an ExecutionTraceEntry per cycle
        trace_limit: Maximum number of trace entries kept
    """
    max_cycles: int = 100000
    timer_mode: str = "reset"
    halt_on_zero: bool = True
    add_immediate_sets_carry: bool = True
    shift_uses_vy: bool = False
    load_store_increments_index: bool = False
    seed: Optional[int] = None
    trace: bool = False
    trace_limit: int = 1000

    def validate(self) -> None:
        """Check option values.

        Raises:
            ValueError: If any option is out of range
        """
        if self.timer_mode not in TIMER_MODES:
            raise ValueError(f"Invalid timer_mode: {self.timer_mode!r} (expected one of {TIMER_MODES})")
        if self.max_cycles <= 0:
            raise ValueError(f"max_cycles must be positive, got {self.max_cycles}")
        if self.trace_limit <= 0:
            raise ValueError(f"trace_limit must be positive, got {self.trace_limit}")

    def to_dict(self) -> dict:
        return asdict(self)
