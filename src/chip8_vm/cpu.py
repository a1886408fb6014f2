"""Chip8VM: fetch-decode-execute orchestrator for the CHIP-8 VM.

Each cycle runs the pipeline:
    MEMORY[PC] -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> TIMERS

The host drives the VM one cycle at a time, passing the wall time elapsed
since the previous cycle, delivers key events between cycles and reads the
display when draw_pending is set.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

from .config import Chip8Config
from .decoder import DecodeResult, OpcodeDecoder
from .errors import Chip8Error, ExecutionFault
from .registry import Chip8Registry
from .state import Chip8State, RegisterRef, create_initial_state


logger = logging.getLogger(__name__)


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Cycle number (0-indexed)
        pc: Address the instruction was fetched from
        opcode: Raw instruction word, or None if the fetch itself failed
        decode_result: Result from the decoder, or None if nothing was fetched
        pre_state: State snapshot before execution
        post_state: State snapshot after execution
        error: Error message if execution failed
    """
    cycle: int
    pc: int
    opcode: Optional[int]
    decode_result: Optional[DecodeResult]
    pre_state: dict
    post_state: dict
    error: Optional[str] = None


class Chip8VM:
    """CHIP-8 virtual machine.

    Attributes:
        config: Run-time options and quirk switches
        decoder: OpcodeDecoder instance
        registry: Chip8Registry with the instruction primitives
        state: Current machine state
        trace: Recent execution trace entries (when config.trace is set)
    """

    def __init__(self, config: Optional[Chip8Config] = None):
        """Initialize the VM with a blank machine (font installed).

        Args:
            config: Options; defaults to Chip8Config()

        Raises:
            ValueError: If the config is invalid
        """
        self.config = config or Chip8Config()
        self.config.validate()
        self.decoder = OpcodeDecoder()
        self.registry = Chip8Registry(self.config)
        self.state: Chip8State = create_initial_state(timer_mode=self.config.timer_mode)
        self.trace: Deque[ExecutionTraceEntry] = deque(maxlen=self.config.trace_limit)
        self._program = b""

    # =========================================================================
    # Host interface
    # =========================================================================

    def load(self, data: bytes) -> None:
        """Load a program image at 0x200 into a fresh machine.

        Args:
            data: Program bytes

        Raises:
            ProgramTooLargeError: If the image exceeds 0xE00 bytes
        """
        state = create_initial_state(bytes(data), timer_mode=self.config.timer_mode)
        self.state = state
        self._program = bytes(data)
        self.trace.clear()
        logger.debug("Loaded %d byte program", len(data))

    def reset(self) -> None:
        """Restart the currently loaded program from a fresh machine."""
        self.load(self._program)

    def cycle(self, elapsed: float = 0.0) -> Optional[ExecutionTraceEntry]:
        """Execute one instruction and advance the timers.

        While a key wait is pending no instruction is fetched; only the
        timers advance.

        Args:
            elapsed: Wall time in seconds since the previous cycle

        Returns:
            The trace entry for this cycle when tracing is enabled, else None

        Raises:
            RuntimeError: If the VM is halted
            ExecutionFault: On a fatal fault; the VM is halted first
        """
        state = self.state
        if state.halted:
            raise RuntimeError("VM is halted")

        if state.keypad.waiting:
            state.timers.tick(elapsed)
            return None

        pc = state.pc
        pre_state = state.snapshot() if self.config.trace else None

        # FETCH
        try:
            opcode = state.read_word(pc)
        except Chip8Error as e:
            if self.config.trace:
                self._record(pc, None, None, pre_state, error=str(e))
            self._fault(None, pc, e)

        # DECODE
        decode_result = self.decoder.decode(opcode)
        state.increment_pc()

        # EXECUTE
        try:
            self.registry.execute(state, decode_result.key, decode_result.operands)
        except Chip8Error as e:
            if self.config.trace:
                self._record(pc, opcode, decode_result, pre_state, error=str(e))
            self._fault(opcode, pc, e)

        state.timers.tick(elapsed)

        if decode_result.key == "OP_HALT" and state.halted:
            logger.info("Halted at PC=%03X after %d cycles", pc, state.cycle_count)

        if self.config.trace:
            return self._record(pc, opcode, decode_result, pre_state)
        return None

    def key_pressed(self, code: int) -> None:
        """Report a key press; resolves a pending Fx0A wait.

        Raises:
            ValueError: If code is not 0x0-0xF
        """
        register = self.state.keypad.press(code)
        if register is not None:
            self.state.set_register(register, code)

    def key_released(self, code: int) -> None:
        """Report a key release.

        Raises:
            ValueError: If code is not 0x0-0xF
        """
        self.state.keypad.release(code)

    @property
    def display(self) -> tuple:
        """Read-only 64x32 pixel grid, indexed display[y][x]."""
        return self.state.display_snapshot()

    @property
    def draw_pending(self) -> bool:
        return self.state.draw_pending

    def consume_draw_flag(self) -> bool:
        """Return whether the display changed and clear the flag."""
        pending = self.state.draw_pending
        self.state.draw_pending = False
        return pending

    @property
    def sound_active(self) -> bool:
        return self.state.timers.sound_active

    # =========================================================================
    # Headless driving
    # =========================================================================

    def step(self) -> Optional[ExecutionTraceEntry]:
        """Execute a single cycle with no elapsed time."""
        return self.cycle(0.0)

    def run(self, max_cycles: Optional[int] = None, elapsed: float = 0.0) -> List[ExecutionTraceEntry]:
        """Run until halt, a key wait, or the cycle limit.

        Args:
            max_cycles: Override maximum cycles (uses config default if None)
            elapsed: Wall time reported to each cycle

        Returns:
            Execution trace (empty unless tracing is enabled)

        Raises:
            RuntimeError: If max cycles exceeded (safety limit)
            ExecutionFault: On a fatal fault
        """
        limit = max_cycles if max_cycles is not None else self.config.max_cycles

        while not self.state.halted and self.state.cycle_count < limit:
            if self.state.keypad.waiting:
                logger.debug("Run paused waiting for a key")
                break
            self.cycle(elapsed)

        # Stopped on the cycle limit rather than a halt or key wait
        if not self.state.halted and not self.state.keypad.waiting and self.state.cycle_count >= limit:
            raise RuntimeError(f"Max cycles ({limit}) exceeded")

        return list(self.trace)

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_register(self, reg: RegisterRef) -> int:
        return self.state.get_register(reg)

    def dump_registers(self) -> Dict[str, int]:
        return self.state.dump_registers()

    def get_pc(self) -> int:
        return self.state.pc

    def get_index(self) -> int:
        return self.state.index

    def get_cycle_count(self) -> int:
        return self.state.cycle_count

    def is_halted(self) -> bool:
        return self.state.halted

    def is_waiting_for_key(self) -> bool:
        return self.state.keypad.waiting

    # =========================================================================
    # Reporting
    # =========================================================================

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("CHIP-8 EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            print(f"\n[Cycle {entry.cycle}] {status}")
            if entry.decode_result is None:
                print(f"  {entry.pc:03X}: ????  (fetch failed)")
            else:
                print(f"  {entry.pc:03X}: {entry.opcode:04X}  {entry.decode_result.mnemonic}")
                print(f"  Decoded Key: {entry.decode_result.key}")

            pre_regs = entry.pre_state.get("registers", [])
            post_regs = entry.post_state.get("registers", [])
            changes = []
            for i, (before, after) in enumerate(zip(pre_regs, post_regs)):
                if before != after:
                    changes.append(f"V{i:X}: {before:02X} -> {after:02X}")
            if entry.pre_state.get("index") != entry.post_state.get("index"):
                changes.append(f"I: {entry.pre_state['index']:03X} -> {entry.post_state['index']:03X}")
            if changes:
                print(f"  Changes: {', '.join(changes)}")

            post_pc = entry.post_state.get("pc", entry.pc)
            if post_pc != entry.pc + 2:
                print(f"  PC: {entry.pc:03X} -> {post_pc:03X}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        print(f"  {self.state}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "waiting_for_key": self.is_waiting_for_key(),
            "registers": self.dump_registers(),
            "index": self.get_index(),
            "pc": self.get_pc(),
            "stack_depth": len(self.state.stack),
            "delay": self.state.timers.delay,
            "sound": self.state.timers.sound,
            "lit_pixels": self.state.lit_pixels(),
            "trace_length": len(self.trace),
            "errors": [e.error for e in self.trace if e.error],
        }

    # =========================================================================
    # Internals
    # =========================================================================

    def _record(
        self,
        pc: int,
        opcode: Optional[int],
        decode_result: Optional[DecodeResult],
        pre_state: Optional[dict],
        error: Optional[str] = None,
    ) -> ExecutionTraceEntry:
        entry = ExecutionTraceEntry(
            cycle=(pre_state or {}).get("cycle_count", self.state.cycle_count),
            pc=pc,
            opcode=opcode,
            decode_result=decode_result,
            pre_state=pre_state or {},
            post_state=self.state.snapshot(),
            error=error,
        )
        self.trace.append(entry)
        return entry

    def _fault(self, opcode: Optional[int], pc: int, cause: Chip8Error) -> None:
        self.state.halted = True
        fault = ExecutionFault(opcode, pc, cause)
        logger.error("%s", fault)
        raise fault from cause
