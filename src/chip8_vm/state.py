"""Chip8State: the CHIP-8 machine state.

State Components:
    - Registers: V0-VF (16 x 8-bit), VF doubles as carry/borrow/collision flag
    - I: 16-bit index register
    - PC: Program counter, starts at 0x200
    - Memory: 4096 bytes, font glyphs at 0x000-0x04F, programs at 0x200
    - Stack: up to 16 return addresses
    - Display: 64x32 monochrome pixels, stored row-major as display[y][x]
    - Keypad: 16 key flags and the wait-for-key latch
    - Timers: delay and sound
    - Halted / cycle count / draw-pending bookkeeping

The state is owned by a single Chip8VM and mutated in place by the
registry primitives. snapshot() produces detached copies for tracing.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Union

from .errors import MemoryBoundsError, ProgramTooLargeError, StackOverflowError, StackUnderflowError
from .keypad import AwaitingKey, Keypad
from .timers import Timers


MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START
NUM_REGISTERS = 16
STACK_DEPTH = 16
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
FONT_START = 0x000
FONT_GLYPH_SIZE = 5

# Hex digit glyphs 0-F, 5 rows of 4 pixels each (upper nibble)
FONTSET = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)

RegisterRef = Union[int, str]


def _fresh_memory() -> bytearray:
    memory = bytearray(MEMORY_SIZE)
    memory[FONT_START:FONT_START + len(FONTSET)] = bytes(FONTSET)
    return memory


def _blank_display() -> List[List[int]]:
    return [[0] * DISPLAY_WIDTH for _ in range(DISPLAY_HEIGHT)]


def register_index(reg: RegisterRef) -> int:
    """Resolve a register reference to its index.

    Args:
        reg: Index 0-15, or a name such as "V3" / "vf" (case insensitive)

    Returns:
        Register index 0-15

    Raises:
        KeyError: If the reference does not name a register
    """
    if isinstance(reg, str):
        name = reg.upper()
        if len(name) != 2 or name[0] != "V" or name[1] not in "0123456789ABCDEF":
            raise KeyError(f"Invalid register: {reg}")
        return int(name[1], 16)
    if not 0 <= reg < NUM_REGISTERS:
        raise KeyError(f"Invalid register: {reg}")
    return reg


@dataclass
class Chip8State:
    """Mutable CHIP-8 machine state.

    Attributes:
        registers: V0-VF values, each 0-255
        index: The I register
        pc: Program counter
        memory: 4096-byte address space
        stack: Saved return addresses, innermost last
        display: Pixel grid indexed display[y][x], values 0 or 1
        keypad: Key flags and wait latch
        timers: Delay and sound timers
        halted: Whether the run has stopped
        cycle_count: Number of instructions executed
        draw_pending: Display changed since the host last consumed it
    """
    registers: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    index: int = 0
    pc: int = PROGRAM_START
    memory: bytearray = field(default_factory=_fresh_memory)
    stack: List[int] = field(default_factory=list)
    display: List[List[int]] = field(default_factory=_blank_display)
    keypad: Keypad = field(default_factory=Keypad)
    timers: Timers = field(default_factory=Timers)
    halted: bool = False
    cycle_count: int = 0
    draw_pending: bool = False

    # -------------------------------------------------------------------------
    # Registers
    # -------------------------------------------------------------------------

    def get_register(self, reg: RegisterRef) -> int:
        return self.registers[register_index(reg)]

    def set_register(self, reg: RegisterRef, value: int) -> None:
        """Store a value into a register, truncated to 8 bits."""
        self.registers[register_index(reg)] = value & 0xFF

    def set_flag(self, value: int) -> None:
        """Write VF. Always applied after the operation's result."""
        self.registers[0xF] = 1 if value else 0

    def set_index(self, value: int) -> None:
        self.index = value & 0xFFFF

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values keyed by name (V0-VF)."""
        return {f"V{i:X}": value for i, value in enumerate(self.registers)}

    # -------------------------------------------------------------------------
    # Memory
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_address(address: int, length: int = 1) -> None:
        if address < 0 or address + length > MEMORY_SIZE:
            raise MemoryBoundsError(
                f"Memory access out of range: {address:#05x} (+{length})", address=address
            )

    def read_byte(self, address: int) -> int:
        self._check_address(address)
        return self.memory[address]

    @staticmethod
    def _check_writable(address: int, length: int = 1) -> None:
        """Program stores may not reach below 0x200 (font and reserved area)."""
        Chip8State._check_address(address, length)
        if address < PROGRAM_START:
            raise MemoryBoundsError(
                f"Write into reserved memory: {address:#05x} (+{length})", address=address
            )

    def write_byte(self, address: int, value: int) -> None:
        self._check_writable(address)
        self.memory[address] = value & 0xFF

    def write_bytes(self, address: int, values) -> None:
        """Write a run of bytes; nothing is written if any would fall outside
        program memory.
        """
        values = bytes(v & 0xFF for v in values)
        self._check_writable(address, len(values))
        self.memory[address:address + len(values)] = values

    def read_bytes(self, address: int, length: int) -> bytes:
        self._check_address(address, length)
        return bytes(self.memory[address:address + length])

    def read_word(self, address: int) -> int:
        """Read a big-endian 16-bit instruction word."""
        self._check_address(address, 2)
        return (self.memory[address] << 8) | self.memory[address + 1]

    def load_program(self, data: bytes) -> None:
        """Copy a program image into memory at 0x200.

        Raises:
            ProgramTooLargeError: If the image does not fit
        """
        if len(data) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(
                f"Program is {len(data)} bytes, maximum is {MAX_PROGRAM_SIZE}"
            )
        self.memory[PROGRAM_START:PROGRAM_START + len(data)] = bytes(data)

    # -------------------------------------------------------------------------
    # Program counter and stack
    # -------------------------------------------------------------------------

    def increment_pc(self, amount: int = 2) -> None:
        self.pc += amount

    def set_pc(self, new_pc: int) -> None:
        self.pc = new_pc

    def push(self, address: int) -> None:
        """Push a return address.

        Raises:
            StackOverflowError: If the stack already holds 16 entries
        """
        if len(self.stack) >= STACK_DEPTH:
            raise StackOverflowError(f"Stack overflow: depth {STACK_DEPTH} exceeded")
        self.stack.append(address)

    def pop(self) -> int:
        """Pop the innermost return address.

        Raises:
            StackUnderflowError: If the stack is empty
        """
        if not self.stack:
            raise StackUnderflowError("Stack underflow: return with empty stack")
        return self.stack.pop()

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def clear_display(self) -> None:
        for row in self.display:
            for x in range(DISPLAY_WIDTH):
                row[x] = 0
        self.draw_pending = True

    def display_snapshot(self) -> tuple:
        """Read-only copy of the display as a tuple of row tuples."""
        return tuple(tuple(row) for row in self.display)

    def lit_pixels(self) -> int:
        return sum(sum(row) for row in self.display)

    # -------------------------------------------------------------------------
    # Tracing and validation
    # -------------------------------------------------------------------------

    def snapshot(self) -> dict:
        """Create a detached snapshot of the scalar state for tracing.

        Memory and display are excluded (they are large and the trace only
        needs the register-level view).
        """
        wait = self.keypad.wait
        return {
            "registers": list(self.registers),
            "index": self.index,
            "pc": self.pc,
            "stack": list(self.stack),
            "delay": self.timers.delay,
            "sound": self.timers.sound,
            "waiting_register": wait.register if isinstance(wait, AwaitingKey) else None,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - 16 registers, each within 0-255
            - I within 16 bits, PC inside memory
            - Stack depth at most 16
            - Memory size and intact font table
            - Display dimensions and pixel values

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.registers) != NUM_REGISTERS:
            return False
        for value in self.registers:
            if not isinstance(value, int) or not 0 <= value <= 0xFF:
                return False

        if not 0 <= self.index <= 0xFFFF:
            return False
        if not 0 <= self.pc < MEMORY_SIZE:
            return False
        if len(self.stack) > STACK_DEPTH:
            return False

        if len(self.memory) != MEMORY_SIZE:
            return False
        if bytes(self.memory[FONT_START:FONT_START + len(FONTSET)]) != bytes(FONTSET):
            return False

        if len(self.display) != DISPLAY_HEIGHT:
            return False
        for row in self.display:
            if len(row) != DISPLAY_WIDTH or any(pixel not in (0, 1) for pixel in row):
                return False

        if self.cycle_count < 0:
            return False

        return True

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"V{i:X}={v:02X}" for i, v in enumerate(self.registers))
        return (
            f"[Cycle {self.cycle_count}] PC={self.pc:03X} I={self.index:03X} "
            f"SP={len(self.stack)} DT={self.timers.delay} ST={self.timers.sound} "
            f"{regs} {'HALTED' if self.halted else ''}"
        ).rstrip()


def create_initial_state(program: bytes = b"", timer_mode: str = "reset") -> Chip8State:
    """Create a fresh machine with the font installed and a program loaded.

    Args:
        program: Program image to place at 0x200
        timer_mode: Timer accumulator mode

    Returns:
        Fresh Chip8State with PC at 0x200
    """
    state = Chip8State(timers=Timers(mode=timer_mode))
    state.load_program(program)
    return state
