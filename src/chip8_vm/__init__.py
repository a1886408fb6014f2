"""chip8-vm: A CHIP-8 virtual machine.

This package interprets CHIP-8 programs: an 8-bit register machine with
4KB of memory, a 16-level call stack, a 64x32 monochrome display, a
16-key hexadecimal keypad and two 60 Hz timers.

Architecture:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> STATE
               |         |        |        |           |
           [PC-based] [nibbles] [OP_*]  [handlers]  [registers, display,
                                                      keypad, timers]

Modules:
    state: Chip8State machine state and memory layout constants
    decoder: Opcode splitting, operation keys, disassembly and hex parsing
    registry: Instruction primitives (one handler per operation)
    timers: 60 Hz delay and sound timers
    keypad: Key flags and the wait-for-key latch
    cpu: Chip8VM orchestrator and host interface
    config: Chip8Config options and compatibility switches
    errors: Exception hierarchy
    render: Text rendering of the display
"""

__version__ = "0.1.0"
__author__ = "chip8-vm contributors"

from .config import Chip8Config
from .cpu import Chip8VM, ExecutionTraceEntry
from .decoder import DecodeResult, OpcodeDecoder, disassemble, parse_hex_program
from .errors import (
    Chip8Error,
    ExecutionFault,
    MemoryBoundsError,
    ProgramTooLargeError,
    StackOverflowError,
    StackUnderflowError,
)
from .registry import Chip8Registry
from .state import Chip8State

__all__ = [
    "Chip8Config",
    "Chip8VM",
    "ExecutionTraceEntry",
    "DecodeResult",
    "OpcodeDecoder",
    "disassemble",
    "parse_hex_program",
    "Chip8Error",
    "ExecutionFault",
    "MemoryBoundsError",
    "ProgramTooLargeError",
    "StackOverflowError",
    "StackUnderflowError",
    "Chip8Registry",
    "Chip8State",
]
