"""Exception hierarchy for the CHIP-8 VM.

Every fatal condition raised while executing a program derives from
Chip8Error. The VM wraps them in ExecutionFault so the host gets the
offending opcode and program counter alongside the underlying cause.
"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for all VM errors."""


class StackOverflowError(Chip8Error):
    """CALL executed with the 16-level stack already full."""


class StackUnderflowError(Chip8Error):
    """RET executed with an empty stack."""


class MemoryBoundsError(Chip8Error):
    """Access outside memory, or a key index outside 0x0-0xF."""

    def __init__(self, message: str, address: Optional[int] = None):
        super().__init__(message)
        self.address = address


class ProgramTooLargeError(Chip8Error):
    """Program image does not fit between 0x200 and the end of memory."""


class ExecutionFault(Chip8Error):
    """Fatal fault raised from a cycle, with decode context.

    Attributes:
        opcode: Instruction word being executed (None if the fetch failed)
        pc: Address the instruction was fetched from
        cause: The underlying Chip8Error
    """

    def __init__(self, opcode: Optional[int], pc: int, cause: Chip8Error):
        self.opcode = opcode
        self.pc = pc
        self.cause = cause
        op_text = f"{opcode:04X}" if opcode is not None else "????"
        super().__init__(f"{type(cause).__name__} at PC={pc:03X} opcode={op_text}: {cause}")
