"""Keypad: 16 key flags and the wait-for-key latch.

The hexadecimal keypad is laid out as

    1 2 3 C
    4 5 6 D
    7 8 9 E
    A 0 B F

Key flags are only changed by host events. Fx0A puts the keypad into the
AwaitingKey state; the next press resolves it with the key code.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .errors import MemoryBoundsError


logger = logging.getLogger(__name__)

NUM_KEYS = 16


@dataclass(frozen=True)
class Running:
    """No key wait outstanding."""


@dataclass(frozen=True)
class AwaitingKey:
    """Execution is suspended until a key press is stored in `register`."""
    register: int


KeyWaitState = Union[Running, AwaitingKey]

RUNNING = Running()


@dataclass
class Keypad:
    """Key states plus the Running / AwaitingKey sub-state machine.

    Attributes:
        keys: Pressed flag for each key 0x0-0xF
        wait: Current wait state, RUNNING or an AwaitingKey
    """
    keys: List[bool] = field(default_factory=lambda: [False] * NUM_KEYS)
    wait: KeyWaitState = RUNNING

    @staticmethod
    def _check_code(code: int) -> None:
        if not 0 <= code < NUM_KEYS:
            raise ValueError(f"Invalid key code: {code!r} (expected 0x0-0xF)")

    def press(self, code: int) -> Optional[int]:
        """Mark a key as pressed.

        Args:
            code: Key code 0x0-0xF

        Returns:
            The register index waiting on this press, or None if no wait
            was pending. The caller stores `code` into that register.

        Raises:
            ValueError: If code is out of range
        """
        self._check_code(code)
        self.keys[code] = True

        if isinstance(self.wait, AwaitingKey):
            register = self.wait.register
            self.wait = RUNNING
            logger.debug("Key %X resolved wait on V%X", code, register)
            return register
        return None

    def release(self, code: int) -> None:
        self._check_code(code)
        self.keys[code] = False

    def is_pressed(self, code: int) -> bool:
        """Read a key flag on behalf of a program (Ex9E/ExA1).

        Raises:
            MemoryBoundsError: If the register held a value above 0xF
        """
        if not 0 <= code < NUM_KEYS:
            raise MemoryBoundsError(f"Key index out of range: {code:#x}", address=code)
        return self.keys[code]

    def begin_wait(self, register: int) -> None:
        """Enter AwaitingKey for the given register.

        Raises:
            RuntimeError: If a wait is already outstanding
        """
        if isinstance(self.wait, AwaitingKey):
            raise RuntimeError(f"Already waiting for a key into V{self.wait.register:X}")
        self.wait = AwaitingKey(register)
        logger.debug("Waiting for key into V%X", register)

    @property
    def waiting(self) -> bool:
        return isinstance(self.wait, AwaitingKey)

    def pressed_keys(self) -> List[int]:
        return [code for code, down in enumerate(self.keys) if down]
