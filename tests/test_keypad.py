"""Tests for the keypad and wait-for-key latch."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.errors import MemoryBoundsError
from chip8_vm.keypad import RUNNING, AwaitingKey, Keypad


class TestKeyFlags:
    """Test press and release events."""

    @pytest.fixture
    def keypad(self):
        return Keypad()

    def test_initially_released(self, keypad):
        assert keypad.pressed_keys() == []
        assert keypad.wait == RUNNING

    def test_press_and_release(self, keypad):
        assert keypad.press(0xA) is None
        assert keypad.is_pressed(0xA) is True
        keypad.release(0xA)
        assert keypad.is_pressed(0xA) is False

    def test_multiple_keys(self, keypad):
        keypad.press(1)
        keypad.press(0xF)
        assert keypad.pressed_keys() == [1, 0xF]

    @pytest.mark.parametrize("code", [-1, 16, 255])
    def test_host_code_out_of_range(self, keypad, code):
        with pytest.raises(ValueError):
            keypad.press(code)
        with pytest.raises(ValueError):
            keypad.release(code)

    def test_program_index_out_of_range(self, keypad):
        """A register value above 0xF used as a key index is a bounds fault."""
        with pytest.raises(MemoryBoundsError):
            keypad.is_pressed(0x10)


class TestWaitLatch:
    """Test the Running / AwaitingKey state machine."""

    @pytest.fixture
    def keypad(self):
        return Keypad()

    def test_begin_wait(self, keypad):
        keypad.begin_wait(5)
        assert keypad.waiting is True
        assert keypad.wait == AwaitingKey(5)

    def test_press_resolves_wait(self, keypad):
        keypad.begin_wait(5)
        assert keypad.press(0xB) == 5
        assert keypad.waiting is False
        assert keypad.wait == RUNNING
        assert keypad.is_pressed(0xB) is True

    def test_release_does_not_resolve(self, keypad):
        keypad.begin_wait(2)
        keypad.release(3)
        assert keypad.waiting is True

    def test_single_outstanding_wait(self, keypad):
        keypad.begin_wait(1)
        with pytest.raises(RuntimeError):
            keypad.begin_wait(2)

    def test_second_press_after_resolution(self, keypad):
        keypad.begin_wait(0)
        keypad.press(1)
        assert keypad.press(2) is None
