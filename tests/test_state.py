"""Tests for Chip8State dataclass."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.errors import MemoryBoundsError, ProgramTooLargeError, StackOverflowError, StackUnderflowError
from chip8_vm.state import (
    Chip8State,
    DISPLAY_HEIGHT,
    DISPLAY_WIDTH,
    FONTSET,
    MAX_PROGRAM_SIZE,
    MEMORY_SIZE,
    PROGRAM_START,
    STACK_DEPTH,
    create_initial_state,
)


class TestChip8StateCreation:
    """Test Chip8State initialization and defaults."""

    def test_default_state(self):
        """Default state has zeroed registers and PC at 0x200."""
        state = Chip8State()
        assert state.pc == PROGRAM_START
        assert state.index == 0
        assert state.cycle_count == 0
        assert state.halted is False
        assert state.registers == [0] * 16
        assert state.stack == []
        assert state.timers.delay == 0
        assert state.timers.sound == 0

    def test_font_installed_at_zero(self):
        """Font table occupies 0x000-0x04F, the rest of low memory is zero."""
        state = Chip8State()
        assert len(FONTSET) == 80
        assert bytes(state.memory[0x000:0x050]) == bytes(FONTSET)
        assert not any(state.memory[0x050:PROGRAM_START])

    def test_display_blank(self):
        state = Chip8State()
        assert len(state.display) == DISPLAY_HEIGHT
        assert all(len(row) == DISPLAY_WIDTH for row in state.display)
        assert state.lit_pixels() == 0

    def test_create_initial_state(self):
        """create_initial_state loads program into memory at 0x200."""
        program = bytes([0x60, 0x01, 0x00, 0x00])
        state = create_initial_state(program)
        assert bytes(state.memory[PROGRAM_START:PROGRAM_START + 4]) == program
        assert state.pc == PROGRAM_START
        assert state.halted is False

    def test_program_too_large(self):
        """A program longer than 0xE00 bytes is rejected."""
        with pytest.raises(ProgramTooLargeError):
            create_initial_state(bytes(MAX_PROGRAM_SIZE + 1))

    def test_program_fills_memory(self):
        """A program of exactly 0xE00 bytes fits."""
        state = create_initial_state(bytes([0xAB]) * MAX_PROGRAM_SIZE)
        assert state.memory[MEMORY_SIZE - 1] == 0xAB


class TestChip8StateValidation:
    """Test state validation."""

    def test_valid_state(self):
        assert Chip8State().validate() is True

    def test_invalid_register_value(self):
        """Register value out of bounds fails validation."""
        state = Chip8State()
        state.registers[0] = 0x100
        assert state.validate() is False

    def test_pc_outside_memory(self):
        state = Chip8State(pc=MEMORY_SIZE)
        assert state.validate() is False

    def test_corrupted_font(self):
        state = Chip8State()
        state.memory[0] = 0x00
        assert state.validate() is False

    def test_invalid_pixel(self):
        state = Chip8State()
        state.display[0][0] = 2
        assert state.validate() is False


class TestChip8StateRegisters:
    """Test register accessors."""

    def test_set_register_truncates(self):
        """set_register keeps only the low 8 bits."""
        state = Chip8State()
        state.set_register(0, 0x1FF)
        assert state.registers[0] == 0xFF

    def test_get_register_by_name(self):
        """Registers can be addressed as V0-VF, case insensitive."""
        state = Chip8State()
        state.set_register("VA", 42)
        assert state.get_register("va") == 42
        assert state.get_register(0xA) == 42

    def test_get_register_invalid(self):
        state = Chip8State()
        with pytest.raises(KeyError):
            state.get_register("R0")
        with pytest.raises(KeyError):
            state.get_register(16)

    def test_set_flag(self):
        state = Chip8State()
        state.set_flag(True)
        assert state.registers[0xF] == 1
        state.set_flag(0)
        assert state.registers[0xF] == 0

    def test_set_index_wraps_16_bits(self):
        state = Chip8State()
        state.set_index(0x1_0005)
        assert state.index == 0x0005

    def test_dump_registers(self):
        """dump_registers returns copy of all registers."""
        state = Chip8State()
        state.set_register(0, 1)
        state.set_register(0xF, 2)

        regs = state.dump_registers()
        assert regs["V0"] == 1
        assert regs["VF"] == 2
        assert len(regs) == 16

        regs["V0"] = 99
        assert state.registers[0] == 1


class TestChip8StateMemory:
    """Test bounds-checked memory access."""

    def test_read_word_big_endian(self):
        state = create_initial_state(bytes([0x12, 0x34]))
        assert state.read_word(PROGRAM_START) == 0x1234

    def test_read_word_at_last_byte(self):
        """A word starting at 0xFFF runs off the end of memory."""
        state = Chip8State()
        with pytest.raises(MemoryBoundsError):
            state.read_word(0xFFF)

    def test_write_byte_out_of_range(self):
        state = Chip8State()
        with pytest.raises(MemoryBoundsError) as excinfo:
            state.write_byte(MEMORY_SIZE, 1)
        assert excinfo.value.address == MEMORY_SIZE

    def test_write_below_program_start(self):
        """Stores into the font and reserved area are refused."""
        state = Chip8State()
        with pytest.raises(MemoryBoundsError) as excinfo:
            state.write_byte(0x010, 0xFF)
        assert excinfo.value.address == 0x010
        assert state.memory[0x010] == FONTSET[0x010]
        with pytest.raises(MemoryBoundsError):
            state.write_bytes(PROGRAM_START - 1, [1, 2])

    def test_write_at_program_start(self):
        state = Chip8State()
        state.write_bytes(PROGRAM_START, [1, 2])
        assert state.read_word(PROGRAM_START) == 0x0102

    def test_write_bytes_is_all_or_nothing(self):
        """A run crossing the end of memory writes nothing."""
        state = Chip8State()
        with pytest.raises(MemoryBoundsError):
            state.write_bytes(0xFFE, [1, 2, 3])
        assert state.memory[0xFFE] == 0
        assert state.memory[0xFFF] == 0

    def test_read_bytes(self):
        state = Chip8State()
        assert state.read_bytes(0, 5) == bytes(FONTSET[:5])


class TestChip8StateStack:
    """Test call stack limits."""

    def test_push_pop_order(self):
        state = Chip8State()
        state.push(0x202)
        state.push(0x300)
        assert state.pop() == 0x300
        assert state.pop() == 0x202

    def test_overflow(self):
        """Pushing a 17th address overflows."""
        state = Chip8State()
        for i in range(STACK_DEPTH):
            state.push(0x200 + 2 * i)
        with pytest.raises(StackOverflowError):
            state.push(0x400)
        assert len(state.stack) == STACK_DEPTH

    def test_underflow(self):
        state = Chip8State()
        with pytest.raises(StackUnderflowError):
            state.pop()


class TestChip8StateSnapshot:
    """Test state snapshot for tracing."""

    def test_snapshot_is_detached(self):
        """Snapshot is a copy of the state."""
        state = Chip8State()
        state.set_register(0, 42)
        state.push(0x204)
        snapshot = state.snapshot()

        assert snapshot["registers"][0] == 42
        assert snapshot["pc"] == PROGRAM_START
        assert snapshot["stack"] == [0x204]
        assert snapshot["waiting_register"] is None
        assert snapshot["halted"] is False

        snapshot["registers"][0] = 99
        snapshot["stack"].append(0)
        assert state.registers[0] == 42
        assert state.stack == [0x204]

    def test_snapshot_reports_key_wait(self):
        state = Chip8State()
        state.keypad.begin_wait(3)
        assert state.snapshot()["waiting_register"] == 3

    def test_str(self):
        state = Chip8State()
        text = str(state)
        assert "PC=200" in text
        assert "V0=00" in text


class TestDisplaySnapshot:
    """Test the read-only display view."""

    def test_snapshot_is_immutable_copy(self):
        state = Chip8State()
        state.display[1][2] = 1
        view = state.display_snapshot()
        assert view[1][2] == 1
        assert isinstance(view, tuple) and isinstance(view[0], tuple)
        state.display[1][2] = 0
        assert view[1][2] == 1

    def test_clear_display(self):
        state = Chip8State()
        for row in state.display:
            row[:] = [1] * DISPLAY_WIDTH
        state.clear_display()
        assert state.lit_pixels() == 0
        assert state.draw_pending is True
