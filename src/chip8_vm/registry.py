"""Chip8Registry: the CHIP-8 instruction primitives.

Each decoded operation key maps to one handler. Handlers receive the
machine state and the decoded operands and mutate the state in place. The
program counter has already been advanced past the instruction when a
handler runs, so jumps overwrite it and skips add a further 2.

Registry Keys:
    OP_HALT, OP_SYS, OP_CLS, OP_RET                 (0 family)
    OP_JP, OP_CALL, OP_JP_V0                        (control flow)
    OP_SE_IMM, OP_SNE_IMM, OP_SE_REG, OP_SNE_REG    (conditional skips)
    OP_LD_IMM, OP_ADD_IMM, OP_LD_REG                (register loads)
    OP_OR, OP_AND, OP_XOR, OP_ADD_REG, OP_SUB,
    OP_SHR, OP_SUBN, OP_SHL                         (8xyN ALU)
    OP_LD_I, OP_RND, OP_DRW                         (index, random, draw)
    OP_SKP, OP_SKNP, OP_LD_VX_K                     (keypad)
    OP_LD_VX_DT, OP_LD_DT, OP_LD_ST                 (timers)
    OP_ADD_I, OP_LD_F, OP_LD_B,
    OP_LD_MEM_REGS, OP_LD_REGS_MEM                  (index/memory)
    OP_UNKNOWN                                      (ignored)

VF is written after the result register so that flag-producing operations
targeting VF leave the flag, not the result, in it.
"""

import logging
import random
from typing import Callable, Dict, Optional

from .config import Chip8Config
from .decoder import Operands
from .state import Chip8State, DISPLAY_HEIGHT, DISPLAY_WIDTH, FONT_GLYPH_SIZE, FONT_START


logger = logging.getLogger(__name__)

Handler = Callable[[Chip8State, Operands], None]


class Chip8Registry:
    """Frozen registry of instruction primitives.

    Attributes:
        config: Quirk switches consulted by the handlers
        rng: Random source for Cxkk
        _primitives: Dictionary mapping operation keys to handlers
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self, config: Optional[Chip8Config] = None, rng: Optional[random.Random] = None):
        self.config = config or Chip8Config()
        self.rng = rng or random.Random(self.config.seed)
        self._primitives: Dict[str, Handler] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        # 0 family
        self.register("OP_HALT", self._op_halt)
        self.register("OP_SYS", self._op_nop)
        self.register("OP_CLS", self._op_cls)
        self.register("OP_RET", self._op_ret)

        # Control flow
        self.register("OP_JP", self._op_jp)
        self.register("OP_CALL", self._op_call)
        self.register("OP_JP_V0", self._op_jp_v0)

        # Conditional skips
        self.register("OP_SE_IMM", self._op_se_imm)
        self.register("OP_SNE_IMM", self._op_sne_imm)
        self.register("OP_SE_REG", self._op_se_reg)
        self.register("OP_SNE_REG", self._op_sne_reg)

        # Register loads
        self.register("OP_LD_IMM", self._op_ld_imm)
        self.register("OP_ADD_IMM", self._op_add_imm)
        self.register("OP_LD_REG", self._op_ld_reg)

        # ALU
        self.register("OP_OR", self._op_or)
        self.register("OP_AND", self._op_and)
        self.register("OP_XOR", self._op_xor)
        self.register("OP_ADD_REG", self._op_add_reg)
        self.register("OP_SUB", self._op_sub)
        self.register("OP_SHR", self._op_shr)
        self.register("OP_SUBN", self._op_subn)
        self.register("OP_SHL", self._op_shl)

        # Index, random, display
        self.register("OP_LD_I", self._op_ld_i)
        self.register("OP_RND", self._op_rnd)
        self.register("OP_DRW", self._op_drw)

        # Keypad
        self.register("OP_SKP", self._op_skp)
        self.register("OP_SKNP", self._op_sknp)
        self.register("OP_LD_VX_K", self._op_ld_vx_k)

        # Timers
        self.register("OP_LD_VX_DT", self._op_ld_vx_dt)
        self.register("OP_LD_DT", self._op_ld_dt)
        self.register("OP_LD_ST", self._op_ld_st)

        # Index and memory
        self.register("OP_ADD_I", self._op_add_i)
        self.register("OP_LD_F", self._op_ld_f)
        self.register("OP_LD_B", self._op_ld_b)
        self.register("OP_LD_MEM_REGS", self._op_ld_mem_regs)
        self.register("OP_LD_REGS_MEM", self._op_ld_regs_mem)

        self.register("OP_UNKNOWN", self._op_unknown)

    def register(self, key: str, handler: Handler) -> None:
        """Register a primitive operation.

        Args:
            key: Operation key (e.g., "OP_ADD_REG")
            handler: Function taking (state, operands)

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if key in self._primitives:
            raise ValueError(f"Primitive already registered: {key}")
        self._primitives[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> set:
        return set(self._primitives.keys())

    def execute(self, state: Chip8State, key: str, operands: Operands) -> None:
        """Execute a registered primitive and count the cycle.

        Raises:
            KeyError: If key not in registry
            Chip8Error: Fatal faults raised by the primitive
        """
        if key not in self._primitives:
            raise KeyError(f"Unknown operation key: {key}")

        self._primitives[key](state, operands)
        state.cycle_count += 1

    # =========================================================================
    # 0 Family
    # =========================================================================

    def _op_halt(self, state: Chip8State, ops: Operands) -> None:
        """0000 - Stop the run (when halt_on_zero is enabled)."""
        if self.config.halt_on_zero:
            state.halted = True

    def _op_nop(self, state: Chip8State, ops: Operands) -> None:
        pass

    def _op_cls(self, state: Chip8State, ops: Operands) -> None:
        state.clear_display()

    def _op_ret(self, state: Chip8State, ops: Operands) -> None:
        state.set_pc(state.pop())

    # =========================================================================
    # Control Flow
    # =========================================================================

    def _op_jp(self, state: Chip8State, ops: Operands) -> None:
        state.set_pc(ops.nnn)

    def _op_call(self, state: Chip8State, ops: Operands) -> None:
        """2nnn - Push the return address (already PC + 2) and jump."""
        state.push(state.pc)
        state.set_pc(ops.nnn)

    def _op_jp_v0(self, state: Chip8State, ops: Operands) -> None:
        """Bnnn - Jump to nnn + V0, wrapped to the 12-bit address space."""
        state.set_pc((ops.nnn + state.registers[0]) & 0xFFF)

    # =========================================================================
    # Conditional Skips
    # =========================================================================

    def _skip_if(self, state: Chip8State, condition: bool) -> None:
        if condition:
            state.increment_pc()

    def _op_se_imm(self, state: Chip8State, ops: Operands) -> None:
        self._skip_if(state, state.registers[ops.x] == ops.kk)

    def _op_sne_imm(self, state: Chip8State, ops: Operands) -> None:
        self._skip_if(state, state.registers[ops.x] != ops.kk)

    def _op_se_reg(self, state: Chip8State, ops: Operands) -> None:
        self._skip_if(state, state.registers[ops.x] == state.registers[ops.y])

    def _op_sne_reg(self, state: Chip8State, ops: Operands) -> None:
        self._skip_if(state, state.registers[ops.x] != state.registers[ops.y])

    # =========================================================================
    # Register Loads
    # =========================================================================

    def _op_ld_imm(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, ops.kk)

    def _op_add_imm(self, state: Chip8State, ops: Operands) -> None:
        """7xkk - Vx += kk, carry out to VF when add_immediate_sets_carry."""
        total = state.registers[ops.x] + ops.kk
        state.set_register(ops.x, total)
        if self.config.add_immediate_sets_carry:
            state.set_flag(total > 0xFF)

    def _op_ld_reg(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, state.registers[ops.y])

    # =========================================================================
    # ALU (8xyN)
    # =========================================================================

    def _op_or(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, state.registers[ops.x] | state.registers[ops.y])

    def _op_and(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, state.registers[ops.x] & state.registers[ops.y])

    def _op_xor(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, state.registers[ops.x] ^ state.registers[ops.y])

    def _op_add_reg(self, state: Chip8State, ops: Operands) -> None:
        """8xy4 - Vx += Vy, VF = 1 on carry out of 8 bits."""
        total = state.registers[ops.x] + state.registers[ops.y]
        state.set_register(ops.x, total)
        state.set_flag(total > 0xFF)

    def _op_sub(self, state: Chip8State, ops: Operands) -> None:
        """8xy5 - Vx -= Vy, VF = 1 when no borrow occurs (Vx >= Vy)."""
        vx = state.registers[ops.x]
        vy = state.registers[ops.y]
        state.set_register(ops.x, vx - vy)
        state.set_flag(vx >= vy)

    def _op_subn(self, state: Chip8State, ops: Operands) -> None:
        """8xy7 - Vx = Vy - Vx, VF = 1 when no borrow occurs (Vy >= Vx)."""
        vx = state.registers[ops.x]
        vy = state.registers[ops.y]
        state.set_register(ops.x, vy - vx)
        state.set_flag(vy >= vx)

    def _shift_source(self, state: Chip8State, ops: Operands) -> int:
        return state.registers[ops.y if self.config.shift_uses_vy else ops.x]

    def _op_shr(self, state: Chip8State, ops: Operands) -> None:
        """8xy6 - Shift right, VF = bit shifted out."""
        value = self._shift_source(state, ops)
        state.set_register(ops.x, value >> 1)
        state.set_flag(value & 0x01)

    def _op_shl(self, state: Chip8State, ops: Operands) -> None:
        """8xyE - Shift left, VF = bit shifted out."""
        value = self._shift_source(state, ops)
        state.set_register(ops.x, value << 1)
        state.set_flag(value & 0x80)

    # =========================================================================
    # Index, Random, Display
    # =========================================================================

    def _op_ld_i(self, state: Chip8State, ops: Operands) -> None:
        state.set_index(ops.nnn)

    def _op_rnd(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, self.rng.randrange(256) & ops.kk)

    def _op_drw(self, state: Chip8State, ops: Operands) -> None:
        """Dxyn - XOR an n-row sprite from memory[I] onto the display.

        Rows and columns wrap around the screen edges. VF is set to 1 if
        any lit pixel is turned off, 0 otherwise.
        """
        origin_x = state.registers[ops.x]
        origin_y = state.registers[ops.y]
        sprite = state.read_bytes(state.index, ops.n)

        state.registers[0xF] = 0
        collision = False
        changed = False

        for row, bits in enumerate(sprite):
            line = state.display[(origin_y + row) % DISPLAY_HEIGHT]
            for col in range(8):
                if not (bits >> (7 - col)) & 1:
                    continue
                x = (origin_x + col) % DISPLAY_WIDTH
                if line[x]:
                    collision = True
                line[x] ^= 1
                changed = True

        state.set_flag(collision)
        if changed:
            state.draw_pending = True

    # =========================================================================
    # Keypad
    # =========================================================================

    def _op_skp(self, state: Chip8State, ops: Operands) -> None:
        self._skip_if(state, state.keypad.is_pressed(state.registers[ops.x]))

    def _op_sknp(self, state: Chip8State, ops: Operands) -> None:
        self._skip_if(state, not state.keypad.is_pressed(state.registers[ops.x]))

    def _op_ld_vx_k(self, state: Chip8State, ops: Operands) -> None:
        """Fx0A - Suspend fetching until the host reports a key press."""
        state.keypad.begin_wait(ops.x)

    # =========================================================================
    # Timers
    # =========================================================================

    def _op_ld_vx_dt(self, state: Chip8State, ops: Operands) -> None:
        state.set_register(ops.x, state.timers.delay)

    def _op_ld_dt(self, state: Chip8State, ops: Operands) -> None:
        state.timers.set_delay(state.registers[ops.x])

    def _op_ld_st(self, state: Chip8State, ops: Operands) -> None:
        state.timers.set_sound(state.registers[ops.x])

    # =========================================================================
    # Index and Memory
    # =========================================================================

    def _op_add_i(self, state: Chip8State, ops: Operands) -> None:
        state.set_index(state.index + state.registers[ops.x])

    def _op_ld_f(self, state: Chip8State, ops: Operands) -> None:
        """Fx29 - Point I at the font glyph for the digit in Vx."""
        state.set_index(FONT_START + state.registers[ops.x] * FONT_GLYPH_SIZE)

    def _op_ld_b(self, state: Chip8State, ops: Operands) -> None:
        """Fx33 - Store hundreds, tens and ones of Vx at I, I+1, I+2."""
        value = state.registers[ops.x]
        state.write_bytes(state.index, (value // 100, (value // 10) % 10, value % 10))

    def _op_ld_mem_regs(self, state: Chip8State, ops: Operands) -> None:
        """Fx55 - Store V0..Vx starting at I."""
        state.write_bytes(state.index, state.registers[:ops.x + 1])
        if self.config.load_store_increments_index:
            state.set_index(state.index + ops.x + 1)

    def _op_ld_regs_mem(self, state: Chip8State, ops: Operands) -> None:
        """Fx65 - Load V0..Vx from memory starting at I."""
        values = state.read_bytes(state.index, ops.x + 1)
        for reg, value in enumerate(values):
            state.set_register(reg, value)
        if self.config.load_store_increments_index:
            state.set_index(state.index + ops.x + 1)

    def _op_unknown(self, state: Chip8State, ops: Operands) -> None:
        logger.debug("Ignoring unrecognized opcode %04X", ops.opcode)
