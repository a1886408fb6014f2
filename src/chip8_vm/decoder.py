"""Opcode decoder for the CHIP-8 VM.

Architecture:
    16-bit word -> split nibbles -> (operation_key, operands) -> Registry -> Execute

Every instruction is split into four nibbles

    hh hl lh ll
    |  |  |  +-- n  (low nibble)
    |  |  +----- y  (register)
    |  +-------- x  (register)
    +----------- family

with the projections nnn (12-bit address) and kk (8-bit immediate).
The high nibble picks the family; families 0, 8, E and F need a second
lookup on the low nibble or low byte. Decoding never raises: anything that
does not match a known pattern comes back as OP_UNKNOWN with valid=False.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .state import PROGRAM_START


@dataclass(frozen=True)
class Operands:
    """Fields of one instruction word.

    Attributes:
        opcode: The raw 16-bit word
        hh, hl, lh, ll: Nibbles, highest to lowest
        nnn: 12-bit address (hl lh ll)
        kk: 8-bit immediate (lh ll)
        n: 4-bit immediate (ll)
        x: First register index (hl)
        y: Second register index (lh)
    """
    opcode: int
    hh: int
    hl: int
    lh: int
    ll: int
    nnn: int
    kk: int
    n: int
    x: int
    y: int


def split_opcode(opcode: int) -> Operands:
    """Extract nibbles and operand projections from an instruction word."""
    opcode &= 0xFFFF
    hh = (opcode & 0xF000) >> 12
    hl = (opcode & 0x0F00) >> 8
    lh = (opcode & 0x00F0) >> 4
    ll = opcode & 0x000F
    return Operands(
        opcode=opcode,
        hh=hh,
        hl=hl,
        lh=lh,
        ll=ll,
        nnn=(hl << 8) | (lh << 4) | ll,
        kk=(lh << 4) | ll,
        n=ll,
        x=hl,
        y=lh,
    )


@dataclass
class DecodeResult:
    """Result of decoding one instruction word.

    Attributes:
        key: Operation key (e.g., "OP_ADD_REG")
        operands: Decoded operand fields
        valid: Whether the word matched a known pattern
        error: Reason the word was not recognized
        mnemonic: Assembly rendering (e.g., "ADD V0, V1")
    """
    key: str
    operands: Operands
    valid: bool
    error: Optional[str] = None
    mnemonic: str = ""


# Families fully determined by the high nibble
_FAMILY_KEYS: Dict[int, str] = {
    0x1: "OP_JP",
    0x2: "OP_CALL",
    0x3: "OP_SE_IMM",
    0x4: "OP_SNE_IMM",
    0x6: "OP_LD_IMM",
    0x7: "OP_ADD_IMM",
    0xA: "OP_LD_I",
    0xB: "OP_JP_V0",
    0xC: "OP_RND",
    0xD: "OP_DRW",
}

# 8xyN, keyed on the low nibble
_ALU_KEYS: Dict[int, str] = {
    0x0: "OP_LD_REG",
    0x1: "OP_OR",
    0x2: "OP_AND",
    0x3: "OP_XOR",
    0x4: "OP_ADD_REG",
    0x5: "OP_SUB",
    0x6: "OP_SHR",
    0x7: "OP_SUBN",
    0xE: "OP_SHL",
}

# ExNN, keyed on the low byte
_KEY_SKIP_KEYS: Dict[int, str] = {
    0x9E: "OP_SKP",
    0xA1: "OP_SKNP",
}

# FxNN, keyed on the low byte
_MISC_KEYS: Dict[int, str] = {
    0x07: "OP_LD_VX_DT",
    0x0A: "OP_LD_VX_K",
    0x15: "OP_LD_DT",
    0x18: "OP_LD_ST",
    0x1E: "OP_ADD_I",
    0x29: "OP_LD_F",
    0x33: "OP_LD_B",
    0x55: "OP_LD_MEM_REGS",
    0x65: "OP_LD_REGS_MEM",
}

MNEMONICS: Dict[str, str] = {
    "OP_HALT": "HALT",
    "OP_CLS": "CLS",
    "OP_RET": "RET",
    "OP_SYS": "SYS {nnn:03X}",
    "OP_JP": "JP {nnn:03X}",
    "OP_CALL": "CALL {nnn:03X}",
    "OP_SE_IMM": "SE V{x:X}, {kk:02X}",
    "OP_SNE_IMM": "SNE V{x:X}, {kk:02X}",
    "OP_SE_REG": "SE V{x:X}, V{y:X}",
    "OP_LD_IMM": "LD V{x:X}, {kk:02X}",
    "OP_ADD_IMM": "ADD V{x:X}, {kk:02X}",
    "OP_LD_REG": "LD V{x:X}, V{y:X}",
    "OP_OR": "OR V{x:X}, V{y:X}",
    "OP_AND": "AND V{x:X}, V{y:X}",
    "OP_XOR": "XOR V{x:X}, V{y:X}",
    "OP_ADD_REG": "ADD V{x:X}, V{y:X}",
    "OP_SUB": "SUB V{x:X}, V{y:X}",
    "OP_SHR": "SHR V{x:X}, V{y:X}",
    "OP_SUBN": "SUBN V{x:X}, V{y:X}",
    "OP_SHL": "SHL V{x:X}, V{y:X}",
    "OP_SNE_REG": "SNE V{x:X}, V{y:X}",
    "OP_LD_I": "LD I, {nnn:03X}",
    "OP_JP_V0": "JP V0, {nnn:03X}",
    "OP_RND": "RND V{x:X}, {kk:02X}",
    "OP_DRW": "DRW V{x:X}, V{y:X}, {n:X}",
    "OP_SKP": "SKP V{x:X}",
    "OP_SKNP": "SKNP V{x:X}",
    "OP_LD_VX_DT": "LD V{x:X}, DT",
    "OP_LD_VX_K": "LD V{x:X}, K",
    "OP_LD_DT": "LD DT, V{x:X}",
    "OP_LD_ST": "LD ST, V{x:X}",
    "OP_ADD_I": "ADD I, V{x:X}",
    "OP_LD_F": "LD F, V{x:X}",
    "OP_LD_B": "LD B, V{x:X}",
    "OP_LD_MEM_REGS": "LD [I], V{x:X}",
    "OP_LD_REGS_MEM": "LD V{x:X}, [I]",
    "OP_UNKNOWN": "DW {opcode:04X}",
}


class OpcodeDecoder:
    """Maps instruction words to registry keys.

    Attributes:
        VALID_KEYS: Every key the decoder can emit
    """

    VALID_KEYS: Set[str] = set(MNEMONICS)

    def decode(self, opcode: int) -> DecodeResult:
        """Decode an instruction word to operation key and operands.

        Args:
            opcode: 16-bit instruction word

        Returns:
            DecodeResult; unrecognized words give OP_UNKNOWN, valid=False
        """
        ops = split_opcode(opcode)
        key = self._lookup(ops)

        if key is None:
            return DecodeResult(
                key="OP_UNKNOWN",
                operands=ops,
                valid=False,
                error=f"Unrecognized opcode: {ops.opcode:04X}",
                mnemonic=MNEMONICS["OP_UNKNOWN"].format(**_fields(ops)),
            )

        return DecodeResult(
            key=key,
            operands=ops,
            valid=True,
            mnemonic=MNEMONICS[key].format(**_fields(ops)),
        )

    def _lookup(self, ops: Operands) -> Optional[str]:
        family = ops.hh

        if family in _FAMILY_KEYS:
            return _FAMILY_KEYS[family]

        if family == 0x0:
            if ops.opcode == 0x0000:
                return "OP_HALT"
            if ops.opcode == 0x00E0:
                return "OP_CLS"
            if ops.opcode == 0x00EE:
                return "OP_RET"
            # 0nnn: machine code routine on the original hardware, ignored
            return "OP_SYS"

        if family == 0x5:
            return "OP_SE_REG" if ops.n == 0 else None
        if family == 0x9:
            return "OP_SNE_REG" if ops.n == 0 else None
        if family == 0x8:
            return _ALU_KEYS.get(ops.n)
        if family == 0xE:
            return _KEY_SKIP_KEYS.get(ops.kk)
        if family == 0xF:
            return _MISC_KEYS.get(ops.kk)

        return None


def _fields(ops: Operands) -> dict:
    return {
        "opcode": ops.opcode,
        "nnn": ops.nnn,
        "kk": ops.kk,
        "n": ops.n,
        "x": ops.x,
        "y": ops.y,
    }


def disassemble(data: bytes, origin: int = PROGRAM_START) -> List[str]:
    """Render a program image as an address/word/mnemonic listing.

    A trailing odd byte is shown as a data byte.

    Args:
        data: Program image
        origin: Address of data[0]

    Returns:
        One line per instruction word, e.g. "200: 00E0  CLS"
    """
    decoder = OpcodeDecoder()
    lines = []
    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        result = decoder.decode(word)
        lines.append(f"{origin + offset:03X}: {word:04X}  {result.mnemonic}")
    if len(data) % 2:
        lines.append(f"{origin + len(data) - 1:03X}: {data[-1]:02X}    DB {data[-1]:02X}")
    return lines


def parse_hex_program(text: str) -> bytes:
    """Parse whitespace/semicolon/comma separated hex words into a program image.

    Tokens may carry a 0x prefix.

    Raises:
        ValueError: If a token is not an even-length hex string
    """
    tokens = text.replace(";", " ").replace(",", " ").split()
    data = bytearray()
    for token in tokens:
        if token.lower().startswith("0x"):
            token = token[2:]
        if not token or len(token) % 2:
            raise ValueError(f"Invalid hex token: {token!r}")
        data.extend(bytes.fromhex(token))
    return bytes(data)
