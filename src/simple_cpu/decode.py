"""Instruction encoding for SIMPLE-CPU.

Instructions are 16-bit words. The most significant hex digit is the
opcode and the remaining three hex digits are the address/operand field:

    15      12 11                     0
    +---------+------------------------+
    | opcode  |    address / operand   |
    +---------+------------------------+

Decoding is total: any 16-bit value splits into a 4-bit opcode candidate
and a 12-bit address. Whether the opcode is valid is decided at dispatch.
"""

from enum import IntEnum


WORD_BITS = 16
WORD_MASK = (1 << WORD_BITS) - 1          # 0xFFFF
ADDRESS_BITS = 12
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1    # 0xFFF
OPCODE_MASK = 0xF


class Opcode(IntEnum):
    """The closed instruction set."""
    LOAD_AC_MEM = 0b0001
    STORE_AC_MEM = 0b0010
    LOAD_AC_REG = 0b0011
    STORE_AC_REG = 0b0100
    ADD_AC_MEM = 0b0101
    LOAD_REG_OPERAND = 0b0110
    ADD_AC_REG = 0b0111
    MULT_AC_REG = 0b1000
    SUBT_AC_REG = 0b1001
    DIV_AC_REG = 0b1010
    JUMP_TO_SUBROUT = 0b1011
    RET_FRM_SUBROUT = 0b1100
    HALT = 0b1111


VALID_OPCODES = frozenset(int(op) for op in Opcode)


def decode_opcode(word: int) -> int:
    """Extract the 4-bit opcode from an instruction word."""
    return (word >> ADDRESS_BITS) & OPCODE_MASK


def decode_address(word: int) -> int:
    """Extract the 12-bit address/operand field from an instruction word."""
    return word & ADDRESS_MASK


def encode_instruction(opcode: int, address: int = 0) -> int:
    """Build an instruction word from an opcode and an address/operand.

    Raises:
        ValueError: If either field does not fit its width
    """
    if not 0 <= opcode <= OPCODE_MASK:
        raise ValueError(f"Opcode out of range: {opcode}")
    if not 0 <= address <= ADDRESS_MASK:
        raise ValueError(f"Address out of range: {address}")
    return (int(opcode) << ADDRESS_BITS) | address


def is_word(value: int) -> bool:
    return isinstance(value, int) and 0 <= value <= WORD_MASK


def is_address(value: int) -> bool:
    return isinstance(value, int) and 0 <= value <= ADDRESS_MASK


def to_word(value: int) -> int:
    """Wrap an arbitrary integer into a word (modulo 2**16)."""
    return value & WORD_MASK


def disassemble(word: int) -> str:
    """Render an instruction word as ``MNEMONIC 0AB``.

    Unrecognized opcodes render as ``??? 0AB``.
    """
    opcode = decode_opcode(word)
    address = decode_address(word)
    mnemonic = Opcode(opcode).name if opcode in VALID_OPCODES else "???"
    return f"{mnemonic} {address:03X}"
