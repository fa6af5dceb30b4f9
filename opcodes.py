# chip8vm, a Chip-8 interpreter.

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""Instruction decoding for the Chip-8.

Every instruction is a big-endian 16 bit word. The top nibble picks the
instruction family, the rest is split up into fields depending on the
family:

    0x1nnn    nnn   - 12 bit address
    0x3xkk    x     - register, kk - immediate byte
    0x8xyn    x, y  - registers, n - sub-op / sprite height
"""

import enum
from typing import NamedTuple


def family(word):
    """Most significant nibble"""
    return word >> 12 & 0xF


def address(word):
    """Lowest 12 bits"""
    return word & 0x0FFF


def reg_x(word):
    """Second nibble"""
    return word >> 8 & 0x0F


def reg_y(word):
    """Third nibble"""
    return word >> 4 & 0x0F


def nibble(word):
    """Fourth nibble"""
    return word & 0x000F


def byte(word):
    """Low byte"""
    return word & 0x00FF



@enum.unique
class Op(enum.Enum):
    """Operation tags. Each value is the assembly template for its operands."""
    SYS = "SYS {0:03x}"
    CLS = "CLS"
    RET = "RET"
    JP = "JP {0:03x}"
    CALL = "CALL {0:03x}"
    SE_IMM = "SE V{0:X}, {1:02x}"
    SNE_IMM = "SNE V{0:X}, {1:02x}"
    SE_REG = "SE V{0:X}, V{1:X}"
    LD_IMM = "LD V{0:X}, {1:02x}"
    ADD_IMM = "ADD V{0:X}, {1:02x}"
    LD_REG = "LD V{0:X}, V{1:X}"
    OR = "OR V{0:X}, V{1:X}"
    AND = "AND V{0:X}, V{1:X}"
    XOR = "XOR V{0:X}, V{1:X}"
    ADD_REG = "ADD V{0:X}, V{1:X}"
    SUB = "SUB V{0:X}, V{1:X}"
    SHR = "SHR V{0:X}, V{1:X}"
    SUBN = "SUBN V{0:X}, V{1:X}"
    SHL = "SHL V{0:X}, V{1:X}"
    SNE_REG = "SNE V{0:X}, V{1:X}"
    LD_I = "LD I, {0:03x}"
    JP_V0 = "JP V0, {0:03x}"
    RND = "RND V{0:X}, {1:02x}"
    DRW = "DRW V{0:X}, V{1:X}, {2:x}"
    SKP = "SKP V{0:X}"
    SKNP = "SKNP V{0:X}"
    LD_VX_DT = "LD V{0:X}, DT"
    LD_VX_K = "LD V{0:X}, K"
    LD_DT_VX = "LD DT, V{0:X}"
    LD_ST_VX = "LD ST, V{0:X}"
    ADD_I = "ADD I, V{0:X}"
    LD_F = "LD F, V{0:X}"
    LD_B = "LD B, V{0:X}"
    LD_MEM_VX = "LD [I], V{0:X}"
    LD_VX_MEM = "LD V{0:X}, [I]"
    INVALID = "DW 0x{0:04x}"


class Instruction(NamedTuple):
    op: Op
    word: int
    operands: tuple = ()

    def __str__(self):
        return self.op.value.format(*self.operands)


# 0x8xyn register-register ALU ops, keyed by n
ALU_OPS = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# 0xExkk key ops, keyed by kk
KEY_OPS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# 0xFxkk timer, memory and misc IO, keyed by kk
IO_OPS = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I,
    0x29: Op.LD_F,
    0x33: Op.LD_B,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}

# Families whose operands are (x, kk)
IMMEDIATE_OPS = {
    0x3: Op.SE_IMM,
    0x4: Op.SNE_IMM,
    0x6: Op.LD_IMM,
    0x7: Op.ADD_IMM,
    0xC: Op.RND,
}

# Families whose only operand is nnn
ADDRESS_OPS = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
}


def decode(word):
    """Decode a 16 bit instruction word into an Instruction.

    Never raises. Anything that doesn't match a known pattern decodes to
    Op.INVALID carrying the raw word, and it's up to the executor to
    refuse it.
    """
    word &= 0xFFFF
    fam = family(word)
    x = reg_x(word)
    y = reg_y(word)
    n = nibble(word)
    kk = byte(word)
    nnn = address(word)

    if fam == 0x0:
        if nnn == 0x0E0:
            return Instruction(Op.CLS, word)
        elif nnn == 0x0EE:
            return Instruction(Op.RET, word)
        return Instruction(Op.SYS, word, (nnn,))
    elif fam in ADDRESS_OPS:
        return Instruction(ADDRESS_OPS[fam], word, (nnn,))
    elif fam in IMMEDIATE_OPS:
        return Instruction(IMMEDIATE_OPS[fam], word, (x, kk))
    elif fam == 0x5 and n == 0x0:
        return Instruction(Op.SE_REG, word, (x, y))
    elif fam == 0x8 and n in ALU_OPS:
        return Instruction(ALU_OPS[n], word, (x, y))
    elif fam == 0x9 and n == 0x0:
        return Instruction(Op.SNE_REG, word, (x, y))
    elif fam == 0xD:
        return Instruction(Op.DRW, word, (x, y, n))
    elif fam == 0xE and kk in KEY_OPS:
        return Instruction(KEY_OPS[kk], word, (x,))
    elif fam == 0xF and kk in IO_OPS:
        return Instruction(IO_OPS[kk], word, (x,))
    return Instruction(Op.INVALID, word, (word,))


def disassemble(program, origin=0x200):
    """Yield (address, word, instruction) for each word of a program image.

    A trailing odd byte is padded out as the high byte of a final word.
    """
    for offset in range(0, len(program), 2):
        hi = program[offset]
        lo = program[offset + 1] if offset + 1 < len(program) else 0
        word = hi << 8 | lo
        yield origin + offset, word, decode(word)
