import pytest

from opcodes import (Op, Instruction, decode, disassemble,
                     family, address, reg_x, reg_y, nibble, byte)


def test_opcode_bits():
    code = 0xCABC
    assert family(code) == 0xC
    assert address(code) == 0xABC
    assert reg_x(code) == 0xA
    assert reg_y(code) == 0xB
    assert nibble(0b1111111110001010) == 0b1010
    assert byte(code) == 0xBC


@pytest.mark.parametrize("word, op, operands", [
    (0x00E0, Op.CLS, ()),
    (0x00EE, Op.RET, ()),
    (0x0123, Op.SYS, (0x123,)),
    (0x1ABC, Op.JP, (0xABC,)),
    (0x2ABC, Op.CALL, (0xABC,)),
    (0x3AF0, Op.SE_IMM, (0xA, 0xF0)),
    (0x4AF0, Op.SNE_IMM, (0xA, 0xF0)),
    (0x5AB0, Op.SE_REG, (0xA, 0xB)),
    (0x6F12, Op.LD_IMM, (0xF, 0x12)),
    (0x7A01, Op.ADD_IMM, (0xA, 0x01)),
    (0x8AB0, Op.LD_REG, (0xA, 0xB)),
    (0x8AB1, Op.OR, (0xA, 0xB)),
    (0x8AB2, Op.AND, (0xA, 0xB)),
    (0x8AB3, Op.XOR, (0xA, 0xB)),
    (0x8AB4, Op.ADD_REG, (0xA, 0xB)),
    (0x8AB5, Op.SUB, (0xA, 0xB)),
    (0x8AB6, Op.SHR, (0xA, 0xB)),
    (0x8AB7, Op.SUBN, (0xA, 0xB)),
    (0x8ABE, Op.SHL, (0xA, 0xB)),
    (0x9AB0, Op.SNE_REG, (0xA, 0xB)),
    (0xA123, Op.LD_I, (0x123,)),
    (0xB201, Op.JP_V0, (0x201,)),
    (0xC30F, Op.RND, (0x3, 0x0F)),
    (0xDAB5, Op.DRW, (0xA, 0xB, 0x5)),
    (0xE19E, Op.SKP, (0x1,)),
    (0xE1A1, Op.SKNP, (0x1,)),
    (0xF207, Op.LD_VX_DT, (0x2,)),
    (0xF20A, Op.LD_VX_K, (0x2,)),
    (0xF215, Op.LD_DT_VX, (0x2,)),
    (0xF218, Op.LD_ST_VX, (0x2,)),
    (0xF21E, Op.ADD_I, (0x2,)),
    (0xF229, Op.LD_F, (0x2,)),
    (0xF233, Op.LD_B, (0x2,)),
    (0xF255, Op.LD_MEM_VX, (0x2,)),
    (0xF265, Op.LD_VX_MEM, (0x2,)),
])
def test_decode(word, op, operands):
    instruction = decode(word)
    assert instruction.op == op
    assert instruction.operands == operands
    assert instruction.word == word


@pytest.mark.parametrize("word", [
    0x5AB1, 0x8AB8, 0x8ABF, 0x9AB1, 0xE19F, 0xF2FF, 0xFFFF,
])
def test_decode_invalid(word):
    assert decode(word) == Instruction(Op.INVALID, word, (word,))


def test_every_word_decodes():
    for word in range(0x10000):
        assert isinstance(decode(word).op, Op)


@pytest.mark.parametrize("word, text", [
    (0x00E0, "CLS"),
    (0x1ABC, "JP abc"),
    (0x3AF0, "SE VA, f0"),
    (0x5AB0, "SE VA, VB"),
    (0xB201, "JP V0, 201"),
    (0xDAB5, "DRW VA, VB, 5"),
    (0xF355, "LD [I], V3"),
    (0xF365, "LD V3, [I]"),
    (0xFFFF, "DW 0xffff"),
])
def test_mnemonic(word, text):
    assert str(decode(word)) == text


def test_disassemble():
    listing = list(disassemble(bytes([0x1A, 0xBC, 0x00, 0xE0, 0x12])))
    assert [(addr, word) for addr, word, _ in listing] == [
        (0x200, 0x1ABC), (0x202, 0x00E0), (0x204, 0x1200)]
    assert listing[1][2].op == Op.CLS


def test_disassemble_origin():
    (addr, word, instruction), = disassemble([0x00, 0xEE], origin=0)
    assert addr == 0
    assert instruction.op == Op.RET
