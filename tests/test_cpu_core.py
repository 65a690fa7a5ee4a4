"""
CPU core tests: word model, ALU, instruction table, register file.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from syn15.cpu import alu
from syn15.cpu.decoder import (
    OPCODES, Instruction, arity, decode_opcode, lookup, lookup_mnemonic, width,
)
from syn15.cpu.faults import (
    DivisionByZero, IllegalOpcode, InvalidOperand, StackUnderflow,
)
from syn15.cpu.regs import Registers
from syn15.cpu.words import (
    ADDR, DST, VAL, encode_literal, encode_register, format_operand,
    is_register, is_valid_operand, normalize, register_index, resolve,
)
from syn15.mem.memory import Memory


class TestOperandModel:

    def test_literal_resolves_to_itself(self):
        regs = [0] * 8
        for w in (0, 1, 123, 32767):
            assert resolve(w, regs) == w

    def test_register_resolves_to_contents(self):
        regs = [10, 11, 12, 13, 14, 15, 16, 17]
        for i in range(8):
            assert resolve(32768 + i, regs) == regs[i]

    def test_illegal_operand_fails(self):
        with pytest.raises(InvalidOperand):
            resolve(32776, [0] * 8)
        with pytest.raises(InvalidOperand):
            resolve(65535, [0] * 8)

    def test_normalize(self):
        assert normalize(32768) == 0
        assert normalize(32758 + 15) == 5
        assert normalize(-1) == 32767

    def test_encoders(self):
        assert encode_literal(0) == 0
        assert encode_literal(32767) == 32767
        assert encode_register(0) == 32768
        assert encode_register(7) == 32775
        with pytest.raises(ValueError):
            encode_literal(32768)
        with pytest.raises(ValueError):
            encode_register(8)

    def test_predicates(self):
        assert is_register(32768) and is_register(32775)
        assert not is_register(32767) and not is_register(32776)
        assert is_valid_operand(32775)
        assert not is_valid_operand(32776)
        assert register_index(32771) == 3

    def test_format_operand(self):
        assert format_operand(32768) == "R0"
        assert format_operand(32775, ADDR) == "R7"
        assert format_operand(123, VAL) == "123"
        assert format_operand(123, ADDR) == "@123"


class TestALU:

    def test_add_wraps(self):
        assert alu.add(32758, 15) == 5

    def test_mult_wraps(self):
        assert alu.mult(16384, 2) == 0
        assert alu.mult(120, 1) == 120

    def test_mod(self):
        assert alu.mod(17, 5) == 2
        with pytest.raises(DivisionByZero):
            alu.mod(5, 0)

    def test_bitwise(self):
        assert alu.and_(0b1100, 0b1010) == 0b1000
        assert alu.or_(0b1100, 0b1010) == 0b1110

    def test_not_is_15_bit(self):
        assert alu.not_(0) == 32767
        assert alu.not_(32767) == 0
        assert alu.not_(0b101) == 32767 - 0b101

    def test_compare(self):
        assert alu.eq(3, 3) == 1 and alu.eq(3, 4) == 0
        assert alu.gt(4, 3) == 1 and alu.gt(3, 3) == 0

    def test_results_are_words(self):
        samples = [0, 1, 2, 255, 16383, 16384, 32766, 32767]
        for a in samples:
            for b in samples:
                for f in (alu.add, alu.mult, alu.and_, alu.or_):
                    assert 0 <= f(a, b) <= 32767
            assert 0 <= alu.not_(a) <= 32767


class TestInstructionTable:

    def test_twenty_two_opcodes(self):
        assert sorted(OPCODES) == list(range(22))

    @pytest.mark.parametrize("opcode,mnem,n", [
        (0, 'HALT', 0), (1, 'SET', 2), (2, 'PUSH', 1), (3, 'POP', 1),
        (4, 'EQ', 3), (5, 'GT', 3), (6, 'JMP', 1), (7, 'JT', 2), (8, 'JF', 2),
        (9, 'ADD', 3), (10, 'MULT', 3), (11, 'MOD', 3), (12, 'AND', 3),
        (13, 'OR', 3), (14, 'NOT', 2), (15, 'RMEM', 2), (16, 'WMEM', 2),
        (17, 'CALL', 1), (18, 'RET', 0), (19, 'OUT', 1), (20, 'IN', 1),
        (21, 'NOOP', 0),
    ])
    def test_mnemonic_and_arity(self, opcode, mnem, n):
        assert lookup(opcode)[0] == mnem
        assert arity(opcode) == n
        assert width(opcode) == n + 1
        assert lookup_mnemonic(mnem.lower()) == opcode

    def test_destination_roles(self):
        assert lookup(1)[1] == (DST, VAL)
        assert lookup(15)[1] == (DST, ADDR)
        assert lookup(16)[1] == (ADDR, VAL)
        assert lookup(7)[1] == (VAL, ADDR)

    def test_unknown(self):
        assert lookup(22) is None
        assert lookup_mnemonic('MOV') is None
        with pytest.raises(IllegalOpcode):
            arity(22)

    def test_decode_opcode(self):
        mem = Memory()
        mem.load_words([9, 32768, 32769, 4, 22], 0)
        opcode, mnem, roles, operand_pc = decode_opcode(mem, 0)
        assert (opcode, mnem, operand_pc) == (9, 'ADD', 1)
        with pytest.raises(IllegalOpcode) as exc:
            decode_opcode(mem, 4)
        assert exc.value.opcode == 22
        assert exc.value.pc == 4

    def test_instruction_str(self):
        assert str(Instruction(1, (32768, 123))) == "SET R0 123"
        assert str(Instruction(4, (32768, 32775, 123))) == "EQ R0 R7 123"
        assert str(Instruction(6, (1000,))) == "JMP @1000"
        assert Instruction(9, (32768, 32769, 4)).width == 4


class TestRegisters:

    def test_reset_state(self):
        r = Registers()
        assert r.R == [0] * 8
        assert r.PC == 0
        assert r.stack == []

    def test_stack_lifo(self):
        r = Registers()
        for v in (1, 2, 3):
            r.push(v)
        assert [r.pop(), r.pop(), r.pop()] == [3, 2, 1]

    def test_pop_empty(self):
        with pytest.raises(StackUnderflow):
            Registers().pop()

    def test_register_writes_normalize(self):
        r = Registers()
        r[2] = 32768 + 9
        assert r[2] == 9


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
