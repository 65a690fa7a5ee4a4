"""
Disassembler tests: decoding policy, DATA fallback, formatting, round trip.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from syn15.assembler import InvalidDestinationError, assemble
from syn15.disassembler import (
    DisassembledLine, Disassembler, disassemble, disassemble_to_text,
)
from syn15.image import Image
from syn15.mem.memory import Memory

PROGRAM = """\
$START 0
0-init:   SET R0 5
3:        SET R1 1
6-loop:   MULT R1 R1 R0
10:       ADD R0 R0 32767
14:       JT R0 @6
17:       CALL @30
19:       HALT
30-sub:   RMEM R2 @100
33:       WMEM R2 R7
36:       PUSH 9
38:       POP R3
40:       EQ R4 R3 9
44:       GT R4 R3 R4
48:       AND R5 R4 R3
52:       OR R5 R5 1
56:       NOT R6 R5
59:       MOD R6 R6 7
63:       JF R6 @70
66:       JMP @70
68:       NOOP
69:       NOOP
70:       OUT 65
72:       IN R0
74:       RET
100:      DATA 40000
"""


class TestDecoding:

    def test_add_out_example(self):
        lines = list(disassemble([9, 32768, 32769, 4, 19, 32768]))
        assert [l.format() for l in lines] == ["0: ADD R0 R1 4", "4: OUT R0"]

    def test_two_invalid_words_give_two_data_lines(self):
        lines = list(disassemble([22, 40000]))
        assert len(lines) == 2
        assert all(l.is_data for l in lines)
        assert [l.format() for l in lines] == ["0: DATA 22", "1: DATA 40000"]

    def test_illegal_operand_word_falls_back_to_data(self):
        # OUT with operand 32776 is not decodable; both words become DATA
        lines = list(disassemble([19, 32776]))
        assert [l.mnemonic for l in lines] == ['DATA', 'DATA']

    def test_truncated_instruction_is_data(self):
        lines = list(disassemble([9, 32768, 32769]))
        assert lines[0].is_data
        assert [l.address for l in lines] == [0, 1, 2]

    def test_data_resyncs_on_next_word(self):
        lines = list(disassemble([40000, 19, 65, 0]))
        assert [l.format() for l in lines] == ["0: DATA 40000", "1: OUT 65", "3: HALT"]

    def test_lazy_and_bounded(self):
        dis = Disassembler()
        gen = dis.disassemble([21] * 1000)
        first = next(gen)
        assert first.format() == "0: NOOP"
        assert len(list(dis.disassemble([21] * 1000, start=10, end=20))) == 10
        assert len(list(dis.disassemble([21] * 1000, count=3))) == 3

    def test_start_offset(self):
        lines = list(disassemble([0, 0, 19, 65], start=2))
        assert lines[0].format() == "2: OUT 65"

    def test_address_roles_print_with_at(self):
        lines = list(disassemble([7, 32768, 6, 15, 32769, 100, 16, 100, 32770]))
        assert [l.format() for l in lines] == [
            "0: JT R0 @6", "3: RMEM R1 @100", "6: WMEM @100 R2"]

    def test_show_words(self):
        line = DisassembledLine(0, 'OUT', (65,), ('val',), (19, 65))
        assert line.format(show_words=True).endswith("; 19 65")

    def test_sources(self):
        words = [19, 65, 0]
        from_image = [l.format() for l in disassemble(Image.from_words(words))]
        from_bytes = [l.format() for l in disassemble(bytes([19, 0, 65, 0, 0, 0]))]
        mem = Memory()
        mem.load_words(words)
        from_mem = [l.format() for l in disassemble(mem, end=3)]
        assert from_image == from_bytes == from_mem == ["0: OUT 65", "2: HALT"]

    def test_never_raises_on_noise(self):
        noise = [(i * 7919) % 65536 for i in range(500)]
        lines = list(disassemble(noise))
        assert sum(l.length for l in lines) == len(noise)


class TestRoundTrip:

    def test_same_opcodes_at_same_addresses(self):
        image = assemble(PROGRAM)
        words = image.to_words()
        for line in disassemble(image):
            if line.address in image.words:
                assert list(line.words) == words[line.address:line.address + line.length]

    def test_listing_reassembles_to_same_words(self):
        image = assemble(PROGRAM)
        text = disassemble_to_text(image)
        again = assemble(text)
        assert again.to_words() == image.to_words()

    def test_listing_with_words_reassembles(self):
        image = assemble(PROGRAM)
        text = disassemble_to_text(image, show_words=True)
        assert assemble(text).to_words() == image.to_words()

    def test_literal_destination_does_not_reassemble(self):
        text = disassemble_to_text([1, 5, 7])
        assert text == "0: SET 5 7"
        with pytest.raises(InvalidDestinationError):
            assemble(text)

    def test_text_count_limits_lines(self):
        text = disassemble_to_text([21] * 1000, count=2)
        assert text.splitlines() == ["0: NOOP", "1: NOOP"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
