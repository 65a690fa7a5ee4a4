"""
Assembler tests: grammar, encodings, error classes, listing.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from syn15.assembler import (
    Assembler, AssemblerError, ArityMismatch, AsmSyntaxError,
    InvalidDestinationError, LayoutConflict, assemble, assemble_to_binary,
)


class TestEncoding:

    def test_add_example(self):
        image = assemble("0: ADD R0 R1 4\n4: OUT R0\n")
        assert image.to_words() == [9, 32768, 32769, 4, 19, 32768]
        assert image.entry == 0

    def test_address_operand_encodes_like_literal(self):
        a = assemble("0: JMP @1000\n").words
        b = assemble("0: JMP 1000\n").words
        assert a == b == {0: 6, 1: 1000}

    def test_sparse_placement(self):
        image = assemble("100: NOOP\n5000: HALT\n")
        assert image.words == {100: 21, 5000: 0}
        assert image.end == 5001

    def test_case_insensitive(self):
        assert assemble("0: set r3 7").words == {0: 1, 1: 32771, 2: 7}

    def test_label_is_discarded(self):
        with_label = assemble("10-main: OUT 65\n")
        without = assemble("10: OUT 65\n")
        assert with_label.words == without.words

    def test_start_directive(self):
        image = assemble("$START 12\n12: HALT\n")
        assert image.entry == 12
        assert image.words == {12: 0}

    def test_data_pseudo_op(self):
        image = assemble("7: DATA 40000 1 65535\n")
        assert image.words == {7: 40000, 8: 1, 9: 65535}

    def test_binary_is_little_endian(self):
        data = assemble_to_binary("0: OUT 65\n")
        assert data == bytes([19, 0, 65, 0])

    def test_word_boundaries(self):
        image = assemble("0: SET R7 32767\n")
        assert image.words == {0: 1, 1: 32775, 2: 32767}


class TestCommentsAndBlankLines:

    def test_comments_and_blank_lines_ignored(self):
        source = """
; a whole-line comment

0: OUT 65   ; trailing comment
   ; indented comment
2: HALT
"""
        assert assemble(source).words == {0: 19, 1: 65, 2: 0}

    def test_empty_source(self):
        image = assemble("")
        assert image.words == {}
        assert image.entry == 0


class TestErrors:

    def test_unknown_mnemonic(self):
        with pytest.raises(AsmSyntaxError, match="unknown mnemonic"):
            assemble("0: MOV R0 1\n")

    def test_missing_address(self):
        with pytest.raises(AsmSyntaxError) as exc:
            assemble("OUT 65\n")
        assert exc.value.line_num == 1
        assert exc.value.line_text == "OUT 65"

    @pytest.mark.parametrize("operand", ["R8", "32768", "@40000", "x1", "-1", "@"])
    def test_bad_operand(self, operand):
        with pytest.raises(AsmSyntaxError):
            assemble(f"0: OUT {operand}\n")

    def test_address_out_of_range(self):
        with pytest.raises(AsmSyntaxError):
            assemble("32768: HALT\n")

    def test_arity_mismatch(self):
        with pytest.raises(ArityMismatch, match="takes 2"):
            assemble("0: SET R0\n")
        with pytest.raises(ArityMismatch):
            assemble("0: HALT 1\n")

    def test_literal_destination(self):
        with pytest.raises(InvalidDestinationError):
            assemble("0: SET 5 7\n")
        with pytest.raises(InvalidDestinationError):
            assemble("0: POP @3\n")

    def test_overlap_is_layout_conflict(self):
        with pytest.raises(LayoutConflict, match="line 1") as exc:
            assemble("0: OUT 65\n1: HALT\n")
        assert exc.value.line_num == 2

    def test_overrun_is_layout_conflict(self):
        with pytest.raises(LayoutConflict):
            assemble("32766: SET R0 1\n")

    def test_duplicate_start(self):
        with pytest.raises(AsmSyntaxError, match="duplicate"):
            assemble("$START 0\n$START 4\n")

    def test_first_error_wins(self):
        with pytest.raises(ArityMismatch) as exc:
            assemble("0: HALT\n1: OUT\n2: MOV\n")
        assert exc.value.line_num == 2

    def test_error_message_names_line(self):
        with pytest.raises(AssemblerError) as exc:
            assemble("0: HALT\n\n3: PUSH\n")
        assert str(exc.value).startswith("Line 3:")

    def test_failed_assembly_produces_nothing(self):
        asm = Assembler()
        with pytest.raises(AssemblerError):
            asm.assemble("0: HALT\n1: BOGUS\n")
        assert asm.image is None
        with pytest.raises(AssemblerError):
            asm.to_binary()


class TestListing:

    def test_listing_shows_words_and_source(self):
        asm = Assembler()
        asm.assemble("; hello\n0-start: OUT 72\n2: HALT\n")
        listing = asm.get_listing()
        assert "19 72" in listing
        assert "0-start: OUT 72" in listing
        assert "; hello" in listing


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
