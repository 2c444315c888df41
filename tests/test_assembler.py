"""
Assembler Tests for tiny8.

Byte-level checks of the two-pass assembler: operand encoding, label
resolution in both directions, origin handling, and error reporting.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from tiny8.assembler import (
    Assembler, AssemblerError, UnknownInstruction, MalformedOperand,
    AssemblySyntaxError, assemble, load_program, format_hex,
)
from tiny8.mem.memory import Memory


class TestOperandEncoding:
    """Registers, immediates and labels each encode to one byte."""

    def test_mov_add_halt(self):
        """mov a, 5 / add a, 3 / halt"""
        data = assemble("mov a, 5\nadd a, 3\nhalt")
        assert data == bytes([0x01, 0x00, 0x85, 0x10, 0x00, 0x83, 0xFF])

    def test_registers(self):
        assert assemble("mov b, c") == bytes([0x01, 0x01, 0x02])
        assert assemble("MOV C, A") == bytes([0x01, 0x02, 0x00])

    def test_immediate_sets_high_bit(self):
        assert assemble("print 0") == bytes([0x40, 0x80])
        assert assemble("print 127") == bytes([0x40, 0xFF])

    def test_hex_immediate(self):
        assert assemble("print 0x10") == bytes([0x40, 0x90])
        assert assemble("print 0X7f") == bytes([0x40, 0xFF])

    def test_immediate_keeps_low_seven_bits(self):
        """Values past 127 lose bit 7; negatives wrap two's complement."""
        assert assemble("print 200") == bytes([0x40, 0xC8])
        assert assemble("print 128") == bytes([0x40, 0x80])
        assert assemble("print -1") == bytes([0x40, 0xFF])

    def test_separators(self):
        """Commas, semicolons and whitespace all split tokens."""
        expected = bytes([0x10, 0x00, 0x81])
        assert assemble("add a,1") == expected
        assert assemble("add a 1") == expected
        assert assemble("add a;1") == expected
        assert assemble("  add\ta ,  1  ") == expected


class TestLabels:

    def test_backward_reference(self):
        src = "mov a, 1\nloop:\ndec a\njnz loop\nhalt"
        assert assemble(src) == bytes([0x01, 0x00, 0x81, 0x07, 0x00, 0x22, 0x03, 0xFF])

    def test_forward_reference(self):
        src = "jmp end\nmov a, 1\nend:\nhalt"
        assert assemble(src) == bytes([0x20, 0x05, 0x01, 0x00, 0x81, 0xFF])

    def test_labels_are_case_insensitive(self):
        src = "Top:\njmp TOP"
        assert assemble(src) == bytes([0x20, 0x00])

    def test_label_table(self):
        asm = Assembler()
        asm.assemble("start:\nmov a, 1\nloop:\ndec a\njnz loop\nhalt")
        assert dict(asm.labels) == {'start': 0, 'loop': 3}

    def test_consecutive_labels_share_address(self):
        asm = Assembler()
        asm.assemble("one:\ntwo:\nhalt")
        assert asm.labels['one'] == asm.labels['two'] == 0

    def test_register_name_wins_over_label(self):
        """A label called `b` is shadowed by register B."""
        src = "mov a, 1\nb:\njmp b"
        assert assemble(src)[-2:] == bytes([0x20, 0x01])

    def test_label_used_as_data_operand(self):
        """A label operand encodes the raw address byte."""
        src = "halt\nhalt\nhalt\nhalt\nhalt\nhere:\nprint here"
        assert assemble(src)[-2:] == bytes([0x40, 0x05])

    def test_origin_shifts_labels(self):
        asm = Assembler(origin=0x10)
        data = asm.assemble("here:\njmp here")
        assert data == bytes([0x20, 0x10])
        assert asm.labels['here'] == 0x10

    def test_label_past_ff_rejected(self):
        """Operands are one byte; a label above $FF cannot be referenced."""
        with pytest.raises(MalformedOperand):
            assemble("loop:\njmp loop", origin=0x100)

    def test_label_past_ff_allowed_when_unreferenced(self):
        assert assemble("loop:\nhalt", origin=0x100) == bytes([0xFF])


class TestSourceFormat:

    def test_comments_and_blank_lines(self):
        src = """
        // full-line comment

        mov a, 1   // trailing comment
        halt
        """
        assert assemble(src) == bytes([0x01, 0x00, 0x81, 0xFF])

    def test_empty_source(self):
        assert assemble("") == b''
        assert assemble("// nothing here\n\n") == b''

    @pytest.mark.parametrize("filler", [",", ";", ", ;", " ;, // note"])
    def test_separator_only_line_is_blank(self, filler):
        """A line holding nothing but separators emits no bytes."""
        src = f"mov a, 1\n{filler}\nhalt"
        assert assemble(src) == bytes([0x01, 0x00, 0x81, 0xFF])

    def test_separator_only_line_keeps_label_addresses(self):
        asm = Assembler()
        asm.assemble(";\nstart:\n,\nhalt")
        assert asm.labels['start'] == 0


class TestErrors:

    def test_unknown_instruction(self):
        with pytest.raises(UnknownInstruction) as exc:
            assemble("mov a, 1\nfoo a")
        assert exc.value.line_num == 2
        assert "Line 2" in str(exc.value)

    def test_unknown_instruction_caught_in_first_pass(self):
        """Reported even when a later line references a missing label."""
        with pytest.raises(UnknownInstruction):
            assemble("jmp nowhere\nbogus")

    def test_malformed_operand(self):
        with pytest.raises(MalformedOperand):
            assemble("mov a, xyz")

    def test_undefined_label_is_malformed(self):
        with pytest.raises(MalformedOperand):
            assemble("jmp missing")

    def test_wrong_operand_count(self):
        with pytest.raises(AssemblySyntaxError):
            assemble("mov a")
        with pytest.raises(AssemblySyntaxError):
            assemble("halt a")

    def test_duplicate_label(self):
        with pytest.raises(AssemblySyntaxError):
            assemble("x:\nhalt\nx:\nhalt")

    def test_invalid_label_name(self):
        with pytest.raises(AssemblySyntaxError):
            assemble("1st:\nhalt")

    def test_all_errors_share_base(self):
        for cls in (UnknownInstruction, MalformedOperand, AssemblySyntaxError):
            assert issubclass(cls, AssemblerError)

    def test_failed_assembly_keeps_previous_binary(self):
        asm = Assembler()
        asm.assemble("halt")
        with pytest.raises(AssemblerError):
            asm.assemble("bogus")
        assert asm.binary == bytes([0xFF])


class TestLoading:

    def test_load_program_writes_memory(self):
        mem = Memory()
        size = load_program("mov a, 5\nhalt", mem, origin=0x20)
        assert size == 4
        assert mem.read_block(0x20, 4) == bytes([0x01, 0x00, 0x85, 0xFF])
        assert mem.read8(0x1F) == 0

    def test_program_too_big_for_memory(self):
        with pytest.raises(AssemblerError):
            load_program("mov a, 1\nhalt", Memory(size=2))

    def test_origin_out_of_range(self):
        with pytest.raises(AssemblerError):
            Assembler(origin=0x10000)


class TestOutputFormats:

    def test_format_hex_wraps_at_16(self):
        text = format_hex(bytes(range(18)))
        lines = text.split('\n')
        assert lines[0] == ' '.join(f'{i:02X}' for i in range(16))
        assert lines[1] == "10 11"

    def test_format_hex_empty(self):
        assert format_hex(b'') == ''

    def test_listing(self):
        asm = Assembler()
        asm.assemble("loop:\nmov a, 5 // five\nhalt")
        listing = asm.get_listing()
        assert "$0000  01 00 85" in listing
        assert "$0003  FF" in listing
        assert "loop:" in listing
