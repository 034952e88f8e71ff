"""
Tests for scent/view.py

Covers:
  - Instruction line formatting
  - Push value decoration
  - Labels, comments and their placement
  - Whole-program views (section headers, metadata rows, selector names)
"""

import pytest

from scent.decoder import Instruction
from scent.loader import Program, SectionKind
from scent.selectors import SelectorResolver
from scent.view import (
    CommentPlacement,
    CommentedInstruction,
    InstructionEntry,
    Label,
    RawBytes,
    SectionHeader,
    View,
    decode_push_value,
    format_entry,
    format_instruction,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def dispatch():
    return [
        Instruction(0x00, 0x63, bytes.fromhex("a9059cbb")),
        Instruction(0x05, 0x14),
        Instruction(0x06, 0x61, bytes.fromhex("0234")),
        Instruction(0x09, 0x57),
    ]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

class TestFormat:
    def test_plain_instruction(self):
        assert format_instruction(Instruction(4, 0x52)) == "0004 52   MSTORE"

    def test_push_operand(self):
        assert format_instruction(Instruction(0x1F, 0x63, bytes.fromhex("3fb5c1cb"))) == \
            "001f 63   PUSH4 0x3fb5c1cb"

    def test_unknown_opcode(self):
        assert format_instruction(Instruction(0x100, 0x0C)) == "0100 c    UNKNOWN"

    def test_truncated_push(self):
        assert format_instruction(Instruction(0, 0x61, b"\x01")) == "0000 61   PUSH2 0x01"

    @pytest.mark.parametrize("data, expected", [
        (b"", "0"),
        (b"\x80", "128"),
        (b"\x01\x00", "256"),
        (b"\xff" * 15, str(2 ** 120 - 1)),
        (b"\x00" * 16, "too large value"),
        (b"\xff" * 32, "too large value"),
    ])
    def test_decode_push_value(self, data, expected):
        assert decode_push_value(data) == expected

    def test_entries(self):
        inst = Instruction(0, 0x60, b"\x80")
        assert format_entry(InstructionEntry(inst)) == "0000 60   PUSH1 0x80"
        assert format_entry(CommentedInstruction(inst, "128")) == "0000 60   PUSH1 0x80 ; 128"
        assert format_entry(CommentedInstruction(inst, "note", CommentPlacement.ABOVE)) == \
            "; note\n0000 60   PUSH1 0x80"
        assert format_entry(Label("func_a9059cbb")) == "func_a9059cbb:"
        assert format_entry(SectionHeader(SectionKind.RUNTIME, 0x1C, 440)) == \
            "; --- runtime section @ 0x001c (440 bytes) ---"
        assert format_entry(RawBytes(32, b"\xa2\x64")) == "0020 a264"

    def test_unsupported_entry(self):
        with pytest.raises(TypeError):
            format_entry("not an entry")


# ---------------------------------------------------------------------------
# Instruction views
# ---------------------------------------------------------------------------

class TestFromInstructions:
    def test_plain(self, dispatch):
        view = View.from_instructions(dispatch)
        assert all(isinstance(e, InstructionEntry) for e in view)
        assert view.render() == (
            "0000 63   PUSH4 0xa9059cbb\n"
            "0005 14   EQ\n"
            "0006 61   PUSH2 0x0234\n"
            "0009 57   JUMPI\n"
        )

    def test_decorated_push_values(self, dispatch):
        view = View.from_instructions(dispatch, decorated=True)
        assert view.render().splitlines() == [
            "0000 63   PUSH4 0xa9059cbb ; 2835717307",
            "0005 14   EQ",
            "0006 61   PUSH2 0x0234 ; 564",
            "0009 57   JUMPI",
        ]

    def test_push0_is_not_decorated(self):
        view = View.from_instructions([Instruction(0, 0x5F)], decorated=True)
        assert view.render() == "0000 5f   PUSH0\n"

    def test_labels_and_comments(self, dispatch):
        view = View.from_instructions(
            dispatch,
            decorated=True,
            labels={0x06: ["first", "second"]},
            comments={0x00: "transfer(address,uint256)"},
        )
        assert view.render().splitlines() == [
            "; transfer(address,uint256)",
            "0000 63   PUSH4 0xa9059cbb",
            "0005 14   EQ",
            "first:",
            "second:",
            "0006 61   PUSH2 0x0234 ; 564",
            "0009 57   JUMPI",
        ]

    def test_undecorated_ignores_labels(self, dispatch):
        view = View.from_instructions(dispatch, labels={0: ["x"]}, comments={0: "y"})
        assert len(view) == 4

    def test_empty(self):
        view = View.from_instructions([])
        assert view.render() == ""
        assert str(view) == ""


# ---------------------------------------------------------------------------
# Program views
# ---------------------------------------------------------------------------

class TestFromProgram:
    def test_empty_contract(self, empty_contract):
        program = Program.load(empty_contract)
        lines = View.from_program(program).render().splitlines()
        assert lines[0] == "; --- init section @ 0x0000 (26 bytes) ---"
        runtime_header = lines.index("; --- runtime section @ 0x001a (21 bytes) ---")
        assert lines[runtime_header + 1:] == [
            "0000 60   PUSH1 0x80",
            "0002 60   PUSH1 0x40",
            "0004 52   MSTORE",
            "0005 5f   PUSH0",
            "0006 5f   PUSH0",
            "0007 fd   REVERT",
            "0008 fe   INVALID",
        ]

    def test_metadata_rows(self):
        trailer = bytes([0xA2, 0x64]) + b"ipfs" + bytes([0x58, 0x22]) + bytes(34) + \
            bytes([0x64]) + b"solc" + bytes([0x43, 0, 8, 0x1E])
        bytecode = bytes.fromhex("6000") + trailer + len(trailer).to_bytes(2, "big")
        program = Program.load(bytecode, runtime=True)
        view = View.from_program(program)
        rows = [e for e in view if isinstance(e, RawBytes)]
        assert [r.offset for r in rows] == [0, 32]
        assert b"".join(r.data for r in rows) == program.metadata.raw_bytes
        assert len(rows[0].data) == 32
        headers = [e for e in view if isinstance(e, SectionHeader)]
        assert headers[-1] == SectionHeader(SectionKind.METADATA, 2, len(trailer) + 2)

    def test_placeholder_labels(self):
        program = Program.load(bytes.fromhex("63a9059cbb14600a57005b00"), runtime=True)
        lines = View.from_program(program, decorated=True).render().splitlines()
        assert "func_a9059cbb:" in lines
        assert lines[lines.index("func_a9059cbb:") + 1] == "000a 5b   JUMPDEST"

    def test_named_labels_and_comments(self):
        program = Program.load(bytes.fromhex("63a9059cbb14600a57005b00"), runtime=True)
        view = View.from_program(program, decorated=True, selectors=SelectorResolver())
        lines = view.render().splitlines()
        assert lines[1:3] == ["; transfer(address,uint256)", "0000 63   PUSH4 0xa9059cbb"]
        assert "transfer(address,uint256):" in lines

    def test_dict_selectors_skip_builtin(self):
        program = Program.load(bytes.fromhex("63a9059cbb14600a57005b00"), runtime=True)
        view = View.from_program(program, decorated=True, selectors={0x11111111: "x()"})
        lines = view.render().splitlines()
        assert "func_a9059cbb:" in lines
        assert "0000 63   PUSH4 0xa9059cbb ; 2835717307" in lines

    def test_init_section_is_not_labelled(self):
        # The init code compares against the same selector; only runtime
        # code is annotated.
        init = bytes.fromhex("63a9059cbb14600a57") + bytes.fromhex("f3fe")
        runtime = bytes.fromhex("63a9059cbb14600a57005b00")
        program = Program.load(init + runtime)
        view = View.from_program(program, decorated=True, selectors=SelectorResolver())
        comments = [e for e in view
                    if isinstance(e, CommentedInstruction)
                    and e.placement == CommentPlacement.ABOVE]
        assert len(comments) == 1
        labels = [e for e in view if isinstance(e, Label)]
        assert labels == [Label("transfer(address,uint256)")]

    def test_raw_program(self):
        program = Program.load(bytes.fromhex("63a9059cbb14600a57005b00"), raw=True)
        view = View.from_program(program, decorated=True, selectors=SelectorResolver())
        assert not any(isinstance(e, Label) for e in view)
        assert view.entries[0] == SectionHeader(SectionKind.RAW, 0, 12)
