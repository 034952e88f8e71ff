"""
Disassembly listing.

Builds a flat list of view entries (instructions, comments, labels, section
headers, raw byte rows) from decoded instructions or a whole ``Program`` and
renders them as text::

    001f 63   PUSH4 0x3fb5c1cb
    0024 14   EQ
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .analysis import placeholder_name
from .decoder import Instruction
from .loader import Program, Section, SectionKind
from .selectors import SelectorResolver

RAW_ROW_SIZE = 32
# Push values at or above this many bytes are not rendered in decimal
MAX_DECIMAL_BYTES = 16


class CommentPlacement(Enum):
    ABOVE = "above"
    NEXT_TO = "next_to"


@dataclass(frozen=True)
class InstructionEntry:
    instruction: Instruction


@dataclass(frozen=True)
class CommentedInstruction:
    instruction: Instruction
    comment: str
    placement: CommentPlacement = CommentPlacement.NEXT_TO


@dataclass(frozen=True)
class Label:
    text: str


@dataclass(frozen=True)
class SectionHeader:
    kind: SectionKind
    start: int
    size: int


@dataclass(frozen=True)
class RawBytes:
    offset: int
    data: bytes


ViewEntry = Union[InstructionEntry, CommentedInstruction, Label, SectionHeader, RawBytes]


def decode_push_value(data: bytes) -> str:
    """Decimal rendering of a push operand."""
    if not data:
        return "0"
    if len(data) >= MAX_DECIMAL_BYTES:
        return "too large value"
    return str(int.from_bytes(data, "big"))


def format_instruction(inst: Instruction) -> str:
    output = f"{inst.offset:04x} {inst.opcode:<3x}  {inst.name}"
    if inst.data:
        output += f" 0x{inst.data.hex()}"
    return output


def format_entry(entry: ViewEntry) -> str:
    if isinstance(entry, InstructionEntry):
        return format_instruction(entry.instruction)
    if isinstance(entry, CommentedInstruction):
        line = format_instruction(entry.instruction)
        if entry.placement == CommentPlacement.ABOVE:
            return f"; {entry.comment}\n{line}"
        return f"{line} ; {entry.comment}"
    if isinstance(entry, Label):
        return f"{entry.text}:"
    if isinstance(entry, SectionHeader):
        return (f"; --- {entry.kind.value} section @ 0x{entry.start:04x} "
                f"({entry.size} bytes) ---")
    if isinstance(entry, RawBytes):
        return f"{entry.offset:04x} {entry.data.hex()}"
    raise TypeError(f"unsupported view entry: {entry!r}")


def _as_resolver(selectors) -> Optional[SelectorResolver]:
    if selectors is None or isinstance(selectors, SelectorResolver):
        return selectors
    return SelectorResolver(selectors, use_builtin=False)


class View:
    """An ordered, renderable list of view entries."""

    def __init__(self, entries: Optional[List[ViewEntry]] = None):
        self.entries: List[ViewEntry] = list(entries or [])

    @classmethod
    def from_instructions(
        cls,
        instructions: Sequence[Instruction],
        decorated: bool = False,
        labels: Optional[Dict[int, List[str]]] = None,
        comments: Optional[Dict[int, str]] = None,
    ) -> "View":
        """Build a view over one instruction list.

        Args:
            instructions: Decoded instructions
            decorated: Annotate push values and emit labels
            labels: Offset -> label names placed before that instruction
            comments: Offset -> comment placed above that instruction
        """
        labels = labels or {}
        comments = comments or {}
        entries: List[ViewEntry] = []

        for inst in instructions:
            if decorated:
                entries.extend(Label(text) for text in labels.get(inst.offset, ()))

            if decorated and inst.offset in comments:
                entries.append(CommentedInstruction(
                    inst, comments[inst.offset], CommentPlacement.ABOVE))
            elif decorated and inst.is_push:
                entries.append(CommentedInstruction(
                    inst, decode_push_value(inst.data), CommentPlacement.NEXT_TO))
            else:
                entries.append(InstructionEntry(inst))

        return cls(entries)

    @classmethod
    def from_program(
        cls,
        program: Program,
        decorated: bool = False,
        selectors: Union[SelectorResolver, Dict[int, str], None] = None,
    ) -> "View":
        """Build a view over every section of ``program``.

        Entrypoint labels and selector comments only apply to the runtime
        section, which is the one the dispatch analysis ran on.
        """
        resolver = _as_resolver(selectors)
        entries: List[ViewEntry] = []

        for section in program.sections:
            entries.append(SectionHeader(section.kind, section.start, len(section)))

            if not section.is_decoded:
                entries.extend(_raw_rows(section))
                continue

            labels: Dict[int, List[str]] = {}
            comments: Dict[int, str] = {}
            if section.kind == SectionKind.RUNTIME:
                for entry in program.entrypoints:
                    labels.setdefault(entry.offset, []).append(
                        _display_name(entry.selector, resolver))
                for sel in program.analysis.function_selectors:
                    signature = resolver.resolve(sel.selector) if resolver else None
                    if signature:
                        comments[sel.offset] = signature

            entries.extend(cls.from_instructions(
                section.instructions, decorated, labels, comments).entries)

        return cls(entries)

    def render(self) -> str:
        return "\n".join(format_entry(e) for e in self.entries) + ("\n" if self.entries else "")

    def __str__(self) -> str:
        return self.render()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


def _display_name(selector: bytes, resolver: Optional[SelectorResolver]) -> str:
    signature = resolver.resolve(selector) if resolver else None
    return signature or placeholder_name(selector)


def _raw_rows(section: Section) -> Iterable[RawBytes]:
    data = section.raw_bytes
    for i in range(0, len(data), RAW_ROW_SIZE):
        yield RawBytes(i, data[i:i + RAW_ROW_SIZE])
