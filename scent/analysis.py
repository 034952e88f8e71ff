"""
Function dispatch analysis.

Recognises the Solidity dispatcher idiom over a decoded instruction list::

    PUSH4 <selector>
    EQ
    PUSH1|PUSH2|PUSH3 <target>
    JUMPI

by sliding a fixed window across consecutive instructions. Every window is
examined independently, so overlapping matches are all reported. Function
body ends are estimated with a local forward scan from the jump target; no
control flow is followed.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .decoder import Instruction
from .opcodes import EQ, JUMP, JUMPDEST, JUMPI, PUSH1, PUSH3, PUSH4, TERMINAL_OPCODES

logger = logging.getLogger(__name__)

SELECTOR_SIZE = 4


def placeholder_name(selector: bytes) -> str:
    """Default display name for a selector, e.g. ``func_a9059cbb``."""
    return f"func_{selector.hex()}"


@dataclass(frozen=True)
class FunctionSelector:
    """A ``PUSH4 <selector>; EQ`` comparison site."""
    offset: int
    selector: bytes
    name: Optional[str] = None

    @property
    def selector_int(self) -> int:
        return int.from_bytes(self.selector, "big")

    def __repr__(self) -> str:
        return (f"FunctionSelector(offset={self.offset}, "
                f"selector=0x{self.selector.hex()}, name={self.name!r})")


@dataclass(frozen=True)
class FunctionEntrypoint:
    """A full dispatch entry; ``offset`` is the jump target."""
    selector: bytes
    offset: int

    @property
    def selector_int(self) -> int:
        return int.from_bytes(self.selector, "big")

    def __repr__(self) -> str:
        return (f"FunctionEntrypoint(selector=0x{self.selector.hex()}, "
                f"offset=0x{self.offset:04x})")


@dataclass(frozen=True)
class Function:
    """A dispatched function with an estimated body range.

    ``end`` is the offset of the last instruction considered part of the
    body. It is a heuristic, not a proven boundary.
    """
    selector: bytes
    start: int
    end: int

    def __repr__(self) -> str:
        return (f"Function(selector=0x{self.selector.hex()}, "
                f"start=0x{self.start:04x}, end=0x{self.end:04x})")


# ---------------------------------------------------------------------------
# Match results
# ---------------------------------------------------------------------------

# What a matched window produces: a selector site, a dispatch entry or an
# instruction offset
MatchRecord = Union[FunctionSelector, FunctionEntrypoint, int]


@dataclass(frozen=True)
class Matched:
    """A window that matched; carries the record it produced."""
    record: MatchRecord


class NoMatch:
    """A window that did not match."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = NoMatch()

MatchResult = Union[Matched, NoMatch]


def _collect(results) -> list:
    return [r.record for r in results if isinstance(r, Matched)]


# ---------------------------------------------------------------------------
# Window matchers
# ---------------------------------------------------------------------------

def _is_selector_push(inst: Instruction) -> bool:
    return inst.opcode == PUSH4 and len(inst.data) == SELECTOR_SIZE


def match_selector(window: Sequence[Instruction]) -> MatchResult:
    """Match ``[PUSH4 value][EQ]``."""
    first, second = window
    if _is_selector_push(first) and second.opcode == EQ:
        return Matched(FunctionSelector(
            offset=first.offset,
            selector=first.data,
            name=placeholder_name(first.data),
        ))
    return NO_MATCH


def match_entrypoint(window: Sequence[Instruction]) -> MatchResult:
    """Match ``[PUSH4 value][EQ][PUSH1..PUSH3 target][JUMPI]``."""
    first, second, third, fourth = window
    if (_is_selector_push(first)
            and second.opcode == EQ
            and PUSH1 <= third.opcode <= PUSH3
            and fourth.opcode == JUMPI):
        return Matched(FunctionEntrypoint(selector=first.data, offset=third.value))
    return NO_MATCH


def _windows(instructions: Sequence[Instruction], width: int):
    for i in range(len(instructions) - width + 1):
        yield instructions[i:i + width]


# ---------------------------------------------------------------------------
# Public analysis functions
# ---------------------------------------------------------------------------

def analyze_function_selectors(instructions: Sequence[Instruction]) -> List[FunctionSelector]:
    """Return every selector comparison site, in program order."""
    return _collect(match_selector(w) for w in _windows(instructions, 2))


def analyze_function_entrypoints(instructions: Sequence[Instruction]) -> List[FunctionEntrypoint]:
    """Return every recognised dispatch entry, in program order."""
    return _collect(match_entrypoint(w) for w in _windows(instructions, 4))


def find_function_end(instructions: Sequence[Instruction], start_offset: int) -> MatchResult:
    """Estimate where the function body starting at ``start_offset`` ends.

    Scans forward from the instruction at ``start_offset`` and stops at the
    first terminal opcode, the first ``JUMP``, or the first ``JUMPDEST``
    after the start (ending on the instruction before it). Falls back to the
    last instruction. Returns ``NO_MATCH`` when no instruction sits at
    ``start_offset``.
    """
    start_idx = next(
        (i for i, inst in enumerate(instructions) if inst.offset == start_offset),
        None,
    )
    if start_idx is None:
        return NO_MATCH

    for i in range(start_idx, len(instructions)):
        inst = instructions[i]

        if inst.opcode in TERMINAL_OPCODES:
            return Matched(inst.offset)

        # Shared exit code is reached through a JUMP; forward jumps that stay
        # inside the body are not told apart from it.
        if inst.opcode == JUMP:
            return Matched(inst.offset)

        if inst.opcode == JUMPDEST and i > start_idx:
            return Matched(instructions[i - 1].offset)

    return Matched(instructions[-1].offset)


def analyze_functions(instructions: Sequence[Instruction]) -> List[Function]:
    """Return a ``Function`` per dispatch entry whose target can be resolved."""
    functions = []
    for entry in analyze_function_entrypoints(instructions):
        end = find_function_end(instructions, entry.offset)
        if isinstance(end, Matched):
            functions.append(Function(entry.selector, entry.offset, end.record))
        else:
            logger.debug("No instruction at dispatch target 0x%04x for 0x%s",
                         entry.offset, entry.selector.hex())
    return functions


@dataclass(frozen=True)
class Analysis:
    """Selectors, entrypoints and functions recovered from one instruction list."""
    function_selectors: Tuple[FunctionSelector, ...] = ()
    function_entrypoints: Tuple[FunctionEntrypoint, ...] = ()
    functions: Tuple[Function, ...] = ()

    @classmethod
    def from_instructions(cls, instructions: Sequence[Instruction]) -> "Analysis":
        analysis = cls(
            function_selectors=tuple(analyze_function_selectors(instructions)),
            function_entrypoints=tuple(analyze_function_entrypoints(instructions)),
            functions=tuple(analyze_functions(instructions)),
        )
        logger.debug("Found %d selectors, %d entrypoints, %d functions",
                     len(analysis.function_selectors),
                     len(analysis.function_entrypoints),
                     len(analysis.functions))
        return analysis


def analyze(
    instructions: Sequence[Instruction],
) -> Tuple[List[FunctionSelector], List[FunctionEntrypoint], List[Function]]:
    """Return ``(selectors, entrypoints, functions)`` for ``instructions``."""
    analysis = Analysis.from_instructions(instructions)
    return (list(analysis.function_selectors),
            list(analysis.function_entrypoints),
            list(analysis.functions))
