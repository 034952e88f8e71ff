"""
Bytecode loading and section splitting.

A deployment payload is laid out as::

    [ init (constructor) code ][ runtime code ][ CBOR metadata ][ len:2 ]

Both boundaries are found heuristically. The metadata boundary comes from
the big-endian length in the last two bytes, accepted only when it points
at a CBOR map header (``a2``) followed by a known key tag. The init/runtime
boundary is the first ``RETURN INVALID`` (``f3 fe``) pair that solc emits
at the end of constructor code. When either check fails the bytes are
treated as code.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from .analysis import Analysis, FunctionEntrypoint
from .decoder import Instruction, decode, parse_hex
from .exceptions import InputError

logger = logging.getLogger(__name__)

METADATA_MAP_TAG = 0xA2
# CBOR text-string headers of length 4..6 ("ipfs", "bzzr0", "bzzr1")
METADATA_KEY_TAGS = frozenset({0x64, 0x65, 0x66})
METADATA_LENGTH_SIZE = 2

RUNTIME_DELIMITER = b"\xf3\xfe"  # RETURN, INVALID


class SectionKind(Enum):
    """Logical region of a bytecode blob."""
    INIT = "init"
    RUNTIME = "runtime"
    METADATA = "metadata"
    RAW = "raw"


@dataclass(frozen=True)
class Section:
    """A contiguous region of the input.

    ``start`` is the absolute offset of the region in the input buffer;
    instruction offsets are relative to the region. Metadata sections carry
    no instructions.
    """
    kind: SectionKind
    raw_bytes: bytes
    instructions: Optional[Tuple[Instruction, ...]] = None
    start: int = 0

    @property
    def is_decoded(self) -> bool:
        return self.instructions is not None

    @property
    def end(self) -> int:
        return self.start + len(self.raw_bytes)

    def rebased(self) -> Tuple[Instruction, ...]:
        """Instructions with offsets relative to the whole input buffer."""
        if self.instructions is None:
            return ()
        return tuple(inst.rebase(self.start) for inst in self.instructions)

    def __len__(self) -> int:
        return len(self.raw_bytes)


@dataclass(frozen=True)
class Program:
    """Sections of one input buffer plus the dispatch info of its runtime code."""
    sections: Tuple[Section, ...] = ()
    entrypoints: Tuple[FunctionEntrypoint, ...] = ()
    analysis: Analysis = field(default_factory=Analysis)

    @classmethod
    def load(cls, bytecode: bytes, raw: bool = False, runtime: bool = False) -> "Program":
        return split(bytecode, raw_mode=raw, runtime_only=runtime)

    def section(self, kind: SectionKind) -> Optional[Section]:
        """First section of ``kind``, or None."""
        return next((s for s in self.sections if s.kind == kind), None)

    @property
    def init(self) -> Optional[Section]:
        return self.section(SectionKind.INIT)

    @property
    def runtime(self) -> Optional[Section]:
        return self.section(SectionKind.RUNTIME)

    @property
    def metadata(self) -> Optional[Section]:
        return self.section(SectionKind.METADATA)


# ---------------------------------------------------------------------------
# Boundary heuristics
# ---------------------------------------------------------------------------

def split_metadata(bytecode: bytes) -> int:
    """Return the offset where trailing compiler metadata starts.

    Returns ``len(bytecode)`` when no metadata trailer is recognised.
    """
    size = len(bytecode)
    if size < METADATA_LENGTH_SIZE:
        return size

    length = int.from_bytes(bytecode[-METADATA_LENGTH_SIZE:], "big")
    candidate = size - length - METADATA_LENGTH_SIZE
    if candidate < 0 or candidate + 2 > size:
        logger.debug("Metadata length %d does not fit in %d bytes", length, size)
        return size

    if (bytecode[candidate] == METADATA_MAP_TAG
            and bytecode[candidate + 1] in METADATA_KEY_TAGS):
        logger.debug("Metadata trailer found at offset %d (%d bytes)",
                     candidate, size - candidate)
        return candidate

    logger.debug("No metadata trailer recognised")
    return size


def detect_runtime_split(code: bytes) -> int:
    """Return the offset where runtime code starts (0 if no init code found)."""
    pos = code.find(RUNTIME_DELIMITER)
    if pos < 0:
        logger.debug("No init/runtime delimiter, treating input as runtime code")
        return 0
    start = pos + len(RUNTIME_DELIMITER)
    logger.debug("Runtime code starts at offset %d", start)
    return start


# ---------------------------------------------------------------------------
# Splitter
# ---------------------------------------------------------------------------

def _decoded_section(kind: SectionKind, data: bytes, start: int) -> Section:
    return Section(kind=kind, raw_bytes=data, instructions=tuple(decode(data)), start=start)


def split(bytecode: bytes, raw_mode: bool = False, runtime_only: bool = False) -> Program:
    """Split ``bytecode`` into sections and analyze its runtime code.

    Args:
        bytecode: Raw deployment payload or runtime bytecode
        raw_mode: Wrap the whole input in a single RAW section, no heuristics
        runtime_only: Input has no constructor code; runtime starts at 0

    Returns:
        Program with ordered sections and the runtime entrypoints
    """
    bytecode = bytes(bytecode)

    if raw_mode:
        return Program(sections=(_decoded_section(SectionKind.RAW, bytecode, 0),))

    boundary = split_metadata(bytecode)
    code = bytecode[:boundary]

    runtime_start = 0 if runtime_only else detect_runtime_split(code)

    sections = []
    analysis = Analysis()

    if runtime_start > 0:
        sections.append(_decoded_section(SectionKind.INIT, code[:runtime_start], 0))

    runtime_bytes = code[runtime_start:]
    if runtime_bytes:
        runtime = _decoded_section(SectionKind.RUNTIME, runtime_bytes, runtime_start)
        sections.append(runtime)
        analysis = Analysis.from_instructions(runtime.instructions)

    if boundary < len(bytecode):
        sections.append(Section(
            kind=SectionKind.METADATA,
            raw_bytes=bytecode[boundary:],
            start=boundary,
        ))

    logger.info("Loaded %d bytes: %s, %d entrypoints", len(bytecode),
                ", ".join(f"{s.kind.value}={len(s)}" for s in sections),
                len(analysis.function_entrypoints))

    return Program(
        sections=tuple(sections),
        entrypoints=tuple(analysis.function_entrypoints),
        analysis=analysis,
    )


def read_hex_file(path: Union[str, Path]) -> bytes:
    """Read a hex text file and return its bytes.

    Raises:
        InputError: if the file cannot be read or is not valid hex
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"failed to read {path}: {e}") from e
    return parse_hex(content)
