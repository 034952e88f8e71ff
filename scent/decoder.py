"""
EVM bytecode decoder.

Turns a byte buffer into an ordered list of ``Instruction`` records. Push
operands that run past the end of the buffer are truncated rather than
rejected, and a trailing solc metadata blob (recognised by its
``a1 64 "solc" 43`` marker) is cut off before decoding so its bytes never
show up as instructions.
"""

import logging
from dataclasses import dataclass
from typing import List

from eth_utils import decode_hex, encode_hex

from .exceptions import InputError
from .opcodes import is_push, opcode_name, push_size

logger = logging.getLogger(__name__)

# CBOR map(1) + text(4) "solc" + bytes(3): prefix of the solc-only metadata field
SOLC_METADATA_MARKER = b"\xa1\x64\x73\x6f\x6c\x63\x43"


@dataclass(frozen=True)
class Instruction:
    """A single decoded instruction.

    ``offset`` is relative to the start of the decoded buffer; ``data`` holds
    the push operand (empty for every non-push opcode, possibly shorter than
    the declared size when the buffer ended early).
    """
    offset: int
    opcode: int
    data: bytes = b""

    @property
    def name(self) -> str:
        return opcode_name(self.opcode)

    @property
    def is_push(self) -> bool:
        return is_push(self.opcode)

    @property
    def push_size(self) -> int:
        return push_size(self.opcode)

    @property
    def size(self) -> int:
        return 1 + len(self.data)

    @property
    def value(self) -> int:
        """Big-endian integer value of the operand (0 when empty)."""
        return int.from_bytes(self.data, "big")

    def rebase(self, base: int) -> "Instruction":
        """Copy of this instruction with ``base`` added to its offset."""
        return Instruction(self.offset + base, self.opcode, self.data)

    def __repr__(self) -> str:
        return (f"Instruction(offset={self.offset}, opcode=0x{self.opcode:02x}, "
                f"data={encode_hex(self.data)})")


def strip_solc_metadata(bytecode: bytes) -> bytes:
    """Cut ``bytecode`` at the last solc metadata marker, if there is one."""
    pos = bytecode.rfind(SOLC_METADATA_MARKER)
    if pos < 0:
        return bytecode
    logger.debug("Stripping %d metadata bytes at offset %d",
                 len(bytecode) - pos, pos)
    return bytecode[:pos]


def decode(bytecode: bytes) -> List[Instruction]:
    """Decode ``bytecode`` into instructions.

    Never fails: unknown opcodes become single-byte instructions and a
    truncated push keeps whatever operand bytes are available.
    """
    code = strip_solc_metadata(bytes(bytecode))
    instructions = []
    i = 0
    end = len(code)

    while i < end:
        offset = i
        opcode = code[i]
        i += 1

        size = push_size(opcode)
        if size:
            data = code[i:i + size]
            i += len(data)
        else:
            data = b""

        instructions.append(Instruction(offset, opcode, data))

    return instructions


def parse_hex(text: str) -> bytes:
    """Decode hex text (optionally ``0x``-prefixed) into bytes.

    Raises:
        InputError: if the text is not valid hex
    """
    content = text.strip()
    if content[:2] in ("0x", "0X"):
        content = content[2:]
    if len(content) % 2:
        raise InputError(f"failed to parse hex: odd number of digits ({len(content)})")
    try:
        return decode_hex(content)
    except (ValueError, TypeError) as e:
        raise InputError(f"failed to parse hex: {e}") from e
