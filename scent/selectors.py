"""
Function selector dictionary: maps 4-byte selectors to human-readable signatures.

Lookups go through a tiered strategy:
  1. A user-supplied JSON dictionary (``[{"selector": ..., "signature": ...}]``)
  2. A curated built-in table of well-known selectors (ERC-20, ERC-721, Ownable, ...)
  3. Optionally, the 4byte.directory public API

Resolution only ever produces renamed copies of analyzer records; the
analyzer output itself is left untouched.
"""

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import requests
from eth_utils import function_signature_to_4byte_selector, remove_0x_prefix

from .analysis import FunctionSelector
from .exceptions import SelectorDatabaseError

logger = logging.getLogger(__name__)

SelectorKey = Union[int, bytes, str]

# ---------------------------------------------------------------------------
# Built-in selector table
# ---------------------------------------------------------------------------

_BUILTIN_SELECTORS: Dict[int, str] = {
    # ERC-20
    0x06FDDE03: "name()",
    0x95D89B41: "symbol()",
    0x313CE567: "decimals()",
    0x18160DDD: "totalSupply()",
    0x70A08231: "balanceOf(address)",
    0xDD62ED3E: "allowance(address,address)",
    0xA9059CBB: "transfer(address,uint256)",
    0x23B872DD: "transferFrom(address,address,uint256)",
    0x095EA7B3: "approve(address,uint256)",
    # ERC-721
    0x6352211E: "ownerOf(uint256)",
    0x42842E0E: "safeTransferFrom(address,address,uint256)",
    0xB88D4FDE: "safeTransferFrom(address,address,uint256,bytes)",
    0xE985E9C5: "isApprovedForAll(address,address)",
    0xA22CB465: "setApprovalForAll(address,bool)",
    0x081812FC: "getApproved(uint256)",
    0x01FFC9A7: "supportsInterface(bytes4)",
    0xC87B56DD: "tokenURI(uint256)",
    # Ownable
    0x893D20E8: "getOwner()",
    0x8DA5CB5B: "owner()",
    0xF2FDE38B: "transferOwnership(address)",
    0x715018A6: "renounceOwnership()",
    0xA6F9DAE1: "changeOwner(address)",
    # Proxy
    0x5C60DA1B: "implementation()",
    0x3659CFE6: "upgradeTo(address)",
    0x4F1EF286: "upgradeToAndCall(address,bytes)",
    # Utility
    0x12065FE0: "getBalance()",
    0x3CCFD60B: "withdraw()",
    0xD0E30DB0: "deposit()",
    0x2E1A7D4D: "withdraw(uint256)",
    0x8129FC1C: "initialize()",
    0x40C10F19: "mint(address,uint256)",
    0x42966C68: "burn(uint256)",
    0x5C975ABB: "paused()",
    0x8456CB59: "pause()",
    0x3F4BA83A: "unpause()",
}


def selector_to_int(selector: SelectorKey) -> int:
    """Normalise a selector given as int, 4 bytes or hex text to an int.

    Raises:
        ValueError: if the value is not a 4-byte selector
    """
    if isinstance(selector, int):
        value = selector
    elif isinstance(selector, (bytes, bytearray)):
        if len(selector) != 4:
            raise ValueError(f"selector must be 4 bytes, got {len(selector)}")
        value = int.from_bytes(selector, "big")
    else:
        text = remove_0x_prefix(selector.strip().lower())
        if not text or len(text) > 8:
            raise ValueError(f"invalid selector {selector!r}")
        value = int(text, 16)
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"selector out of range: {value}")
    return value


# ---------------------------------------------------------------------------
# JSON dictionary
# ---------------------------------------------------------------------------

def load_selectors(path: Union[str, Path]) -> Dict[int, str]:
    """Load a JSON selector dictionary.

    The file holds a list of ``{"selector": "0x...", "signature": "..."}``
    records. Records with an unparsable selector are skipped; records with a
    signature but no selector get one computed from the signature.

    Raises:
        SelectorDatabaseError: if the file cannot be read or is malformed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise SelectorDatabaseError(f"failed to read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SelectorDatabaseError(f"failed to parse {path}: {e}") from e

    if not isinstance(entries, list):
        raise SelectorDatabaseError(
            f"failed to parse {path}: expected a list of records, "
            f"got {type(entries).__name__}")

    selectors: Dict[int, str] = {}
    for entry in entries:
        signature = entry.get("signature") if isinstance(entry, dict) else None
        if not signature or not isinstance(signature, str):
            logger.debug("Skipping selector record without a signature string: %r", entry)
            continue
        raw = entry.get("selector")
        if raw is None:
            selectors[int.from_bytes(function_signature_to_4byte_selector(signature), "big")] = signature
            continue
        try:
            selectors[selector_to_int(raw)] = signature
        except (ValueError, AttributeError) as e:
            logger.debug("Skipping selector record %r: %s", entry, e)

    logger.debug("Loaded %d selectors from %s", len(selectors), path)
    return selectors


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedSelector:
    """A selector resolved to a signature, with the tier it came from."""

    selector: int
    signature: str
    source: str  # "builtin" | "json" | "4byte"

    @property
    def hex(self) -> str:
        return f"0x{self.selector:08x}"


class SelectorResolver:
    """Resolve function selectors to human-readable signatures.

    Lookup order:
      1. The user's JSON dictionary
      2. In-memory builtin table
      3. 4byte.directory API (only when ``use_remote`` is set)

    Every answer, including "not found", is cached per selector.
    """

    _FOUR_BYTE_API = "https://www.4byte.directory/api/v1/signatures/"

    def __init__(
        self,
        selectors: Optional[Dict[int, str]] = None,
        *,
        use_builtin: bool = True,
        use_remote: bool = False,
        timeout: float = 3.0,
    ) -> None:
        self.selectors = dict(selectors or {})
        self.use_builtin = use_builtin
        self.use_remote = use_remote
        self.timeout = timeout
        self._cache: Dict[int, Optional[ResolvedSelector]] = {}

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "SelectorResolver":
        return cls(load_selectors(path), **kwargs)

    # ------------------------------------------------------------------ #
    #  Public API
    # ------------------------------------------------------------------ #

    def lookup(self, selector: SelectorKey) -> Optional[ResolvedSelector]:
        """Resolve a single selector, returning None when it is unknown."""
        key = selector_to_int(selector)
        if key in self._cache:
            return self._cache[key]

        result = None
        if key in self.selectors:
            result = ResolvedSelector(key, self.selectors[key], "json")
        elif self.use_builtin and key in _BUILTIN_SELECTORS:
            result = ResolvedSelector(key, _BUILTIN_SELECTORS[key], "builtin")
        elif self.use_remote:
            result = self._query_4byte(key)

        self._cache[key] = result
        return result

    def resolve(self, selector: SelectorKey) -> Optional[str]:
        """Return the signature for ``selector``, or None."""
        result = self.lookup(selector)
        return result.signature if result else None

    def name_selectors(self, selectors: Iterable[FunctionSelector]) -> List[FunctionSelector]:
        """Copies of ``selectors`` with ``name`` set wherever a signature is known."""
        named = []
        for sel in selectors:
            signature = self.resolve(sel.selector)
            named.append(replace(sel, name=signature) if signature else sel)
        return named

    def __contains__(self, selector: SelectorKey) -> bool:
        return self.lookup(selector) is not None

    # ------------------------------------------------------------------ #
    #  Remote lookup
    # ------------------------------------------------------------------ #

    def _query_4byte(self, selector: int) -> Optional[ResolvedSelector]:
        """Query 4byte.directory; the oldest registered signature wins."""
        hex_selector = f"0x{selector:08x}"
        try:
            resp = requests.get(
                self._FOUR_BYTE_API,
                params={"hex_signature": hex_selector, "ordering": "created_at"},
                timeout=self.timeout,
            )
            if resp.status_code != 200:
                logger.debug("4byte.directory returned %d for %s",
                             resp.status_code, hex_selector)
                return None

            for entry in resp.json().get("results", []):
                signature = entry.get("text_signature")
                if signature:
                    return ResolvedSelector(selector, signature, "4byte")
            return None

        except (requests.RequestException, ValueError) as e:
            logger.debug("4byte.directory lookup for %s failed: %s", hex_selector, e)
            return None
