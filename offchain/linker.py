"""
Library linking for contract creation bytecode.

Compilers leave a 40 character placeholder wherever a library address has to
be inserted. Two forms are handled:

- name placeholders, ``__IterableMapping_______________________``, written
  by Truffle (the name is cut to 36 characters and padded with ``_``);
- hash placeholders, ``__$<34 hex chars>$__``, written by solc >= 0.5, where
  the hex is the start of keccak256 of the fully qualified library name
  (``contracts/IterableMapping.sol:IterableMapping``).

Artifacts that carry ``linkReferences`` (Hardhat, solc standard JSON) are
linked by byte offset instead of by searching for the placeholder text.
"""

import re
from typing import Dict, List, Optional

from eth_utils import is_address, keccak

from .errors import LinkError

PLACEHOLDER_LENGTH = 40

# Hex bytecode never contains "_", so any "__" starts a placeholder
_PLACEHOLDER_RE = re.compile(r"__.{38}")


def name_placeholder(name: str) -> str:
    return ("__" + name[:36]).ljust(PLACEHOLDER_LENGTH, "_")


def hash_placeholder(fully_qualified_name: str) -> str:
    digest = keccak(text=fully_qualified_name).hex()
    if digest.startswith("0x"):
        digest = digest[2:]
    return f"__${digest[:34]}$__"


def _address_hex(name: str, address: str) -> str:
    if not isinstance(address, str) or not is_address(address):
        raise LinkError(f"Invalid address for library {name}: {address!r}")
    hex_part = address[2:] if address.lower().startswith("0x") else address
    return hex_part.lower()


def _placeholders_for(name: str) -> List[str]:
    placeholders = [name_placeholder(name)]
    if ":" in name:
        # fully qualified: also match the bare contract name and the hash form
        placeholders.append(name_placeholder(name.split(":")[-1]))
        placeholders.append(hash_placeholder(name))
    return placeholders


def _link_by_offsets(code: str, link_references: Dict, links: Dict[str, str]) -> str:
    chars = list(code)
    for source, libraries in link_references.items():
        for lib_name, refs in libraries.items():
            address = links.get(f"{source}:{lib_name}", links.get(lib_name))
            if address is None:
                continue
            hex_address = _address_hex(lib_name, address)
            for ref in refs:
                start = ref["start"] * 2
                length = ref.get("length", 20) * 2
                if length != len(hex_address) or start + length > len(chars):
                    raise LinkError(f"Bad link reference for {lib_name} at byte {ref['start']}")
                chars[start:start + length] = hex_address
    return "".join(chars)


def link_bytecode(bytecode: str, links: Dict[str, str],
                  link_references: Optional[Dict] = None) -> str:
    """
    Insert library addresses into `bytecode`.

    Args:
        bytecode: Creation bytecode, with or without a 0x prefix
        links: Library name (bare or "source:Name") -> deployed address
        link_references: Optional byte offsets, {source: {name: [{start, length}]}}

    Returns:
        Bytecode with every known placeholder replaced; unknown ones are kept
    """
    prefix = "0x" if bytecode.startswith("0x") else ""
    code = bytecode[len(prefix):]

    if link_references:
        code = _link_by_offsets(code, link_references, links)

    for name, address in links.items():
        hex_address = _address_hex(name, address)
        for placeholder in _placeholders_for(name):
            code = code.replace(placeholder, hex_address)

    return prefix + code


def find_unlinked(bytecode: str) -> List[str]:
    """Names (or hash placeholders) of libraries still missing from `bytecode`."""
    found = []
    for match in _PLACEHOLDER_RE.finditer(bytecode):
        placeholder = match.group(0)
        if placeholder.startswith("__$"):
            name = placeholder[2:-2]
        else:
            name = placeholder.strip("_")
        if name not in found:
            found.append(name)
    return found
