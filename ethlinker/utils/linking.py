from typing import Iterator, List, Tuple

from eth_typing import HexAddress, HexStr
from eth_utils import remove_0x_prefix, to_canonical_address

from ethlinker.constants import (
    PLACEHOLDER_FILL,
    PLACEHOLDER_LENGTH,
    PLACEHOLDER_NAME_LENGTH,
    PLACEHOLDER_PREFIX,
)


def get_placeholder_for_library(library_name: str) -> str:
    """Renders the placeholder a compiler leaves in the bytecode for a library.

    Like solc and truffle, only the first 36 characters of the name are kept
    and the slot always ends in `__`. Names differing only after that, or in
    trailing underscores, share one placeholder."""
    placeholder = PLACEHOLDER_PREFIX + library_name[:PLACEHOLDER_NAME_LENGTH]
    return (
        placeholder.ljust(PLACEHOLDER_LENGTH - len(PLACEHOLDER_PREFIX), PLACEHOLDER_FILL)
        + PLACEHOLDER_PREFIX
    )


def get_library_name_from_placeholder(placeholder: str) -> str:
    """Returns the library name as far as the slot spells it out.

    Trailing underscores of the name are indistinguishable from the fill."""
    if len(placeholder) != PLACEHOLDER_LENGTH or not placeholder.startswith(PLACEHOLDER_PREFIX):
        raise ValueError(f"{placeholder!r} is not a library placeholder")
    return placeholder[len(PLACEHOLDER_PREFIX) :].rstrip(PLACEHOLDER_FILL)


def iter_placeholders(code: str) -> Iterator[Tuple[int, str]]:
    """Yields the position and text of every library slot in unprefixed hex code."""
    cursor = 0
    while True:
        position = code.find(PLACEHOLDER_PREFIX, cursor)
        if position == -1:
            return
        placeholder = code[position : position + PLACEHOLDER_LENGTH]
        if len(placeholder) != PLACEHOLDER_LENGTH:
            raise ValueError(f"Truncated library placeholder at position {position}")
        yield position, placeholder
        cursor = position + PLACEHOLDER_LENGTH


def normalize_library_address(library_address: HexAddress) -> str:
    """Returns the lowercase hex form of an address, without 0x prefix."""
    return to_canonical_address(library_address).hex()


def link_bytecode(unlinked_bytecode: str, library_name: str, library_address: HexAddress) -> str:
    """Links compiled bytecode by replacing the placeholders of a library
    with the library's address.

    Only whole slots are replaced, so the length of the code never changes."""

    code = remove_0x_prefix(HexStr(unlinked_bytecode))
    target = get_placeholder_for_library(library_name)
    normalized_address = normalize_library_address(library_address)

    chunks: List[str] = []
    cursor = 0
    for position, placeholder in iter_placeholders(code):
        if placeholder == target:
            chunks.append(code[cursor:position])
            chunks.append(normalized_address)
            cursor = position + PLACEHOLDER_LENGTH
    chunks.append(code[cursor:])
    return "".join(chunks)
