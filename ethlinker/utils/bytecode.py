"""Compiled contract bytecode with unresolved library placeholders."""
from string import hexdigits
from typing import Iterator, List

from eth_typing import HexAddress, HexStr
from eth_utils import decode_hex, remove_0x_prefix

from ethlinker.utils.linking import (
    get_library_name_from_placeholder,
    get_placeholder_for_library,
    iter_placeholders,
    link_bytecode,
)

_HEX_DIGITS = frozenset(hexdigits)


class BytecodeError(ValueError):
    """The bytecode is malformed or cannot be used the way it was asked to."""


class LibraryNotFound(BytecodeError):
    """There is no placeholder left for the library."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Library {name} is not a placeholder in the bytecode")
        self.name = name


class UnresolvedLibraries(BytecodeError):
    """Converting to bytes is impossible while placeholders remain."""

    def __init__(self, names: List[str]) -> None:
        super().__init__(f"Bytecode has unresolved libraries: {', '.join(names)}")
        self.names = names


class Bytecode:
    """ Hex encoded bytecode as emitted by the compiler

    Every library reference is a 40 character slot starting with `__` and
    holding the library name. Linking replaces a slot with the library address
    in place, so the code never changes length.
    """

    def __init__(self, hexcode: str = "") -> None:
        code = remove_0x_prefix(HexStr(hexcode))
        try:
            placeholders = list(iter_placeholders(code))
        except ValueError as ex:
            raise BytecodeError(f"Invalid bytecode: {ex}") from ex

        cursor = 0
        for position, placeholder in placeholders:
            _verify_hex(code[cursor:position])
            cursor = position + len(placeholder)
        _verify_hex(code[cursor:])
        if len(code) % 2 != 0:
            raise BytecodeError("Invalid bytecode: odd number of hex digits")
        self._code = code

    @classmethod
    def from_hex_str(cls, hexcode: str) -> "Bytecode":
        return cls(hexcode)

    def is_empty(self) -> bool:
        return not self._code

    def __len__(self) -> int:
        """ Length of the code in bytes, placeholders included. """
        return len(self._code) // 2

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bytecode):
            return NotImplemented
        return self._code == other._code

    def __repr__(self) -> str:
        return f"Bytecode(0x{self._code})"

    def copy(self) -> "Bytecode":
        clone = Bytecode.__new__(Bytecode)
        clone._code = self._code
        return clone

    def to_hex(self) -> str:
        return "0x" + self._code

    def undefined_placeholders(self) -> Iterator[str]:
        """ Slots still to be linked, in order of first appearance. """
        seen = set()
        for _, placeholder in iter_placeholders(self._code):
            if placeholder not in seen:
                seen.add(placeholder)
                yield placeholder

    def undefined_libraries(self) -> Iterator[str]:
        """ Names of the libraries still to be linked, in order of first appearance. """
        for placeholder in self.undefined_placeholders():
            yield get_library_name_from_placeholder(placeholder)

    def requires_linking(self) -> bool:
        return next(self.undefined_libraries(), None) is not None

    def link(self, name: str, address: HexAddress) -> None:
        """ Replaces every placeholder of library `name` with `address`.

        Raises LibraryNotFound when no such placeholder is left.
        """
        target = get_placeholder_for_library(name)
        if not any(placeholder == target for _, placeholder in iter_placeholders(self._code)):
            raise LibraryNotFound(name)
        self._code = link_bytecode(self._code, name, address)

    def to_bytes(self) -> bytes:
        missing = list(self.undefined_libraries())
        if missing:
            raise UnresolvedLibraries(missing)
        return decode_hex(self._code)


def _verify_hex(chunk: str) -> None:
    if not _HEX_DIGITS.issuperset(chunk):
        raise BytecodeError(f"Invalid bytecode: {chunk!r} is not hex encoded")
