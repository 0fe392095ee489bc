"""Linking of contract bytecode against the libraries it references.

A `Linker` collects libraries that are already deployed and libraries that
still have to be deployed, then validates everything at once in `build()`,
which returns the `Deployment` plan: the libraries to deploy first, in the
order the contract references them, and the linked contract with its encoded
constructor arguments.
"""
import logging
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from eth_abi import encode
from eth_abi.exceptions import ABITypeError, EncodingError, NoEntriesFound, ParseError
from eth_typing import ABI, HexAddress
from eth_utils.abi import collapse_if_tuple

from ethlinker.contract_manager import Artifact
from ethlinker.utils.bytecode import Bytecode, LibraryNotFound, UnresolvedLibraries
from ethlinker.utils.linking import get_library_name_from_placeholder, get_placeholder_for_library

log = logging.getLogger(__name__)


class LinkerError(Exception):
    """The contract cannot be linked with the given libraries."""

    def __init__(self, message: str, name: Optional[str] = None) -> None:
        super().__init__(message)
        self.name = name


class EmptyBytecode(LinkerError):
    def __init__(self) -> None:
        super().__init__("Contract bytecode is empty, there is nothing to deploy")


class UnusedDependency(LinkerError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Library {name} is not used by the contract", name)


class MissingDependency(LinkerError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Library {name} is required but was not provided", name)


class NestedDependencies(LinkerError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Library {name} depends on other libraries and cannot be deployed", name
        )


class InvalidLibraryAddress(LinkerError):
    def __init__(self, name: str, address: Any) -> None:
        super().__init__(f"Library {name} has an invalid address: {address!r}", name)
        self.address = address


class ConstructorArgumentsError(LinkerError):
    """The constructor arguments do not match the contract ABI."""


class UndeclaredLibrary(LinkerError):
    def __init__(self, contract_name: str, name: str) -> None:
        super().__init__(f"Contract {contract_name} does not depend on library {name}", name)
        self.contract_name = contract_name


class LinkerConsumed(RuntimeError):
    """A linker was used again after `build()`."""


class LibraryInstance(NamedTuple):
    """A library that is deployed at a known address."""

    name: str
    address: HexAddress


class Library(NamedTuple):
    """A library that can be deployed together with the contract."""

    name: str
    bytecode: Bytecode


class Resolved(NamedTuple):
    address: HexAddress


class Pending(NamedTuple):
    bytecode: Bytecode


LibraryEntry = Union[Resolved, Pending]


class Deployment(NamedTuple):
    """ A deployment plan

    `libraries_to_deploy` must be deployed before the contract, and their
    addresses linked into the contract bytecode.
    """

    libraries_to_deploy: Tuple[Tuple[str, bytes], ...]
    contract: Tuple[Bytecode, bytes]

    def link(self, name: str, address: HexAddress) -> "Deployment":
        """ Returns the plan with a deployed library linked into the contract. """
        bytecode, constructor_arguments = self.contract
        linked = bytecode.copy()
        linked.link(name, address)
        return self._replace(contract=(linked, constructor_arguments))

    def contract_bytes(self) -> bytes:
        """ The contract creation payload: linked bytecode followed by the arguments. """
        bytecode, constructor_arguments = self.contract
        return bytecode.to_bytes() + constructor_arguments


class DependencyRegistry:
    """ Records which libraries a contract may be linked with """

    def __init__(self) -> None:
        self._dependencies: Dict[str, FrozenSet[str]] = {}

    def declare(self, contract_name: str, library_names: Iterable[str]) -> None:
        known = self._dependencies.get(contract_name, frozenset())
        self._dependencies[contract_name] = known | frozenset(library_names)

    def libraries_of(self, contract_name: str) -> FrozenSet[str]:
        return self._dependencies.get(contract_name, frozenset())

    def depends_on(self, contract_name: str, library_name: str) -> bool:
        placeholder = get_placeholder_for_library(library_name)
        return any(
            get_placeholder_for_library(declared) == placeholder
            for declared in self.libraries_of(contract_name)
        )

    def check(self, contract_name: str, library_name: str) -> None:
        if not self.depends_on(contract_name, library_name):
            raise UndeclaredLibrary(contract_name, library_name)


def encode_constructor_arguments(abi: Optional[ABI], args: Sequence[Any]) -> bytes:
    """ABI encodes the constructor arguments, which get appended to the bytecode."""
    constructors = [entry for entry in abi or [] if entry.get("type") == "constructor"]
    if not constructors:
        if args:
            raise ConstructorArgumentsError(
                f"Got {len(args)} constructor arguments but the contract has no constructor"
            )
        return b""

    inputs = constructors[0].get("inputs", [])
    if len(inputs) != len(args):
        raise ConstructorArgumentsError(
            f"Constructor takes {len(inputs)} arguments but {len(args)} were given"
        )

    types = [collapse_if_tuple(dict(constructor_input)) for constructor_input in inputs]
    try:
        return encode(types, list(args))
    except (EncodingError, ParseError, ABITypeError, NoEntriesFound) as ex:
        raise ConstructorArgumentsError(f"Cannot encode constructor arguments: {ex}") from ex


class Linker:
    """ Builder for linking a contract before deploying it

    Libraries are only collected by the configuration methods. All the
    validation happens in `build()`, which can be called once.
    """

    def __init__(
        self,
        bytecode: Union[Bytecode, str],
        abi: Optional[ABI] = None,
        args: Sequence[Any] = (),
        contract_name: Optional[str] = None,
        registry: Optional[DependencyRegistry] = None,
    ) -> None:
        if isinstance(bytecode, str):
            bytecode = Bytecode(bytecode)
        if bytecode.is_empty():
            raise EmptyBytecode()

        self.contract_bytecode = bytecode.copy()
        self.encoded_constructor_arguments = encode_constructor_arguments(abi, args)
        self.contract_name = contract_name
        self.registry = registry
        self.libraries: List[Tuple[str, LibraryEntry]] = []
        self._consumed = False

    @classmethod
    def from_artifact(
        cls,
        artifact: Artifact,
        args: Sequence[Any] = (),
        registry: Optional[DependencyRegistry] = None,
    ) -> "Linker":
        return cls(
            bytecode=artifact["bytecode"],
            abi=artifact["abi"],
            args=args,
            contract_name=artifact["contractName"],
            registry=registry,
        )

    def _ensure_not_consumed(self) -> None:
        if self._consumed:
            raise LinkerConsumed("The linker was already built")

    def _check_declared(self, library_name: str) -> None:
        if self.registry is not None and self.contract_name is not None:
            self.registry.check(self.contract_name, library_name)

    def add_resolved(self, name: str, address: HexAddress) -> "Linker":
        """Adds a library that is already deployed at `address`."""
        return self._add_library(name, Resolved(address))

    def add_pending(self, name: str, bytecode: Union[Bytecode, str]) -> "Linker":
        """Adds a library that has to be deployed before the contract."""
        if isinstance(bytecode, str):
            bytecode = Bytecode(bytecode)
        return self._add_library(name, Pending(bytecode.copy()))

    def library(self, instance: LibraryInstance) -> "Linker":
        self._check_declared(instance.name)
        return self.add_resolved(instance.name, instance.address)

    def deploy_library(self, library: Library) -> "Linker":
        self._check_declared(library.name)
        return self.add_pending(library.name, library.bytecode)

    def _add_library(self, name: str, library: LibraryEntry) -> "Linker":
        self._ensure_not_consumed()
        self.libraries.append((name, library))
        return self

    def build(self) -> Deployment:
        """ Links the libraries into the contract and returns the deployment plan

        Libraries are matched to the contract by their placeholder, so a name
        longer than the slot still finds the slot the compiler truncated it to.

        Raises:
            UnusedDependency: a library is not referenced by the contract, or
                was given more than once
            MissingDependency: a library referenced by the contract was not given
            NestedDependencies: a library to deploy references other libraries
            InvalidLibraryAddress: a deployed library has a malformed address
        """
        self._ensure_not_consumed()
        self._consumed = True

        bytecode = self.contract_bytecode.copy()
        pending_libraries: Dict[str, Tuple[str, Bytecode]] = {}
        for name, library in self.libraries:
            if isinstance(library, Resolved):
                try:
                    bytecode.link(name, library.address)
                except LibraryNotFound as ex:
                    raise UnusedDependency(name) from ex
                except (TypeError, ValueError) as ex:
                    raise InvalidLibraryAddress(name, library.address) from ex
                log.debug(f"Linked library {name} at {library.address}")
            else:
                placeholder = get_placeholder_for_library(name)
                if placeholder in pending_libraries:
                    raise UnusedDependency(name)
                pending_libraries[placeholder] = (name, library.bytecode)

        libraries_to_deploy: List[Tuple[str, bytes]] = []
        for placeholder in bytecode.undefined_placeholders():
            if placeholder not in pending_libraries:
                raise MissingDependency(get_library_name_from_placeholder(placeholder))
            name, library_bytecode = pending_libraries.pop(placeholder)
            try:
                libraries_to_deploy.append((name, library_bytecode.to_bytes()))
            except UnresolvedLibraries as ex:
                raise NestedDependencies(name) from ex

        # Whatever is left was never referenced by the contract
        if pending_libraries:
            raise UnusedDependency(min(name for name, _ in pending_libraries.values()))

        log.debug(
            f"Linked {self.contract_name or 'contract'}, "
            f"libraries to deploy: {[name for name, _ in libraries_to_deploy]}"
        )
        return Deployment(
            libraries_to_deploy=tuple(libraries_to_deploy),
            contract=(bytecode, self.encoded_constructor_arguments),
        )

