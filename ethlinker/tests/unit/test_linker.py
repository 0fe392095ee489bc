import pytest
from eth_abi import encode
from eth_typing import HexAddress, HexStr

from ethlinker.linker import (
    ConstructorArgumentsError,
    DependencyRegistry,
    Deployment,
    EmptyBytecode,
    InvalidLibraryAddress,
    Library,
    LibraryInstance,
    LinkerConsumed,
    Linker,
    MissingDependency,
    NestedDependencies,
    UndeclaredLibrary,
    UnusedDependency,
)
from ethlinker.tests.utils import placeholder
from ethlinker.utils.bytecode import Bytecode, LibraryNotFound


def repeat_byte(byte: int) -> HexAddress:
    return HexAddress(HexStr("0x" + bytes([byte]).hex() * 20))


ZERO_ADDRESS = repeat_byte(0)

CONSTRUCTOR_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "amount", "type": "uint256"}, {"name": "owner", "type": "address"}],
    }
]


def test_link_contract() -> None:
    """ Resolved libraries are linked, pending ones are planned for deployment """
    bytecode = Bytecode(
        "0x"
        + "00"
        + placeholder("Library0")
        + "00"
        + placeholder("Library0")
        + "01"
        + placeholder("Library1")
        + "02"
        + placeholder("Library2")
    )
    library_bytecode = Bytecode("0x00")

    deployment = (
        Linker(bytecode)
        .add_resolved("Library0", ZERO_ADDRESS)
        .add_pending("Library1", library_bytecode)
        .add_resolved("Library2", repeat_byte(2))
        .build()
    )

    assert deployment.libraries_to_deploy == (("Library1", b"\x00"),)

    linked_bytecode, params = deployment.contract
    assert list(linked_bytecode.undefined_libraries()) == ["Library1"]
    linked_bytecode.link("Library1", repeat_byte(1))
    assert linked_bytecode.to_bytes() == bytes.fromhex(
        "000000000000000000000000000000000000000000"
        "000000000000000000000000000000000000000000"
        "010101010101010101010101010101010101010101"
        "020202020202020202020202020202020202020202"
    )
    assert params == b""


def test_link_all_resolved() -> None:
    bytecode = Bytecode("0x60" + placeholder("Library0") + "61" + placeholder("Library1"))

    deployment = (
        Linker(bytecode)
        .add_resolved("Library1", repeat_byte(1))
        .add_resolved("Library0", ZERO_ADDRESS)
        .build()
    )

    assert deployment.libraries_to_deploy == ()
    assert deployment.contract_bytes() == b"\x60" + bytes(20) + b"\x61" + b"\x01" * 20


def test_link_same_library_more_than_once() -> None:
    bytecode = Bytecode("0x00" + placeholder("Library0"))
    library_bytecode = Bytecode("0x00")

    with pytest.raises(UnusedDependency) as excinfo:
        Linker(bytecode).add_resolved("Library0", ZERO_ADDRESS).add_resolved(
            "Library0", repeat_byte(1)
        ).build()
    assert excinfo.value.name == "Library0"
    assert isinstance(excinfo.value.__cause__, LibraryNotFound)

    with pytest.raises(UnusedDependency) as excinfo:
        Linker(bytecode).add_pending("Library0", library_bytecode).add_resolved(
            "Library0", repeat_byte(1)
        ).build()
    assert excinfo.value.name == "Library0"

    with pytest.raises(UnusedDependency) as excinfo:
        Linker(bytecode).add_pending("Library0", library_bytecode).add_pending(
            "Library0", library_bytecode
        ).build()
    assert excinfo.value.name == "Library0"


def test_link_library_not_in_bytecode() -> None:
    bytecode = Bytecode("0x00")

    with pytest.raises(UnusedDependency) as excinfo:
        Linker(bytecode).add_resolved("Library0", ZERO_ADDRESS).build()
    assert excinfo.value.name == "Library0"

    with pytest.raises(UnusedDependency) as excinfo:
        Linker(bytecode).add_pending("Library0", bytecode).build()
    assert excinfo.value.name == "Library0"


def test_link_unused_libraries_reports_smallest_name() -> None:
    linker = (
        Linker(Bytecode("0x00"))
        .add_pending("Zeta", Bytecode("0x01"))
        .add_pending("Beta", Bytecode("0x02"))
        .add_pending("Alpha", Bytecode("0x03"))
    )
    with pytest.raises(UnusedDependency) as excinfo:
        linker.build()
    assert excinfo.value.name == "Alpha"


def test_link_missing_library() -> None:
    bytecode = Bytecode("0x00" + placeholder("Library0"))

    with pytest.raises(MissingDependency) as excinfo:
        Linker(bytecode).build()
    assert excinfo.value.name == "Library0"


def test_link_nested_dependency() -> None:
    bytecode = Bytecode("0x00" + placeholder("Library0"))
    library_bytecode = Bytecode("0x00" + placeholder("Library1"))

    with pytest.raises(NestedDependencies) as excinfo:
        Linker(bytecode).add_pending("Library0", library_bytecode).build()
    assert excinfo.value.name == "Library0"


def test_libraries_to_deploy_follow_bytecode_order() -> None:
    bytecode = Bytecode(
        "0x"
        + placeholder("Library2")
        + placeholder("Library0")
        + placeholder("Library1")
        + placeholder("Library0")
    )

    deployment = (
        Linker(bytecode)
        .add_pending("Library0", "0x00")
        .add_pending("Library1", "0x01")
        .add_pending("Library2", "0x02")
        .build()
    )

    assert [name for name, _ in deployment.libraries_to_deploy] == [
        "Library2",
        "Library0",
        "Library1",
    ]
    assert [code for _, code in deployment.libraries_to_deploy] == [b"\x02", b"\x00", b"\x01"]


@pytest.mark.parametrize("bytecode", ["", "0x", Bytecode()])
def test_empty_bytecode(bytecode: str) -> None:
    with pytest.raises(EmptyBytecode):
        Linker(bytecode)


def test_constructor_arguments_are_encoded() -> None:
    owner = "0x" + "ab" * 20
    deployment = Linker("0x6000", abi=CONSTRUCTOR_ABI, args=[42, owner]).build()

    bytecode, params = deployment.contract
    assert params == encode(["uint256", "address"], [42, owner])
    assert deployment.contract_bytes() == b"\x60\x00" + params


def test_constructor_arguments_without_constructor() -> None:
    assert Linker("0x6000", abi=[]).encoded_constructor_arguments == b""
    with pytest.raises(ConstructorArgumentsError):
        Linker("0x6000", abi=[], args=[1])
    with pytest.raises(ConstructorArgumentsError):
        Linker("0x6000", args=[1])


@pytest.mark.parametrize("args", [[], [42], [42, "0x" + "ab" * 20, 1]])
def test_constructor_arguments_count_mismatch(args: list) -> None:
    with pytest.raises(ConstructorArgumentsError):
        Linker("0x6000", abi=CONSTRUCTOR_ABI, args=args)


def test_constructor_arguments_of_wrong_type() -> None:
    with pytest.raises(ConstructorArgumentsError) as excinfo:
        Linker("0x6000", abi=CONSTRUCTOR_ABI, args=["many", "0x" + "ab" * 20])
    assert excinfo.value.__cause__ is not None


def test_linker_is_consumed_by_build() -> None:
    linker = Linker("0x6000")
    linker.build()

    with pytest.raises(LinkerConsumed):
        linker.build()
    with pytest.raises(LinkerConsumed):
        linker.add_resolved("Library0", ZERO_ADDRESS)


def test_failed_build_leaves_inputs_untouched() -> None:
    bytecode = Bytecode("0x00" + placeholder("Library0") + placeholder("Library1"))
    linker = Linker(bytecode).add_resolved("Library0", ZERO_ADDRESS)

    with pytest.raises(MissingDependency):
        linker.build()

    assert list(bytecode.undefined_libraries()) == ["Library0", "Library1"]
    assert list(linker.contract_bytecode.undefined_libraries()) == ["Library0", "Library1"]


def test_deployment_link_returns_new_plan() -> None:
    bytecode = Bytecode("0x00" + placeholder("Library0"))
    deployment = Linker(bytecode).add_pending("Library0", "0x6000").build()

    linked = deployment.link("Library0", repeat_byte(7))

    assert isinstance(linked, Deployment)
    assert linked.contract_bytes() == b"\x00" + b"\x07" * 20
    assert list(deployment.contract[0].undefined_libraries()) == ["Library0"]


def test_registry_checks_attached_libraries() -> None:
    registry = DependencyRegistry()
    registry.declare("Contract", ["Library0"])
    bytecode = Bytecode("0x00" + placeholder("Library0"))

    linker = Linker(bytecode, contract_name="Contract", registry=registry)
    with pytest.raises(UndeclaredLibrary) as excinfo:
        linker.library(LibraryInstance("Library1", ZERO_ADDRESS))
    assert excinfo.value.name == "Library1"
    assert excinfo.value.contract_name == "Contract"
    with pytest.raises(UndeclaredLibrary):
        linker.deploy_library(Library("Library1", Bytecode("0x00")))

    deployment = linker.deploy_library(Library("Library0", Bytecode("0x6000"))).build()
    assert deployment.libraries_to_deploy == (("Library0", b"\x60\x00"),)


def test_registry_declarations_accumulate() -> None:
    registry = DependencyRegistry()
    registry.declare("Contract", ["Library0"])
    registry.declare("Contract", ["Library1"])

    assert registry.libraries_of("Contract") == frozenset({"Library0", "Library1"})
    assert registry.depends_on("Contract", "Library1")
    assert not registry.depends_on("Other", "Library0")


def test_unchecked_configuration_ignores_registry() -> None:
    registry = DependencyRegistry()
    linker = Linker("0x00", contract_name="Contract", registry=registry)

    linker.add_resolved("Library0", ZERO_ADDRESS)
    with pytest.raises(UnusedDependency):
        linker.build()


LONG_LIBRARY_NAME = "VeryLongLibraryNameThatExceedsTheSlotX"


@pytest.mark.parametrize("length", [37, 38, 39])
def test_link_pending_library_with_long_name(length: int) -> None:
    """ A name longer than the slot is matched to the truncated slot """
    name = (LONG_LIBRARY_NAME * 2)[:length]
    bytecode = Bytecode("0x00" + placeholder(name))

    deployment = Linker(bytecode).add_pending(name, "0x6000").build()

    assert deployment.libraries_to_deploy == ((name, b"\x60\x00"),)
    linked = deployment.link(name, repeat_byte(3))
    assert linked.contract_bytes() == b"\x00" + b"\x03" * 20


def test_link_resolved_library_with_long_name() -> None:
    bytecode = Bytecode("0x00" + placeholder(LONG_LIBRARY_NAME))

    deployment = Linker(bytecode).add_resolved(LONG_LIBRARY_NAME, repeat_byte(3)).build()

    assert deployment.contract_bytes() == b"\x00" + b"\x03" * 20


def test_link_long_names_sharing_a_slot() -> None:
    bytecode = Bytecode("0x00" + placeholder(LONG_LIBRARY_NAME))

    with pytest.raises(UnusedDependency) as excinfo:
        Linker(bytecode).add_pending(LONG_LIBRARY_NAME, "0x00").add_pending(
            LONG_LIBRARY_NAME + "Y", "0x01"
        ).build()
    assert excinfo.value.name == LONG_LIBRARY_NAME + "Y"


def test_link_library_name_with_trailing_underscore() -> None:
    bytecode = Bytecode("0x00" + placeholder("Lib_"))

    deployment = Linker(bytecode).add_pending("Lib_", "0x6000").build()

    assert deployment.libraries_to_deploy == (("Lib_", b"\x60\x00"),)


def test_link_invalid_library_address() -> None:
    bytecode = Bytecode("0x00" + placeholder("Library0"))
    address = HexAddress(HexStr("0x1234"))

    with pytest.raises(InvalidLibraryAddress) as excinfo:
        Linker(bytecode).add_resolved("Library0", address).build()
    assert excinfo.value.name == "Library0"
    assert excinfo.value.address == address
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_registry_accepts_long_library_names() -> None:
    registry = DependencyRegistry()
    bytecode = Bytecode("0x00" + placeholder(LONG_LIBRARY_NAME))
    registry.declare("Contract", bytecode.undefined_libraries())

    linker = Linker(bytecode, contract_name="Contract", registry=registry)
    deployment = linker.deploy_library(Library(LONG_LIBRARY_NAME, Bytecode("0x00"))).build()

    assert [name for name, _ in deployment.libraries_to_deploy] == [LONG_LIBRARY_NAME]
