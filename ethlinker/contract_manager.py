"""ContractManager knows the compiled artifacts of contracts and libraries."""
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, TypedDict

from eth_typing import ABI
from eth_typing.evm import ChecksumAddress
from eth_utils import to_checksum_address

from ethlinker.utils.bytecode import Bytecode, BytecodeError
from ethlinker.utils.file_ops import load_json_from_path

if TYPE_CHECKING:
    # pylint: disable=cyclic-import
    from ethlinker.linker import DependencyRegistry


# Classes for static type checking of truffle artifacts.


NetworkDeployment = TypedDict(
    "NetworkDeployment", {"address": ChecksumAddress, "transactionHash": str}, total=False
)


class Artifact(TypedDict):
    contractName: str
    abi: ABI
    bytecode: str
    networks: Dict[str, NetworkDeployment]


class ContractManagerLoadError(RuntimeError):
    """Failure in loading artifacts."""


def _load_artifact(path: Path) -> Artifact:
    try:
        content = load_json_from_path(path)
    except ValueError as ex:
        raise ContractManagerLoadError(f"Can't load compiled artifact: {ex}") from ex
    if content is None:
        raise ContractManagerLoadError(f"Artifact file {path} does not exist.")
    try:
        artifact = Artifact(
            contractName=content.get("contractName", path.stem),
            abi=content["abi"],
            bytecode=content["bytecode"],
            networks=content.get("networks", {}),
        )
    except KeyError as ex:
        raise ContractManagerLoadError(f"Artifact {path} has unexpected format: {ex}") from ex
    try:
        Bytecode(artifact["bytecode"])
    except BytecodeError as ex:
        raise ContractManagerLoadError(f"Artifact {path} has invalid bytecode: {ex}") from ex
    return artifact


class ContractManager:
    """ ContractManager holds compiled artifacts

    Provides access to the ABI, the bytecode and the known deployments.
    """

    def __init__(self, path: Path) -> None:
        """Params:
            path: path to an artifact JSON file or to a directory of them
        """
        files = sorted(path.glob("*.json")) if path.is_dir() else [path]
        self.contracts: Dict[str, Artifact] = {}
        for artifact_path in files:
            artifact = _load_artifact(artifact_path)
            self.contracts[artifact["contractName"]] = artifact
        if not self.contracts:
            raise ContractManagerLoadError(f"Cannot find compiled artifacts in {path}.")

    def get_contract(self, contract_name: str) -> Artifact:
        """ Return the artifact of the given contract. """
        try:
            return self.contracts[contract_name]
        except KeyError:
            raise KeyError(
                f"Artifacts do not contain {contract_name}, "
                f"known contracts: {', '.join(sorted(self.contracts))}"
            ) from None

    def has_contract(self, contract_name: str) -> bool:
        return contract_name in self.contracts

    def get_contract_abi(self, contract_name: str) -> ABI:
        """ Returns the ABI for a given contract. """
        return self.get_contract(contract_name)["abi"]

    def get_bytecode(self, contract_name: str) -> Bytecode:
        return Bytecode(self.get_contract(contract_name)["bytecode"])

    def get_constructor_argument_types(self, contract_name: str) -> List[Any]:
        abi = self.get_contract_abi(contract_name=contract_name)
        constructors = [f for f in abi if f["type"] == "constructor"]
        if not constructors:
            return []
        return [arg["type"] for arg in constructors[0]["inputs"]]

    def get_deployed_address(
        self, contract_name: str, network_id: str
    ) -> Optional[ChecksumAddress]:
        """ The address the contract is deployed at on a network, if known. """
        network = self.get_contract(contract_name)["networks"].get(network_id)
        if not network or "address" not in network:
            return None
        return to_checksum_address(network["address"])

    def dependency_registry(self) -> "DependencyRegistry":
        """ Declares every contract as depending on the libraries its bytecode references. """
        # Import locally, the linker types artifacts with this module
        from ethlinker.linker import DependencyRegistry

        registry = DependencyRegistry()
        for name in self.contracts:
            registry.declare(name, self.get_bytecode(name).undefined_libraries())
        return registry
