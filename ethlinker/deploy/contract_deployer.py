from logging import getLogger
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from eth_typing import ChecksumAddress, HexAddress
from eth_utils import encode_hex
from eth_utils.units import units
from hexbytes import HexBytes

from ethlinker.contract_manager import ContractManager
from ethlinker.linker import Deployment, Library, LibraryInstance, Linker
from ethlinker.utils.signature import private_key_to_address
from ethlinker.utils.transaction import TransactionData, contract_address
from ethlinker.utils.type_aliases import ChainID, PrivateKey, Wei

LOG = getLogger(__name__)


class PreparedTransaction(NamedTuple):
    """A signed contract creation, ready for eth_sendRawTransaction."""

    name: str
    nonce: int
    address: ChecksumAddress
    raw_transaction: HexBytes


class ContractDeployer:
    """ Signs the transactions of a deployment plan

    Nothing is sent: the addresses of the libraries are derived from the
    deployer address and the nonces, so the whole plan is signed offline.
    """

    def __init__(
        self,
        private_key: PrivateKey,
        gas_limit: int,
        gas_price: int,
        chain_id: Optional[ChainID] = None,
    ):
        self.private_key = private_key
        self.owner = private_key_to_address(private_key)
        self.gas_limit = gas_limit
        self.gas_price = Wei(gas_price * int(units["gwei"]))
        self.chain_id = chain_id

    def sign_deployment(self, name: str, data: bytes, nonce: int) -> PreparedTransaction:
        transaction = TransactionData(
            nonce=nonce,
            gas_price=self.gas_price,
            gas=self.gas_limit,
            to=None,
            value=0,
            data=data,
        )
        raw_transaction = transaction.sign(self.private_key, self.chain_id)
        address = contract_address(self.owner, nonce)
        LOG.info(f"{name} address: {address}. Nonce: {nonce}")
        LOG.debug(f"Signed deployment of {name}: {encode_hex(raw_transaction)}")
        return PreparedTransaction(
            name=name, nonce=nonce, address=address, raw_transaction=raw_transaction
        )

    def prepare(
        self, deployment: Deployment, nonce: int, contract_name: str = "contract"
    ) -> List[PreparedTransaction]:
        """ Signs the libraries of the plan and then the contract, with consecutive nonces """
        prepared: List[PreparedTransaction] = []
        for library_name, library_code in deployment.libraries_to_deploy:
            library_transaction = self.sign_deployment(library_name, library_code, nonce)
            deployment = deployment.link(library_name, library_transaction.address)
            prepared.append(library_transaction)
            nonce += 1

        prepared.append(self.sign_deployment(contract_name, deployment.contract_bytes(), nonce))
        return prepared

    def prepare_contract(
        self,
        contract_manager: ContractManager,
        contract_name: str,
        nonce: int,
        args: Optional[Sequence[Any]] = None,
        libraries: Optional[Dict[str, HexAddress]] = None,
        deploy_libraries: Optional[Sequence[str]] = None,
    ) -> List[PreparedTransaction]:
        """ Links a contract from the artifacts and signs its deployment

        Args:
            libraries: names and addresses of libraries that are already deployed
            deploy_libraries: names of library artifacts to deploy with the contract
        """
        linker = Linker.from_artifact(
            contract_manager.get_contract(contract_name),
            args=args or [],
            registry=contract_manager.dependency_registry(),
        )
        for library_name, library_address in (libraries or {}).items():
            linker.library(LibraryInstance(library_name, library_address))
        for library_name in deploy_libraries or []:
            library_bytecode = contract_manager.get_bytecode(library_name)
            linker.deploy_library(Library(library_name, library_bytecode))

        return self.prepare(linker.build(), nonce=nonce, contract_name=contract_name)
