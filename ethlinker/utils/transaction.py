"""Signing of legacy transactions into raw, broadcast ready bytes."""
import logging
from typing import Any, List, NamedTuple, Optional

import rlp
from eth_typing import ChecksumAddress, HexAddress
from eth_utils import encode_hex, keccak, to_canonical_address, to_checksum_address
from hexbytes import HexBytes

from ethlinker.constants import V_OFFSET_EIP155, V_OFFSET_LEGACY
from ethlinker.utils.signature import sign_recoverable
from ethlinker.utils.type_aliases import ChainID, PrivateKey

log = logging.getLogger(__name__)


class TransactionData(NamedTuple):
    """ Fields of a transaction to sign

    `to` is None for contract creation; `data` holds the call data or, for
    contract creation, the init code.
    """

    nonce: int
    gas_price: int
    gas: int
    to: Optional[HexAddress]
    value: int
    data: bytes = b""

    def sign(self, private_key: PrivateKey, chain_id: Optional[ChainID] = None) -> HexBytes:
        return sign_transaction(self, private_key, chain_id)


def _common_fields(transaction: TransactionData) -> List[Any]:
    recipient = to_canonical_address(transaction.to) if transaction.to is not None else b""
    return [
        transaction.nonce,
        transaction.gas_price,
        transaction.gas,
        recipient,
        transaction.value,
        bytes(transaction.data),
    ]


def encode_unsigned(transaction: TransactionData, chain_id: Optional[ChainID] = None) -> bytes:
    """ RLP encodes the transaction fields that get signed

    With a chain id the EIP-155 form with 9 fields is used.
    """
    fields = _common_fields(transaction)
    if chain_id is not None:
        fields.extend([chain_id, 0, 0])
    return rlp.encode(fields)


def transaction_hash(transaction: TransactionData, chain_id: Optional[ChainID] = None) -> bytes:
    return keccak(encode_unsigned(transaction, chain_id))


def add_chain_replay_protection(recovery_id: int, chain_id: Optional[ChainID] = None) -> int:
    """Encodes the chain id into v as described in EIP-155."""
    if chain_id is None:
        return recovery_id + V_OFFSET_LEGACY
    return recovery_id + V_OFFSET_EIP155 + chain_id * 2


def sign_transaction(
    transaction: TransactionData, private_key: PrivateKey, chain_id: Optional[ChainID] = None
) -> HexBytes:
    """Signs a transaction and returns the RLP encoded raw transaction."""
    message_hash = transaction_hash(transaction, chain_id)
    recovery_id, r, s = sign_recoverable(private_key, message_hash)
    v = add_chain_replay_protection(recovery_id, chain_id)
    log.debug(f"Signed transaction hash={encode_hex(message_hash)} v={v}")

    return HexBytes(rlp.encode(_common_fields(transaction) + [v, r, s]))


def contract_address(sender: HexAddress, nonce: int) -> ChecksumAddress:
    """Address of the contract created by `sender` in its transaction with `nonce`."""
    return to_checksum_address(keccak(rlp.encode([to_canonical_address(sender), nonce]))[12:])
