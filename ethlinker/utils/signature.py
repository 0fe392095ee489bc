from typing import Tuple, Union

from coincurve import PrivateKey, PublicKey
from eth_typing import ChecksumAddress, HexStr
from eth_utils import keccak, to_bytes, to_checksum_address

from ethlinker.utils.type_aliases import PrivateKey as EthlinkerPrivateKey


def sign_recoverable(privkey: EthlinkerPrivateKey, msg_hash: bytes) -> Tuple[int, int, int]:
    """Signs a 32 byte hash and returns the recovery id together with r and s."""
    if not isinstance(msg_hash, bytes):
        raise TypeError("sign_recoverable(): msg_hash is not an instance of bytes")
    if len(msg_hash) != 32:
        raise ValueError("sign_recoverable(): msg_hash has to be exactly 32 bytes")
    if not isinstance(privkey, bytes):
        raise TypeError("sign_recoverable(): privkey is not an instance of bytes")
    if len(privkey) != 32:
        raise ValueError("sign_recoverable(): privkey has to be exactly 32 bytes")

    pk = PrivateKey(privkey)
    sig: bytes = pk.sign_recoverable(msg_hash, hasher=None)
    assert len(sig) == 65

    pub = pk.public_key
    recovered = PublicKey.from_signature_and_message(sig, msg_hash, hasher=None)
    assert pub == recovered

    recovery_id = sig[64]
    assert recovery_id in (0, 1)
    r = int.from_bytes(sig[:32], byteorder="big")
    s = int.from_bytes(sig[32:64], byteorder="big")
    return recovery_id, r, s


def private_key_to_address(
    private_key: Union[PrivateKey, EthlinkerPrivateKey, bytes, str]
) -> ChecksumAddress:
    """Converts a private key to an Ethereum address."""
    if isinstance(private_key, str):
        pk = PrivateKey(to_bytes(hexstr=HexStr(private_key)))
    elif isinstance(private_key, bytes):
        pk = PrivateKey(private_key)
    else:
        pk = private_key

    return public_key_to_address(pk.public_key)


def public_key_to_address(public_key: Union[PublicKey, bytes]) -> ChecksumAddress:
    """Converts a public key to an Ethereum address."""
    if isinstance(public_key, PublicKey):
        public_key = public_key.format(compressed=False)
    assert isinstance(public_key, bytes)
    return to_checksum_address(keccak(public_key[1:])[-20:])
