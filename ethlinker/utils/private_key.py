import getpass
import json
import logging
import os
import stat
from pathlib import Path
from typing import Any, Dict, Optional

from eth_keyfile import decode_keyfile_json
from eth_utils import decode_hex, is_hex

from ethlinker.utils.type_aliases import PrivateKey

log = logging.getLogger(__name__)


def check_permission_safety(path: Path) -> bool:
    """Check if the file at the given path is safe to read a secret from.

    This checks that group and others have no permissions on the file and that the current user is
    the owner.
    """
    f_stats = os.stat(path)
    return (f_stats.st_mode & (stat.S_IRWXG | stat.S_IRWXO)) == 0 and f_stats.st_uid == os.getuid()


def _read_password(password_path: Optional[Path]) -> str:
    if password_path:
        with open(password_path) as password_file:
            return password_file.readline().strip()
    return getpass.getpass("Enter the private key password: ")


def _decrypt_keystore(keystore: Dict[str, Any], password_path: Optional[Path]) -> PrivateKey:
    password: Any = _read_password(password_path)
    if keystore["crypto"]["kdf"] == "pbkdf2":
        password = password.encode()
    return PrivateKey(decode_keyfile_json(keystore, password))


def get_private_key(key_path: Path, password_path: Optional[Path] = None) -> Optional[PrivateKey]:
    """Read the signing key from a key file

    The file holds either a JSON keystore, decrypted with the password from
    `password_path` or one asked interactively, or the raw hex encoded key.
    Returns None when the key cannot be read safely."""

    if not key_path:
        log.critical(f"key_path has to be something but got {key_path}")
        return None

    if not os.path.exists(key_path):
        log.critical("%s: no such file", key_path)
        return None

    if not check_permission_safety(key_path):
        log.critical("Private key file %s must be readable only by its owner.", key_path)
        return None

    if password_path and not check_permission_safety(password_path):
        log.critical("Password file %s must be readable only by its owner.", password_path)
        return None

    with open(key_path) as keyfile:
        raw_keyfile = keyfile.readline().strip()

        if is_hex(raw_keyfile) and len(decode_hex(raw_keyfile)) == 32:
            log.warning("Private key in raw format. Consider switching to a JSON keystore")
            return PrivateKey(decode_hex(raw_keyfile))

        keyfile.seek(0)
        try:
            return _decrypt_keystore(json.load(keyfile), password_path)
        except (ValueError, KeyError):
            log.critical("Invalid private key format or password!")
            return None
