"""
A simple Python script to link compiled contracts and sign their deployment.
"""
import json
import logging
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import click
from click import Context, IntRange, Option, Parameter
from eth_typing.evm import ChecksumAddress
from eth_utils import encode_hex, is_address, to_checksum_address

from ethlinker.constants import DEFAULT_GAS_LIMIT, DEFAULT_GAS_PRICE_GWEI
from ethlinker.contract_manager import ContractManager, ContractManagerLoadError
from ethlinker.deploy.contract_deployer import ContractDeployer
from ethlinker.linker import LinkerError
from ethlinker.utils.private_key import get_private_key
from ethlinker.utils.type_aliases import ChainID

LOG = getLogger(__name__)


def validate_address(
    _: Context, _param: Union[Option, Parameter], value: Optional[str]
) -> Optional[ChecksumAddress]:
    if not value:
        return None
    if not is_address(value):
        raise click.BadParameter("must be a valid ethereum address")
    return to_checksum_address(value)


def validate_libraries(
    ctx: Context, param: Union[Option, Parameter], value: Sequence[str]
) -> Dict[str, ChecksumAddress]:
    """ Parses repeated NAME=ADDRESS options into a mapping """
    libraries: Dict[str, ChecksumAddress] = {}
    for entry in value:
        name, separator, address = entry.partition("=")
        if not separator or not name:
            raise click.BadParameter(f"{entry!r} is not of the form NAME=ADDRESS")
        checksum_address = validate_address(ctx, param, address)
        if checksum_address is None:
            raise click.BadParameter(f"no address given for library {name}")
        libraries[name] = checksum_address
    return libraries


def validate_arguments(
    _: Context, _param: Union[Option, Parameter], value: str
) -> Tuple[Any, ...]:
    try:
        arguments = json.loads(value)
    except json.JSONDecodeError as ex:
        raise click.BadParameter(f"must be a JSON array: {ex}") from ex
    if not isinstance(arguments, list):
        raise click.BadParameter("must be a JSON array")
    return tuple(arguments)


@click.group()
def main() -> int:
    pass


@main.command()
@click.option("--private-key", required=True, help="Path to a private key store.")
@click.option("--password-file", default=None, help="Path to the private key store password.")
@click.option(
    "--artifacts",
    required=True,
    type=click.Path(exists=True),
    help="Compiled artifact JSON file or a directory of artifacts.",
)
@click.option("--contract", "contract_name", required=True, help="Name of the contract.")
@click.option(
    "--args",
    "constructor_arguments",
    default="[]",
    callback=validate_arguments,
    help="Constructor arguments as a JSON array.",
)
@click.option(
    "--library",
    "libraries",
    multiple=True,
    callback=validate_libraries,
    help="Already deployed library as NAME=ADDRESS. Can be repeated.",
)
@click.option(
    "--deploy-library",
    "deploy_libraries",
    multiple=True,
    help="Library from the artifacts to deploy with the contract. Can be repeated.",
)
@click.option("--nonce", default=0, type=IntRange(min=0), help="Nonce of the first transaction.")
@click.option(
    "--gas-price",
    default=DEFAULT_GAS_PRICE_GWEI,
    type=IntRange(min=1),
    help="Gas price to use in gwei",
)
@click.option("--gas-limit", default=DEFAULT_GAS_LIMIT, type=IntRange(min=1))
@click.option(
    "--chain-id",
    default=None,
    type=IntRange(min=0),
    help="Chain ID for replay protection. Omit to sign without it.",
)
def prepare(
    private_key: str,
    password_file: Optional[str],
    artifacts: str,
    contract_name: str,
    constructor_arguments: Tuple[Any, ...],
    libraries: Dict[str, ChecksumAddress],
    deploy_libraries: Tuple[str, ...],
    nonce: int,
    gas_price: int,
    gas_limit: int,
    chain_id: Optional[int],
) -> None:
    """Link a contract and print the signed raw transactions deploying it."""
    logging.basicConfig(level=logging.DEBUG)

    private_key_bytes = get_private_key(
        Path(private_key).expanduser(),
        Path(password_file).expanduser() if password_file else None,
    )
    if not private_key_bytes:
        raise RuntimeError("Could not access the private key.")

    try:
        contract_manager = ContractManager(Path(artifacts))
    except ContractManagerLoadError as ex:
        raise click.ClickException(str(ex)) from ex

    deployer = ContractDeployer(
        private_key=private_key_bytes,
        gas_limit=gas_limit,
        gas_price=gas_price,
        chain_id=ChainID(chain_id) if chain_id is not None else None,
    )
    LOG.info(f"Deployer address is {deployer.owner}")

    try:
        prepared = deployer.prepare_contract(
            contract_manager=contract_manager,
            contract_name=contract_name,
            nonce=nonce,
            args=constructor_arguments,
            libraries=libraries,
            deploy_libraries=deploy_libraries,
        )
    except (LinkerError, KeyError) as ex:
        raise click.ClickException(str(ex)) from ex

    output = [
        {
            "name": transaction.name,
            "nonce": transaction.nonce,
            "address": transaction.address,
            "raw_transaction": encode_hex(transaction.raw_transaction),
        }
        for transaction in prepared
    ]
    click.echo(json.dumps(output, indent=4))


if __name__ == "__main__":
    main()
