from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from flowx.arguments import ArgumentError, get_authorizer_count, parse_arguments_json, parse_arguments_without_type
from flowx.config import CONFIG
from flowx.crypto import validate_private_key
from flowx.models import Account, AccountKey, ConfigError, Contract, KeyType
from flowx.project import Project
from flowx.values import normalize_address_hex


LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "error": logging.ERROR,
}


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config_path or CONFIG.config_file_name)


def _load_project(args: argparse.Namespace) -> Project:
    return Project.load(_config_path(args))


def _read_code(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"Failed to read code file '{path}': {exc}") from exc


def cmd_init(args: argparse.Namespace) -> None:
    path = _config_path(args)
    if path.exists() and not args.force:
        raise ConfigError(f"Configuration '{path}' already exists. Use --force to overwrite it.")

    project = Project.init(args.service_key, path=path)
    project.save()
    print(f"Configuration initialized: {path}")
    _print_json(
        {
            "service_account": CONFIG.service_account_name,
            "address": CONFIG.service_address,
            "networks": [network.name for network in project.networks],
        }
    )


def cmd_config_show(args: argparse.Namespace) -> None:
    _print_json(_load_project(args).to_json())


def cmd_contracts_get(args: argparse.Namespace) -> None:
    project = _load_project(args)
    if args.network:
        contract = project.contracts.by_name_and_network(args.name, args.network)
    else:
        contract = project.contracts.by_name(args.name)
    _print_json(contract.to_dict())


def cmd_contracts_list(args: argparse.Namespace) -> None:
    project = _load_project(args)
    _print_json([contract.to_dict() for contract in project.contracts.by_network(args.network)])


def cmd_contracts_add(args: argparse.Namespace) -> None:
    project = _load_project(args)
    default_network = project.config.default_network
    network = args.network or default_network
    if args.alias and not args.network:
        raise ConfigError("--alias requires --network")
    if network != default_network and not args.alias:
        raise ConfigError(
            f"Contract '{args.name}' needs --alias on network '{network}'; "
            f"only '{default_network}' may declare a contract without one"
        )

    project.contracts.add_or_update(
        Contract(name=args.name, location=args.source, network=network, alias=args.alias or "")
    )
    project.save()
    print(f"Contract '{args.name}' saved for network '{network}'")


def cmd_accounts_get(args: argparse.Namespace) -> None:
    project = _load_project(args)
    data = project.accounts.by_name(args.name).to_dict()
    # Never echo key material.
    data["key"].pop("privateKey", None)
    data["public_key"] = project.account_public_key(args.name)
    _print_json(data)


def cmd_accounts_add(args: argparse.Namespace) -> None:
    project = _load_project(args)
    try:
        address = normalize_address_hex(args.address)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    if args.key_hex:
        try:
            private_key = validate_private_key(args.key_hex, args.sig_algo)
        except ValueError as exc:
            raise ConfigError(f"Invalid private key: {exc}") from exc
        key = AccountKey(
            type=KeyType.HEX,
            index=args.index,
            sig_algo=args.sig_algo,
            hash_algo=args.hash_algo,
            private_key=private_key,
        )
    else:
        key = AccountKey(
            type=KeyType.FILE,
            index=args.index,
            sig_algo=args.sig_algo,
            hash_algo=args.hash_algo,
            location=args.key_file,
        )

    project.accounts.add_or_update(Account(name=args.name, address=address, key=key))
    project.save()
    print(f"Account '{args.name}' saved with address {address}")


def cmd_networks_get(args: argparse.Namespace) -> None:
    _print_json(_load_project(args).network_for(args.name).to_dict())


def cmd_deployments_get(args: argparse.Namespace) -> None:
    project = _load_project(args)
    blocks = project.deployments.by_account_and_network(args.account, args.network)
    _print_json([block.to_dict() for block in blocks])


def cmd_deployments_plan(args: argparse.Namespace) -> None:
    project = _load_project(args)
    _print_json([planned.to_dict() for planned in project.deployment_plan(args.network)])


def cmd_args_parse(args: argparse.Namespace) -> None:
    if args.args_json is not None:
        if args.args:
            raise ArgumentError("Positional arguments and --args-json are mutually exclusive")
        values = parse_arguments_json(args.args_json)
    else:
        values = parse_arguments_without_type(args.code, _read_code(args.code), args.args)
    _print_json([value.to_dict() for value in values])


def cmd_authorizers(args: argparse.Namespace) -> None:
    print(get_authorizer_count(args.code, _read_code(args.code)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="flowx project configuration and argument tool")
    parser.add_argument("-f", "--config-path", help=f"Project configuration file (default: {CONFIG.config_file_name})")
    parser.add_argument("--log", choices=["debug", "info", "error", "none"], default="error", help="Log level")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Write a default project configuration")
    init.add_argument("--service-key", required=True, help="Hex private key of the emulator service account")
    init.add_argument("--force", action="store_true", help="Overwrite an existing configuration")
    init.set_defaults(func=cmd_init)

    config_show = sub.add_parser("config-show", help="Print the configuration")
    config_show.set_defaults(func=cmd_config_show)

    contracts_get = sub.add_parser("contracts-get", help="Show a contract")
    contracts_get.add_argument("--name", required=True, help="Contract name")
    contracts_get.add_argument("--network", help="Network; without it the first declaration wins")
    contracts_get.set_defaults(func=cmd_contracts_get)

    contracts_list = sub.add_parser("contracts-list", help="List contracts declared for a network")
    contracts_list.add_argument("--network", required=True, help="Network name")
    contracts_list.set_defaults(func=cmd_contracts_list)

    contracts_add = sub.add_parser("contracts-add", help="Add or update a contract")
    contracts_add.add_argument("--name", required=True, help="Contract name")
    contracts_add.add_argument("--source", required=True, help="Contract source location")
    contracts_add.add_argument("--network", help=f"Network (default: {CONFIG.default_network})")
    contracts_add.add_argument("--alias", help="Address already holding the contract on --network")
    contracts_add.set_defaults(func=cmd_contracts_add)

    accounts_get = sub.add_parser("accounts-get", help="Show an account and its public key")
    accounts_get.add_argument("--name", required=True, help="Account name")
    accounts_get.set_defaults(func=cmd_accounts_get)

    accounts_add = sub.add_parser("accounts-add", help="Add or update an account")
    accounts_add.add_argument("--name", required=True, help="Account name")
    accounts_add.add_argument("--address", required=True, help="Account address")
    key_source = accounts_add.add_mutually_exclusive_group(required=True)
    key_source.add_argument("--key-hex", help="Hex private key stored in the configuration")
    key_source.add_argument("--key-file", help="Key file path, relative to the configuration")
    accounts_add.add_argument("--index", type=int, default=CONFIG.default_key_index, help="Key index")
    accounts_add.add_argument("--sig-algo", choices=list(CONFIG.sig_algos), default=CONFIG.default_sig_algo)
    accounts_add.add_argument("--hash-algo", choices=list(CONFIG.hash_algos), default=CONFIG.default_hash_algo)
    accounts_add.set_defaults(func=cmd_accounts_add)

    networks_get = sub.add_parser("networks-get", help="Show a network")
    networks_get.add_argument("--name", required=True, help="Network name")
    networks_get.set_defaults(func=cmd_networks_get)

    deployments_get = sub.add_parser("deployments-get", help="Show deployment blocks for an account")
    deployments_get.add_argument("--network", required=True, help="Network name")
    deployments_get.add_argument("--account", required=True, help="Account name")
    deployments_get.set_defaults(func=cmd_deployments_get)

    deployments_plan = sub.add_parser("deployments-plan", help="Resolve every deployment on a network")
    deployments_plan.add_argument("--network", required=True, help="Network name")
    deployments_plan.set_defaults(func=cmd_deployments_plan)

    args_parse = sub.add_parser("args-parse", help="Coerce arguments against a script, transaction or contract")
    args_parse.add_argument("--code", required=True, help="Source file")
    args_parse.add_argument("--args-json", help="Arguments as a JSON list of {type, value} objects")
    args_parse.add_argument("args", nargs="*", help="Positional arguments")
    args_parse.set_defaults(func=cmd_args_parse)

    authorizers = sub.add_parser("authorizers", help="Count the authorizers a transaction needs")
    authorizers.add_argument("--code", required=True, help="Transaction source file")
    authorizers.set_defaults(func=cmd_authorizers)

    return parser


def configure_logging(level: str) -> None:
    if level == "none":
        logging.disable(logging.CRITICAL)
        return
    logging.basicConfig(level=LOG_LEVELS[level], format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log)

    try:
        args.func(args)
    except (ConfigError, ValueError) as exc:
        print(f"Error: {exc}")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
