"""Mapping between the persisted ``flow.json`` shape and the entity collections.

Every section decodes into ordered collections and encodes back. Contracts are
the interesting case: a single persisted declaration expands into one record
per network, and the records collapse back into the same declaration on save.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from .config import CONFIG, CliConfig
from .crypto import validate_private_key
from .models import (
    Account,
    AccountKey,
    Accounts,
    ConfigError,
    Contract,
    ContractDeployment,
    Contracts,
    Deployment,
    Deployments,
    Emulator,
    Emulators,
    KeyType,
    Network,
    Networks,
    ProjectConfig,
)
from .values import DecodeError, decode_value, encode_value, normalize_address_hex


logger = logging.getLogger(__name__)


class MalformedConfigError(ConfigError):
    pass


class InconsistentContractSourceError(ConfigError):
    pass


class UnrepresentableContractError(ConfigError):
    """Raised when a contract group has no persisted form that decodes back to it."""


SECTIONS = ("emulators", "contracts", "networks", "accounts", "deployments")


@dataclass(frozen=True)
class SimpleContract:
    location: str


@dataclass(frozen=True)
class ComplexContract:
    source: str
    aliases: dict[str, str] = field(default_factory=dict)


ContractEntry = Union[SimpleContract, ComplexContract]


def _expect_dict(raw: Any, what: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise MalformedConfigError(f"{what} must be a JSON object")
    return raw


def _expect_text(raw: Any, what: str) -> str:
    if not isinstance(raw, str) or not raw:
        raise MalformedConfigError(f"{what} must be a non-empty string")
    return raw


# Contracts


def parse_contract_entry(name: str, raw: Any) -> ContractEntry:
    if isinstance(raw, str):
        return SimpleContract(location=_expect_text(raw, f"Contract '{name}' location"))
    if isinstance(raw, dict) and "source" in raw:
        source = _expect_text(raw["source"], f"Contract '{name}' source")
        aliases = _expect_dict(raw.get("aliases", {}), f"Contract '{name}' aliases")
        for network, address in aliases.items():
            _expect_text(address, f"Contract '{name}' alias for network '{network}'")
        return ComplexContract(source=source, aliases=dict(aliases))
    raise MalformedConfigError(
        f"Contract '{name}' must be a location string or an object with a 'source' field"
    )


def expand_contract_entry(name: str, entry: ContractEntry, default_network: str) -> list[Contract]:
    if isinstance(entry, SimpleContract):
        return [Contract(name=name, location=entry.location, network=default_network)]
    if not entry.aliases:
        return [Contract(name=name, location=entry.source, network=default_network)]
    return [
        Contract(name=name, location=entry.source, network=network, alias=address)
        for network, address in entry.aliases.items()
    ]


def collapse_contract_group(name: str, records: list[Contract], default_network: str) -> ContractEntry:
    locations = {record.location for record in records}
    if len(locations) > 1:
        raise InconsistentContractSourceError(
            f"Contract '{name}' has different sources across networks: {', '.join(sorted(locations))}"
        )

    unaliased = [record for record in records if not record.alias]
    if unaliased:
        record = unaliased[0]
        if len(records) > 1:
            raise UnrepresentableContractError(
                f"Contract '{name}' on network '{record.network}' has no alias but other networks alias it; "
                "give it an alias or remove the aliased records"
            )
        if record.network != default_network:
            raise UnrepresentableContractError(
                f"Contract '{name}' on network '{record.network}' needs an alias; "
                f"only the default network '{default_network}' may declare a contract without one"
            )
        return SimpleContract(location=record.location)

    networks = [record.network for record in records]
    if len(set(networks)) != len(networks):
        raise UnrepresentableContractError(f"Contract '{name}' is declared more than once on the same network")
    return ComplexContract(source=records[0].location, aliases={r.network: r.alias for r in records})


def contract_entry_to_json(entry: ContractEntry) -> Any:
    if isinstance(entry, SimpleContract):
        return entry.location
    return {"source": entry.source, "aliases": dict(entry.aliases)}


def transform_contracts_to_config(raw: Any, default_network: str = CONFIG.default_network) -> Contracts:
    contracts = Contracts()
    for name, item in _expect_dict(raw, "contracts").items():
        entry = parse_contract_entry(name, item)
        contracts.extend(expand_contract_entry(name, entry, default_network))
    return contracts


def transform_contracts_to_json(contracts: Contracts, default_network: str = CONFIG.default_network) -> dict[str, Any]:
    groups: dict[str, list[Contract]] = {}
    for contract in contracts:
        groups.setdefault(contract.name, []).append(contract)

    # Collapse every group before emitting so a rejected group fails the whole encode.
    entries = {name: collapse_contract_group(name, records, default_network) for name, records in groups.items()}
    return {name: contract_entry_to_json(entry) for name, entry in entries.items()}


# Networks


def transform_networks_to_config(raw: Any) -> Networks:
    networks = Networks()
    for name, item in _expect_dict(raw, "networks").items():
        if isinstance(item, str):
            networks.append(Network(name=name, host=_expect_text(item, f"Network '{name}' host")))
            continue
        item = _expect_dict(item, f"Network '{name}'")
        key = item.get("key", "")
        if not isinstance(key, str):
            raise MalformedConfigError(f"Network '{name}' key must be a string")
        networks.append(Network(name=name, host=_expect_text(item.get("host"), f"Network '{name}' host"), key=key))
    return networks


def transform_networks_to_json(networks: Networks) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for network in networks:
        if network.key:
            data[network.name] = {"host": network.host, "key": network.key}
        else:
            data[network.name] = network.host
    return data


# Accounts


def _canonical_algo(name: str, raw: Any, choices: tuple[str, ...], what: str) -> str:
    text = str(raw).strip()
    for choice in choices:
        if choice.lower() == text.lower():
            return choice
    raise MalformedConfigError(f"Account '{name}' has unsupported {what}: {raw}")


def _parse_address(name: str, raw: Any, config: CliConfig) -> str:
    text = _expect_text(raw, f"Account '{name}' address")
    if text == "service":
        return config.service_address
    try:
        return normalize_address_hex(text)
    except ValueError as exc:
        raise MalformedConfigError(f"Account '{name}' address is invalid: {text}") from exc


def _hex_key(name: str, private_key: Any, sig_algo: str) -> str:
    text = _expect_text(private_key, f"Account '{name}' private key")
    try:
        return validate_private_key(text, sig_algo)
    except ValueError as exc:
        raise MalformedConfigError(f"Account '{name}' private key is invalid: {exc}") from exc


def _parse_account_key(name: str, raw: Any, config: CliConfig) -> AccountKey:
    if isinstance(raw, str):
        return AccountKey(
            type=KeyType.HEX,
            index=config.default_key_index,
            sig_algo=config.default_sig_algo,
            hash_algo=config.default_hash_algo,
            private_key=_hex_key(name, raw, config.default_sig_algo),
        )

    raw = _expect_dict(raw, f"Account '{name}' key")
    try:
        key_type = KeyType(str(raw.get("type", KeyType.HEX.value)).strip().lower())
    except ValueError as exc:
        raise MalformedConfigError(f"Account '{name}' key type must be 'hex' or 'file'") from exc

    index = raw.get("index", config.default_key_index)
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise MalformedConfigError(f"Account '{name}' key index must be a non-negative integer")

    sig_algo = _canonical_algo(
        name, raw.get("signatureAlgorithm", config.default_sig_algo), config.sig_algos, "signature algorithm"
    )
    hash_algo = _canonical_algo(
        name, raw.get("hashAlgorithm", config.default_hash_algo), config.hash_algos, "hash algorithm"
    )

    if key_type == KeyType.HEX:
        return AccountKey(
            type=key_type,
            index=index,
            sig_algo=sig_algo,
            hash_algo=hash_algo,
            private_key=_hex_key(name, raw.get("privateKey"), sig_algo),
        )
    return AccountKey(
        type=key_type,
        index=index,
        sig_algo=sig_algo,
        hash_algo=hash_algo,
        location=_expect_text(raw.get("location"), f"Account '{name}' key location"),
    )


def transform_accounts_to_config(raw: Any, config: CliConfig = CONFIG) -> Accounts:
    accounts = Accounts()
    for name, item in _expect_dict(raw, "accounts").items():
        item = _expect_dict(item, f"Account '{name}'")
        if "key" not in item:
            raise MalformedConfigError(f"Account '{name}' is missing a key")
        accounts.append(
            Account(
                name=name,
                address=_parse_address(name, item.get("address"), config),
                key=_parse_account_key(name, item["key"], config),
            )
        )
    return accounts


def transform_accounts_to_json(accounts: Accounts) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for account in accounts:
        if account.key.is_default():
            key: Any = account.key.private_key
        else:
            key = account.key.to_dict()
        data[account.name] = {"address": account.address, "key": key}
    return data


# Emulators


def transform_emulators_to_config(raw: Any) -> Emulators:
    emulators = Emulators()
    for name, item in _expect_dict(raw, "emulators").items():
        item = _expect_dict(item, f"Emulator '{name}'")
        port = item.get("port")
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
            raise MalformedConfigError(f"Emulator '{name}' port must be an integer between 1 and 65535")
        service_account = _expect_text(item.get("serviceAccount"), f"Emulator '{name}' serviceAccount")
        emulators.append(Emulator(name=name, port=port, service_account=service_account))
    return emulators


def transform_emulators_to_json(emulators: Emulators) -> dict[str, Any]:
    return {emulator.name: {"port": emulator.port, "serviceAccount": emulator.service_account} for emulator in emulators}


# Deployments


def _parse_contract_deployment(where: str, raw: Any) -> ContractDeployment:
    if isinstance(raw, str):
        return ContractDeployment(name=_expect_text(raw, f"{where} contract name"))
    raw = _expect_dict(raw, f"{where} contract")
    name = _expect_text(raw.get("name"), f"{where} contract name")
    args = raw.get("args", [])
    if not isinstance(args, list):
        raise MalformedConfigError(f"{where} contract '{name}' args must be a list")
    try:
        values = [decode_value(arg) for arg in args]
    except DecodeError as exc:
        raise MalformedConfigError(f"{where} contract '{name}' has invalid args: {exc}") from exc
    return ContractDeployment(name=name, args=values)


def _parse_deployment_contracts(where: str, raw: Any) -> list[ContractDeployment]:
    if not isinstance(raw, list):
        raise MalformedConfigError(f"{where} contracts must be a list")
    return [_parse_contract_deployment(where, item) for item in raw]


def transform_deployments_to_config(raw: Any) -> Deployments:
    deployments = Deployments()

    if isinstance(raw, list):
        for position, item in enumerate(raw):
            where = f"Deployment {position}"
            item = _expect_dict(item, where)
            deployments.add(
                Deployment(
                    network=_expect_text(item.get("network"), f"{where} network"),
                    account=_expect_text(item.get("account"), f"{where} account"),
                    contracts=_parse_deployment_contracts(where, item.get("contracts", [])),
                )
            )
        return deployments

    # Nested form: {network: {account: [name | {name, args}]}}
    for network, accounts in _expect_dict(raw, "deployments").items():
        for account, contracts in _expect_dict(accounts, f"Deployments for network '{network}'").items():
            where = f"Deployment '{network}/{account}'"
            deployments.add(
                Deployment(
                    network=network,
                    account=account,
                    contracts=_parse_deployment_contracts(where, contracts),
                )
            )
    return deployments


def transform_deployments_to_json(deployments: Deployments) -> list[dict[str, Any]]:
    return [
        {
            "network": deployment.network,
            "account": deployment.account,
            "contracts": [
                {"name": contract.name, "args": [encode_value(arg) for arg in contract.args]}
                for contract in deployment.contracts
            ],
        }
        for deployment in deployments
    ]


# Whole document


def transform_json_to_config(data: Any, config: CliConfig = CONFIG) -> ProjectConfig:
    data = _expect_dict(data, "Configuration")
    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        logger.debug("Ignoring unknown configuration keys: %s", ", ".join(unknown))

    return ProjectConfig(
        contracts=transform_contracts_to_config(data.get("contracts", {}), config.default_network),
        accounts=transform_accounts_to_config(data.get("accounts", {}), config),
        networks=transform_networks_to_config(data.get("networks", {})),
        emulators=transform_emulators_to_config(data.get("emulators", {})),
        deployments=transform_deployments_to_config(data.get("deployments", [])),
    )


def transform_config_to_json(project_config: ProjectConfig, config: CliConfig = CONFIG) -> dict[str, Any]:
    sections = {
        "emulators": transform_emulators_to_json(project_config.emulators),
        "contracts": transform_contracts_to_json(project_config.contracts, config.default_network),
        "networks": transform_networks_to_json(project_config.networks),
        "accounts": transform_accounts_to_json(project_config.accounts),
        "deployments": transform_deployments_to_json(project_config.deployments),
    }
    return {name: section for name, section in sections.items() if section}
