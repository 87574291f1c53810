from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .config import CONFIG
from .crypto import validate_private_key
from .values import Value


class ConfigError(Exception):
    pass


class NotFoundError(ConfigError):
    pass


class KeyType(str, Enum):
    HEX = "hex"
    FILE = "file"


@dataclass
class Network:
    name: str
    host: str
    # Public network key securing the connection; empty means insecure.
    key: str = ""

    def to_dict(self) -> dict[str, str]:
        data = {"name": self.name, "host": self.host}
        if self.key:
            data["key"] = self.key
        return data


@dataclass
class AccountKey:
    type: KeyType
    index: int = CONFIG.default_key_index
    sig_algo: str = CONFIG.default_sig_algo
    hash_algo: str = CONFIG.default_hash_algo
    private_key: str = ""
    location: str = ""

    def is_default(self) -> bool:
        return (
            self.type == KeyType.HEX
            and self.index == CONFIG.default_key_index
            and self.sig_algo == CONFIG.default_sig_algo
            and self.hash_algo == CONFIG.default_hash_algo
        )

    def resolve_private_key(self, base_dir: str | Path = ".") -> str:
        """Hex private key, read from ``location`` for file keys.

        A key file holds the hex key as text, optionally ``0x`` prefixed. Relative
        locations resolve against ``base_dir``.
        """
        if self.type == KeyType.HEX:
            return self.private_key
        path = Path(self.location)
        if not path.is_absolute():
            path = Path(base_dir) / path
        try:
            text = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Failed to read key file '{path}': {exc}") from exc
        try:
            return validate_private_key(text, self.sig_algo)
        except ValueError as exc:
            raise ConfigError(f"Key file '{path}' does not hold a valid private key: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "index": self.index,
            "signatureAlgorithm": self.sig_algo,
            "hashAlgorithm": self.hash_algo,
        }
        if self.type == KeyType.HEX:
            data["privateKey"] = self.private_key
        else:
            data["location"] = self.location
        return data


@dataclass
class Account:
    name: str
    # 16 lowercase hex characters, no 0x prefix.
    address: str
    key: AccountKey

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "address": self.address, "key": self.key.to_dict()}


@dataclass
class Contract:
    name: str
    # Source path; also the location compiled for type extraction on aliased networks.
    location: str
    network: str
    # Address already holding the contract on this network; deployment is skipped.
    alias: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "location": self.location,
            "network": self.network,
            "alias": self.alias,
        }


@dataclass
class ContractDeployment:
    name: str
    args: list[Value] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "args": [arg.to_dict() for arg in self.args]}


@dataclass
class Deployment:
    network: str
    account: str
    contracts: list[ContractDeployment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "network": self.network,
            "account": self.account,
            "contracts": [contract.to_dict() for contract in self.contracts],
        }


@dataclass
class Emulator:
    name: str
    port: int
    service_account: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "port": self.port, "serviceAccount": self.service_account}


class Contracts(list):
    """Contract records, one per (name, network), in declaration order."""

    def by_name(self, name: str) -> Contract:
        # First match wins when the name is declared on several networks;
        # callers that care about the network must use by_name_and_network.
        for contract in self:
            if contract.name == name:
                return contract
        raise NotFoundError(f"Contract '{name}' not found in configuration")

    def by_name_and_network(self, name: str, network: str) -> Contract:
        for contract in self:
            if contract.name == name and contract.network == network:
                return contract
        raise NotFoundError(f"Contract '{name}' not found for network '{network}'")

    def by_network(self, network: str) -> list[Contract]:
        return [contract for contract in self if contract.network == network]

    def names(self) -> list[str]:
        seen: list[str] = []
        for contract in self:
            if contract.name not in seen:
                seen.append(contract.name)
        return seen

    def add_or_update(self, contract: Contract) -> None:
        for i, existing in enumerate(self):
            if existing.name == contract.name and existing.network == contract.network:
                self[i] = contract
                return
        self.append(contract)


class Accounts(list):
    def by_name(self, name: str) -> Account:
        for account in self:
            if account.name == name:
                return account
        raise NotFoundError(f"Account '{name}' not found in configuration")

    def names(self) -> list[str]:
        return [account.name for account in self]

    def add_or_update(self, account: Account) -> None:
        for i, existing in enumerate(self):
            if existing.name == account.name:
                self[i] = account
                return
        self.append(account)


class Networks(list):
    def by_name(self, name: str) -> Network:
        for network in self:
            if network.name == name:
                return network
        raise NotFoundError(f"Network '{name}' not found in configuration")

    def add_or_update(self, network: Network) -> None:
        for i, existing in enumerate(self):
            if existing.name == network.name:
                self[i] = network
                return
        self.append(network)


class Emulators(list):
    def by_name(self, name: str) -> Emulator:
        for emulator in self:
            if emulator.name == name:
                return emulator
        raise NotFoundError(f"Emulator '{name}' not found in configuration")

    def default(self) -> Emulator:
        if not self:
            raise NotFoundError("No emulator configured")
        for emulator in self:
            if emulator.name == CONFIG.default_emulator_name:
                return emulator
        return self[0]


class Deployments(list):
    """Deployment blocks in file order.

    Several blocks may target the same (network, account) pair; they are kept
    apart and returned together, never merged.
    """

    def by_account_and_network(self, account: str, network: str) -> list[Deployment]:
        return [d for d in self if d.account == account and d.network == network]

    def by_network(self, network: str) -> list[Deployment]:
        return [d for d in self if d.network == network]

    def add(self, deployment: Deployment) -> None:
        self.append(deployment)


@dataclass
class ProjectConfig:
    contracts: Contracts = field(default_factory=Contracts)
    accounts: Accounts = field(default_factory=Accounts)
    networks: Networks = field(default_factory=Networks)
    emulators: Emulators = field(default_factory=Emulators)
    deployments: Deployments = field(default_factory=Deployments)
