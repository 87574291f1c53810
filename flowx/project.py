from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import CONFIG, CliConfig
from .config_json import MalformedConfigError, transform_config_to_json, transform_json_to_config
from .crypto import private_key_to_public_key, validate_private_key
from .models import (
    Account,
    AccountKey,
    ConfigError,
    Contract,
    Emulator,
    KeyType,
    Network,
    NotFoundError,
    ProjectConfig,
)
from .values import Value


logger = logging.getLogger(__name__)


@dataclass
class PlannedDeployment:
    contract: Contract
    account: Account
    args: list[Value] = field(default_factory=list)
    # True when the contract already has an alias on the target network.
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract.name,
            "location": self.contract.location,
            "network": self.contract.network,
            "alias": self.contract.alias,
            "account": self.account.name,
            "address": self.account.address,
            "args": [arg.to_dict() for arg in self.args],
            "skipped": self.skipped,
        }


class Project:
    """A loaded project configuration and the queries the commands run against it."""

    def __init__(
        self,
        project_config: ProjectConfig | None = None,
        path: str | Path | None = None,
        config: CliConfig = CONFIG,
    ) -> None:
        state = project_config if project_config is not None else ProjectConfig()
        self.contracts = state.contracts
        self.accounts = state.accounts
        self.networks = state.networks
        self.emulators = state.emulators
        self.deployments = state.deployments
        self.path = Path(path) if path is not None else None
        self.config = config

    @classmethod
    def init(
        cls,
        service_private_key: str,
        path: str | Path | None = None,
        config: CliConfig = CONFIG,
    ) -> "Project":
        project = cls(path=path, config=config)
        for name, host in config.default_networks:
            project.networks.append(Network(name=name, host=host))
        project.emulators.append(
            Emulator(
                name=config.default_emulator_name,
                port=config.default_emulator_port,
                service_account=config.service_account_name,
            )
        )
        try:
            private_key = validate_private_key(service_private_key, config.default_sig_algo)
        except ValueError as exc:
            raise ConfigError(f"Invalid service account key: {exc}") from exc
        project.accounts.append(
            Account(
                name=config.service_account_name,
                address=config.service_address,
                key=AccountKey(
                    type=KeyType.HEX,
                    index=config.default_key_index,
                    sig_algo=config.default_sig_algo,
                    hash_algo=config.default_hash_algo,
                    private_key=private_key,
                ),
            )
        )
        return project

    @classmethod
    def load(cls, path: str | Path, config: CliConfig = CONFIG) -> "Project":
        source = Path(path)
        try:
            with source.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise MalformedConfigError(f"Configuration '{source}' is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise MalformedConfigError(f"Failed to read configuration '{source}': {exc}") from exc

        project = cls(transform_json_to_config(data, config), path=source, config=config)
        logger.debug(
            "Loaded %s: %d contracts, %d accounts, %d networks, %d deployments",
            source,
            len(project.contracts),
            len(project.accounts),
            len(project.networks),
            len(project.deployments),
        )
        return project

    def to_config(self) -> ProjectConfig:
        return ProjectConfig(
            contracts=self.contracts,
            accounts=self.accounts,
            networks=self.networks,
            emulators=self.emulators,
            deployments=self.deployments,
        )

    def to_json(self) -> dict[str, Any]:
        return transform_config_to_json(self.to_config(), self.config)

    def save(self, path: str | Path | None = None) -> Path:
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ConfigError("No configuration path to save to")

        # Encode first so a rejected contract group aborts before the file is touched.
        payload = self.to_json()
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
        self.path = target
        logger.info("Configuration saved to %s", target)
        return target

    @property
    def base_dir(self) -> Path:
        return self.path.parent if self.path is not None else Path(".")

    def network_for(self, name: str) -> Network:
        return self.networks.by_name(name)

    def contract_for_network(self, name: str, network: str) -> Contract:
        """Record used to deploy or import ``name`` on ``network``.

        Falls back to the contract's source with no alias when the contract is
        not declared for that network.
        """
        try:
            return self.contracts.by_name_and_network(name, network)
        except NotFoundError:
            source = self.contracts.by_name(name)
        return Contract(name=name, location=source.location, network=network)

    def aliases_for_network(self, network: str) -> dict[str, str]:
        return {contract.name: contract.alias for contract in self.contracts.by_network(network) if contract.alias}

    def deployment_plan(self, network: str) -> list[PlannedDeployment]:
        plan: list[PlannedDeployment] = []
        for deployment in self.deployments.by_network(network):
            account = self.accounts.by_name(deployment.account)
            for entry in deployment.contracts:
                contract = self.contract_for_network(entry.name, network)
                skipped = bool(contract.alias)
                if skipped:
                    logger.info(
                        "Skipping %s on %s: already deployed at %s", contract.name, network, contract.alias
                    )
                plan.append(PlannedDeployment(contract=contract, account=account, args=list(entry.args), skipped=skipped))
        return plan

    def emulator_service_account(self, emulator_name: str | None = None) -> Account:
        if emulator_name is None:
            emulator = self.emulators.default()
        else:
            emulator = self.emulators.by_name(emulator_name)
        return self.accounts.by_name(emulator.service_account)

    def account_private_key(self, name: str) -> str:
        return self.accounts.by_name(name).key.resolve_private_key(self.base_dir)

    def account_public_key(self, name: str) -> str:
        account = self.accounts.by_name(name)
        private_key = account.key.resolve_private_key(self.base_dir)
        return private_key_to_public_key(private_key, account.key.sig_algo).hex()
