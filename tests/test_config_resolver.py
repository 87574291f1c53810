from __future__ import annotations

import unittest

from flowx.config import CONFIG
from flowx.models import (
    Account,
    AccountKey,
    Accounts,
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
    NotFoundError,
    ProjectConfig,
)


KEY_SERVICE = "dd72967fd2bd75234ae9037dd4694c1f00baad63a10c35172bf65fbb8ad74b47"
KEY_ACCOUNT_2 = "388e3fbdc654b765942610679bb3a66b74212149ab9482187067ee116d9a8118"
KEY_ACCOUNT_4 = "27bbeba308e501f8485ddaab77e285c0bc0d611096a79b4f0b4ccc927c6dbf04"
TESTNET_KEY = (
    "5000676131ad3e22d853a3f75a5b5d0db4236d08dd6612e2baad771014b5266a"
    "242bccecc3522ff7207ac357dbe4f225c709d9b273ac484fed5d13976a39bdcd"
)
MARKET = "./cadence/kittyItemsMarket/contracts/KittyItemsMarket.cdc"


def _hex_key(private_key: str) -> AccountKey:
    return AccountKey(type=KeyType.HEX, private_key=private_key)


def _deployment(network: str, account: str, *names: str) -> Deployment:
    return Deployment(network=network, account=account, contracts=[ContractDeployment(name) for name in names])


def generate_complex_config() -> ProjectConfig:
    return ProjectConfig(
        emulators=Emulators([Emulator(name="default", port=9000, service_account="emulator-account")]),
        contracts=Contracts(
            [
                Contract("NonFungibleToken", "../hungry-kitties/cadence/contracts/NonFungibleToken.cdc", "emulator"),
                Contract("FungibleToken", "../hungry-kitties/cadence/contracts/FungibleToken.cdc", "emulator"),
                Contract("Kibble", "./cadence/kibble/contracts/Kibble.cdc", "emulator"),
                Contract("KittyItems", "./cadence/kittyItems/contracts/KittyItems.cdc", "emulator"),
                Contract("KittyItemsMarket", MARKET, "emulator"),
                Contract("KittyItemsMarket", MARKET, "testnet", alias="0x123123123"),
            ]
        ),
        deployments=Deployments(
            [
                _deployment("emulator", "emulator-account", "KittyItems", "KittyItemsMarket"),
                _deployment("emulator", "account-4", "FungibleToken", "NonFungibleToken", "Kibble"),
                _deployment("testnet", "account-2", "FungibleToken", "NonFungibleToken", "Kibble", "KittyItems"),
                _deployment("emulator", "account-4", "KittyItems", "KittyItemsMarket"),
            ]
        ),
        accounts=Accounts(
            [
                Account("emulator-account", CONFIG.service_address, _hex_key(KEY_SERVICE)),
                Account("account-2", "2c1162386b0a245f", _hex_key(KEY_ACCOUNT_2)),
                Account("account-4", "f8d6e0586b0a20c1", _hex_key(KEY_ACCOUNT_4)),
            ]
        ),
        networks=Networks(
            [
                Network("emulator", "127.0.0.1:3569"),
                Network("testnet", "access.devnet.nodes.onflow.org:9000", key=TESTNET_KEY),
            ]
        ),
    )


class ContractQueryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.conf = generate_complex_config()

    def test_by_name_returns_first_declaration(self) -> None:
        kitty = self.conf.contracts.by_name("KittyItems")
        market = self.conf.contracts.by_name("KittyItemsMarket")

        self.assertEqual(kitty.name, "KittyItems")
        self.assertEqual(market.location, MARKET)
        self.assertEqual(market.network, "emulator")
        self.assertEqual(market.alias, "")

    def test_by_name_unknown(self) -> None:
        with self.assertRaisesRegex(NotFoundError, "Missing"):
            self.conf.contracts.by_name("Missing")

    def test_by_name_and_network(self) -> None:
        market = self.conf.contracts.by_name_and_network("KittyItemsMarket", "testnet")
        self.assertEqual(market.location, MARKET)
        self.assertEqual(market.alias, "0x123123123")

        for network in ("mainnet", "previewnet"):
            with self.subTest(network=network):
                with self.assertRaises(NotFoundError):
                    self.conf.contracts.by_name_and_network("KittyItemsMarket", network)

    def test_every_present_pair_resolves_to_itself(self) -> None:
        for contract in self.conf.contracts:
            found = self.conf.contracts.by_name_and_network(contract.name, contract.network)
            self.assertEqual((found.name, found.network), (contract.name, contract.network))

    def test_by_network_keeps_declaration_order(self) -> None:
        emulator = self.conf.contracts.by_network("emulator")
        self.assertEqual(
            [c.name for c in emulator],
            ["NonFungibleToken", "FungibleToken", "Kibble", "KittyItems", "KittyItemsMarket"],
        )
        self.assertEqual([c.name for c in self.conf.contracts.by_network("testnet")], ["KittyItemsMarket"])
        self.assertEqual(self.conf.contracts.by_network("mainnet"), [])

    def test_add_or_update_keeps_pairs_unique(self) -> None:
        contracts = self.conf.contracts
        contracts.add_or_update(Contract("KittyItemsMarket", MARKET, "testnet", alias="0x01"))
        contracts.add_or_update(Contract("KittyItemsMarket", MARKET, "mainnet", alias="0x02"))

        self.assertEqual(len(contracts), 7)
        self.assertEqual(contracts.by_name_and_network("KittyItemsMarket", "testnet").alias, "0x01")
        self.assertEqual(contracts[5].network, "testnet")
        self.assertEqual(contracts.names()[-1], "KittyItemsMarket")


class AccountNetworkQueryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.conf = generate_complex_config()

    def test_account_by_name(self) -> None:
        self.assertEqual(self.conf.accounts.by_name("account-4").address, "f8d6e0586b0a20c1")
        self.assertEqual(self.conf.accounts.names(), ["emulator-account", "account-2", "account-4"])
        with self.assertRaises(NotFoundError):
            self.conf.accounts.by_name("account-9")

    def test_account_add_or_update(self) -> None:
        self.conf.accounts.add_or_update(Account("account-2", "0000000000000002", _hex_key(KEY_ACCOUNT_2)))
        self.assertEqual(len(self.conf.accounts), 3)
        self.assertEqual(self.conf.accounts[1].address, "0000000000000002")

    def test_network_by_name(self) -> None:
        self.assertEqual(self.conf.networks.by_name("emulator").host, "127.0.0.1:3569")
        testnet = self.conf.networks.by_name("testnet")
        self.assertEqual(testnet.host, "access.devnet.nodes.onflow.org:9000")
        self.assertEqual(testnet.key, TESTNET_KEY)
        with self.assertRaises(NotFoundError):
            self.conf.networks.by_name("mainnet")

    def test_emulators(self) -> None:
        self.assertEqual(self.conf.emulators.default().service_account, "emulator-account")
        self.assertEqual(self.conf.emulators.by_name("default").port, 9000)
        with self.assertRaises(NotFoundError):
            Emulators().default()


class DeploymentQueryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.conf = generate_complex_config()

    def test_single_block(self) -> None:
        blocks = self.conf.deployments.by_account_and_network("account-2", "testnet")
        self.assertEqual(len(blocks), 1)
        self.assertEqual(
            [c.name for c in blocks[0].contracts],
            ["FungibleToken", "NonFungibleToken", "Kibble", "KittyItems"],
        )
        self.assertTrue(all(c.args == [] for c in blocks[0].contracts))

    def test_repeated_blocks_are_returned_in_file_order(self) -> None:
        blocks = self.conf.deployments.by_account_and_network("account-4", "emulator")
        self.assertEqual(len(blocks), 2)
        names = [c.name for block in blocks for c in block.contracts]
        self.assertEqual(names, ["FungibleToken", "NonFungibleToken", "Kibble", "KittyItems", "KittyItemsMarket"])

    def test_no_match_is_empty(self) -> None:
        self.assertEqual(self.conf.deployments.by_account_and_network("account-2", "emulator"), [])

    def test_by_network(self) -> None:
        blocks = self.conf.deployments.by_network("emulator")
        self.assertEqual([b.account for b in blocks], ["emulator-account", "account-4", "account-4"])


if __name__ == "__main__":
    unittest.main()
