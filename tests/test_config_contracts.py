from __future__ import annotations

import json
import unittest

from flowx.config_json import (
    ComplexContract,
    InconsistentContractSourceError,
    MalformedConfigError,
    SimpleContract,
    UnrepresentableContractError,
    parse_contract_entry,
    transform_contracts_to_config,
    transform_contracts_to_json,
)
from flowx.models import ConfigError, Contract, Contracts, NotFoundError


KITTY_ITEMS = "./cadence/kittyItems/contracts/KittyItems.cdc"
KITTY_MARKET = "./cadence/kittyItemsMarket/contracts/KittyItemsMarket.cdc"
NFT = "../hungry-kitties/cadence/contracts/NonFungibleToken.cdc"
KIBBLE = "../hungry-kitties/cadence/contracts/Kibble.cdc"
FUNGIBLE = "../hungry-kitties/cadence/contracts/FungibleToken.cdc"


def _sorted_records(contracts: Contracts) -> list[tuple[str, str, str, str]]:
    return sorted((c.name, c.network, c.location, c.alias) for c in contracts)


class ContractEntryTest(unittest.TestCase):
    def test_entry_shapes(self) -> None:
        self.assertEqual(parse_contract_entry("A", "./A.cdc"), SimpleContract("./A.cdc"))
        self.assertEqual(
            parse_contract_entry("A", {"source": "./A.cdc", "aliases": {"testnet": "0x01"}}),
            ComplexContract("./A.cdc", {"testnet": "0x01"}),
        )
        self.assertEqual(parse_contract_entry("A", {"source": "./A.cdc"}), ComplexContract("./A.cdc", {}))

    def test_malformed_entries(self) -> None:
        for raw in (42, None, ["./A.cdc"], {"aliases": {}}, {"source": 1}, "", {"source": "./A.cdc", "aliases": []}):
            with self.subTest(raw=raw):
                with self.assertRaises(MalformedConfigError):
                    parse_contract_entry("A", raw)


class ContractsTransformTest(unittest.TestCase):
    def test_simple_contracts(self) -> None:
        contracts = transform_contracts_to_config({"KittyItems": KITTY_ITEMS, "KittyItemsMarket": KITTY_MARKET})

        self.assertEqual(len(contracts), 2)
        self.assertEqual(contracts.by_name("KittyItems").location, KITTY_ITEMS)
        self.assertEqual(contracts.by_name("KittyItemsMarket").location, KITTY_MARKET)
        for contract in contracts:
            self.assertEqual(contract.network, "emulator")
            self.assertEqual(contract.alias, "")

    def test_complex_contract_expands_per_alias(self) -> None:
        contracts = transform_contracts_to_config(
            {
                "KittyItems": KITTY_ITEMS,
                "KittyItemsMarket": {"source": KITTY_MARKET, "aliases": {"testnet": "f8d6e0586b0a20c7"}},
            }
        )

        self.assertEqual(len(contracts), 2)
        market = contracts.by_name_and_network("KittyItemsMarket", "testnet")
        self.assertEqual(market.location, KITTY_MARKET)
        self.assertEqual(market.alias, "f8d6e0586b0a20c7")
        with self.assertRaises(NotFoundError):
            contracts.by_name_and_network("KittyItemsMarket", "emulator")
        with self.assertRaises(NotFoundError):
            contracts.by_name_and_network("KittyItems", "testnet")

    def test_aliases_on_several_networks(self) -> None:
        contracts = transform_contracts_to_config(
            {
                "NonFungibleToken": NFT,
                "Kibble": {
                    "source": KIBBLE,
                    "aliases": {"emulator": "f8d6e0586b0a20c7", "testnet": "ead892083b3e2c6c"},
                },
                "FungibleToken": {"source": FUNGIBLE, "aliases": {"emulator": "e5a8b7f23e8b548f"}},
            }
        )

        fungible = contracts.by_name("FungibleToken")
        self.assertEqual(fungible.network, "emulator")
        self.assertEqual(fungible.alias, "e5a8b7f23e8b548f")
        self.assertEqual(fungible.location, FUNGIBLE)

        kibble_testnet = contracts.by_name_and_network("Kibble", "testnet")
        kibble_emulator = contracts.by_name_and_network("Kibble", "emulator")
        self.assertEqual(kibble_testnet.alias, "ead892083b3e2c6c")
        self.assertEqual(kibble_emulator.alias, "f8d6e0586b0a20c7")
        self.assertEqual(kibble_testnet.location, KIBBLE)
        self.assertEqual(kibble_emulator.location, KIBBLE)

        self.assertEqual(contracts.names(), ["NonFungibleToken", "Kibble", "FungibleToken"])
        self.assertEqual([c.name for c in contracts.by_network("emulator")], ["NonFungibleToken", "Kibble", "FungibleToken"])
        self.assertEqual([c.name for c in contracts.by_network("testnet")], ["Kibble"])

    def test_empty_aliases_is_a_default_network_record(self) -> None:
        contracts = transform_contracts_to_config({"Kibble": {"source": KIBBLE, "aliases": {}}})
        self.assertEqual(list(contracts), [Contract(name="Kibble", location=KIBBLE, network="emulator")])

    def test_default_network_is_configurable(self) -> None:
        contracts = transform_contracts_to_config({"Kibble": KIBBLE}, default_network="testnet")
        self.assertEqual(contracts.by_name("Kibble").network, "testnet")

    def test_encode_matches_source_document(self) -> None:
        document = {
            "KittyItems": KITTY_ITEMS,
            "KittyItemsMarket": {"source": KITTY_MARKET, "aliases": {"testnet": "e5a8b7f23e8b548f"}},
            "Kibble": {
                "source": KITTY_ITEMS,
                "aliases": {"testnet": "e5a8b7f23e8b548f", "emulator": "f8d6e0586b0a20c7"},
            },
        }
        encoded = transform_contracts_to_json(transform_contracts_to_config(document))
        self.assertEqual(json.loads(json.dumps(encoded)), document)

    def test_decode_encode_decode_keeps_records(self) -> None:
        document = {
            "NonFungibleToken": NFT,
            "Kibble": {"source": KIBBLE, "aliases": {"emulator": "f8d6e0586b0a20c7", "testnet": "ead892083b3e2c6c"}},
            "FungibleToken": {"source": FUNGIBLE, "aliases": {}},
        }
        first = transform_contracts_to_config(document)
        second = transform_contracts_to_config(transform_contracts_to_json(first))
        self.assertEqual(_sorted_records(first), _sorted_records(second))

    def test_aliasing_every_network_turns_simple_entry_complex(self) -> None:
        contracts = transform_contracts_to_config({"Kibble": KIBBLE})
        contracts.add_or_update(Contract(name="Kibble", location=KIBBLE, network="emulator", alias="f8d6e0586b0a20c7"))
        contracts.add_or_update(Contract(name="Kibble", location=KIBBLE, network="testnet", alias="ead892083b3e2c6c"))

        encoded = transform_contracts_to_json(contracts)
        self.assertEqual(
            encoded,
            {"Kibble": {"source": KIBBLE, "aliases": {"emulator": "f8d6e0586b0a20c7", "testnet": "ead892083b3e2c6c"}}},
        )
        self.assertEqual(_sorted_records(transform_contracts_to_config(encoded)), _sorted_records(contracts))

    def test_unaliased_record_beside_aliased_records_rejected(self) -> None:
        contracts = transform_contracts_to_config({"Kibble": KIBBLE})
        contracts.add_or_update(Contract(name="Kibble", location=KIBBLE, network="testnet", alias="ead892083b3e2c6c"))

        with self.assertRaisesRegex(UnrepresentableContractError, "'emulator' has no alias"):
            transform_contracts_to_json(contracts)

    def test_unaliased_record_off_default_network_rejected(self) -> None:
        contracts = Contracts([Contract(name="X", location="./X.cdc", network="testnet")])
        with self.assertRaisesRegex(UnrepresentableContractError, "needs an alias"):
            transform_contracts_to_json(contracts)

        self.assertEqual(transform_contracts_to_json(contracts, default_network="testnet"), {"X": "./X.cdc"})

    def test_duplicate_network_rejected(self) -> None:
        contracts = Contracts(
            [
                Contract(name="Kibble", location=KIBBLE, network="testnet", alias="0x01"),
                Contract(name="Kibble", location=KIBBLE, network="testnet", alias="0x02"),
            ]
        )
        with self.assertRaisesRegex(UnrepresentableContractError, "more than once"):
            transform_contracts_to_json(contracts)

    def test_rejection_fails_whole_encode(self) -> None:
        contracts = Contracts(
            [
                Contract(name="NonFungibleToken", location=NFT, network="emulator"),
                Contract(name="Kibble", location=KIBBLE, network="testnet"),
            ]
        )
        with self.assertRaises(ConfigError):
            transform_contracts_to_json(contracts)

    def test_inconsistent_source_rejected(self) -> None:
        contracts = Contracts(
            [
                Contract(name="Kibble", location=KIBBLE, network="emulator", alias="f8d6e0586b0a20c7"),
                Contract(name="Kibble", location="./other/Kibble.cdc", network="testnet", alias="ead892083b3e2c6c"),
            ]
        )
        with self.assertRaisesRegex(InconsistentContractSourceError, "Kibble"):
            transform_contracts_to_json(contracts)

    def test_sections_must_be_objects(self) -> None:
        with self.assertRaises(MalformedConfigError):
            transform_contracts_to_config(["Kibble"])


if __name__ == "__main__":
    unittest.main()
