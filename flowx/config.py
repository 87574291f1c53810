from dataclasses import dataclass


@dataclass(frozen=True)
class CliConfig:
    config_file_name: str = "flow.json"
    # Network assigned to bare contract declarations and alias-less complex ones.
    default_network: str = "emulator"
    default_networks: tuple[tuple[str, str], ...] = (
        ("emulator", "127.0.0.1:3569"),
        ("testnet", "access.devnet.nodes.onflow.org:9000"),
        ("mainnet", "access.mainnet.nodes.onflow.org:9000"),
    )
    default_emulator_name: str = "default"
    default_emulator_port: int = 3569
    service_account_name: str = "emulator-account"
    # Emulator service account address; "service" in account addresses expands to it.
    service_address: str = "f8d6e0586b0a20c7"
    address_bytes: int = 8
    default_key_index: int = 0
    default_sig_algo: str = "ECDSA_P256"
    default_hash_algo: str = "SHA3_256"
    sig_algos: tuple[str, ...] = ("ECDSA_P256", "ECDSA_secp256k1")
    hash_algos: tuple[str, ...] = ("SHA3_256", "SHA2_256")


CONFIG = CliConfig()
