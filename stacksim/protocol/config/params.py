# MIT License
# Copyright (c) 2025 Hashborn

import os
from typing import Dict, Tuple
from ..types.common import TxType

# Global Constants
DENOM = "ustx"
MICRO_PER_STX = 1_000_000

# Base Gas Costs
GAS_PER_TYPE = {
    TxType.TRANSFER:      180,
    TxType.CONTRACT_CALL: 300,
}

DEFAULT_ACCOUNT_NAMES: Tuple[str, ...] = (
    "deployer",
    "wallet_1", "wallet_2", "wallet_3", "wallet_4",
    "wallet_5", "wallet_6", "wallet_7", "wallet_8",
)

class NetworkConfig:
    def __init__(self,
                 network_id: str,
                 chain_id: str,
                 min_gas_price: int,
                 max_tx_per_block: int,
                 default_balance: int,
                 address_prefix: str = "st",
                 account_names: Tuple[str, ...] = DEFAULT_ACCOUNT_NAMES,
                 deployer_name: str = "deployer",
                 # Simulated clock
                 genesis_timestamp: int = 1_700_000_000,
                 block_time_sec: int = 600):
        self.network_id = network_id
        self.chain_id = chain_id
        self.min_gas_price = min_gas_price
        self.max_tx_per_block = max_tx_per_block
        self.default_balance = default_balance
        self.address_prefix = address_prefix
        self.account_names = account_names
        self.deployer_name = deployer_name
        self.genesis_timestamp = genesis_timestamp
        self.block_time_sec = block_time_sec

    def fee_for(self, tx_type: TxType) -> int:
        return GAS_PER_TYPE.get(tx_type, 0) * self.min_gas_price

NETWORKS: Dict[str, NetworkConfig] = {
    "simnet": NetworkConfig(
        network_id="simnet",
        chain_id="stacksim-simnet-1",
        min_gas_price=1,
        max_tx_per_block=500,
        default_balance=100_000_000_000_000,  # 100M STX per account
    ),
    "devnet": NetworkConfig(
        network_id="devnet",
        chain_id="stacksim-devnet-1",
        min_gas_price=10,
        max_tx_per_block=5000,
        default_balance=100_000_000_000_000,
        account_names=DEFAULT_ACCOUNT_NAMES + ("faucet",),
        block_time_sec=30,
    ),
}

def get_network(name: str) -> NetworkConfig:
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(f"Unknown network '{name}' (known: {', '.join(sorted(NETWORKS))})")

# Default to simnet unless overridden
CURRENT_NETWORK = get_network(os.environ.get("STACKSIM_NETWORK", "simnet"))
