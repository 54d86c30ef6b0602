"""On-chain USDC balance reader (Polygon)."""

import logging

from web3 import Web3

logger = logging.getLogger(__name__)

USDC_DECIMALS = 6

# ERC-20 ABI for balanceOf
ERC20_BALANCE_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class UsdcBalanceReader:
    """Reads a wallet's USDC balance straight from the token contract."""

    def __init__(self, rpc_url: str, contract_address: str):
        self.w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=ERC20_BALANCE_ABI,
        )

    def get_balance(self, account: str) -> float:
        """Balance in USDC (not base units)."""
        raw = self.contract.functions.balanceOf(
            Web3.to_checksum_address(account)
        ).call()
        return raw / 10**USDC_DECIMALS
