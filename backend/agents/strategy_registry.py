"""
Strategy Registry
Static list of fleet strategies: identity, protocol class and contract ABI.
Read-only after startup.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from infrastructure.errors import ConfigurationError, NotFoundError


class ProtocolClass(str, Enum):
    UNISWAP = "uniswap"
    AAVE = "aave"
    CURVE = "curve"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "ProtocolClass":
        try:
            return cls(value.lower())
        except ValueError:
            return cls.OTHER


# ============================================
# PROTOCOL ABIs (minimal)
# ============================================

UNISWAP_V3_POOL_ABI = [
    {
        "inputs": [],
        "name": "slot0",
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "liquidity",
        "outputs": [{"name": "", "type": "uint128"}],
        "stateMutability": "view",
        "type": "function"
    }
]

AAVE_V3_POOL_ABI = [
    {
        "inputs": [{"name": "user", "type": "address"}],
        "name": "getUserAccountData",
        "outputs": [
            {"name": "totalCollateralBase", "type": "uint256"},
            {"name": "totalDebtBase", "type": "uint256"},
            {"name": "availableBorrowsBase", "type": "uint256"},
            {"name": "currentLiquidationThreshold", "type": "uint256"},
            {"name": "ltv", "type": "uint256"},
            {"name": "healthFactor", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]

CURVE_POOL_ABI = [
    {
        "inputs": [],
        "name": "get_virtual_price",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]

PROTOCOL_ABIS = {
    ProtocolClass.UNISWAP: UNISWAP_V3_POOL_ABI,
    ProtocolClass.AAVE: AAVE_V3_POOL_ABI,
    ProtocolClass.CURVE: CURVE_POOL_ABI,
}


@dataclass(frozen=True)
class StrategyDescriptor:
    """Immutable identity of one fleet strategy"""
    id: int
    address: str
    protocol_class: ProtocolClass
    display_name: str
    abi: List[Dict] = field(default_factory=list, compare=False, repr=False, hash=False)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "address": self.address,
            "name": self.display_name,
            "protocol": self.protocol_class.value,
        }


# Strategy 1 is the FUNDING POOL for auto-compounding
STRATEGY_ADDRESSES = [
    # Uniswap V3
    {"id": 1, "address": "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640", "name": "Uni V3 WETH/USDC", "protocol": "uniswap"},
    {"id": 2, "address": "0xCBCdF9626bC03E24f779434178A73a0B4bad62eD", "name": "Uni V3 WBTC/WETH", "protocol": "uniswap"},
    {"id": 3, "address": "0x3416cF6C708Da44DB2624D63ea0AAef7113527C6", "name": "Uni V3 USDC/USDT", "protocol": "uniswap"},
    {"id": 4, "address": "0x5777d92f208679DB4b9778590Fa3CAB3aC9e2168", "name": "Uni V3 DAI/USDC", "protocol": "uniswap"},
    {"id": 5, "address": "0xa6Cc3C2531FdaA6Ae1A3CA84c2855806728693e8", "name": "Uni V3 LINK/WETH", "protocol": "uniswap"},

    # Aave V3
    {"id": 51, "address": "0x4d5F47FA6A74757f35C14fD3a6Ef8E3C9BC514E8", "name": "Aave V3 WETH", "protocol": "aave"},
    {"id": 52, "address": "0x98C23E9d8f34FEFb1B7BD6a91B7FF122F4e16F5c", "name": "Aave V3 USDC", "protocol": "aave"},
]


class StrategyRegistry:
    """
    Ordered, immutable collection of strategy descriptors.

    Iteration order is registry order, which is the order the batch
    executor invokes adapters in.
    """

    def __init__(self, descriptors: Iterable[StrategyDescriptor]):
        self._descriptors: List[StrategyDescriptor] = list(descriptors)
        self._by_id: Dict[int, StrategyDescriptor] = {}

        for descriptor in self._descriptors:
            if descriptor.id <= 0:
                raise ConfigurationError(f"Strategy id must be positive, got {descriptor.id}", "strategies")
            if descriptor.id in self._by_id:
                raise ConfigurationError(f"Duplicate strategy id {descriptor.id}", "strategies")
            self._by_id[descriptor.id] = descriptor

    @classmethod
    def from_records(cls, records: Iterable[Dict]) -> "StrategyRegistry":
        """Build a registry from plain address records"""
        descriptors = []
        for record in records:
            protocol = ProtocolClass.parse(record.get("protocol", "other"))
            descriptors.append(StrategyDescriptor(
                id=int(record["id"]),
                address=record["address"],
                protocol_class=protocol,
                display_name=record.get("name", f"Strategy {record['id']}"),
                abi=record.get("abi") or PROTOCOL_ABIS.get(protocol, []),
            ))
        return cls(descriptors)

    def list(self) -> List[StrategyDescriptor]:
        return list(self._descriptors)

    def get(self, strategy_id: int) -> Optional[StrategyDescriptor]:
        return self._by_id.get(strategy_id)

    def require(self, strategy_id: int) -> StrategyDescriptor:
        descriptor = self._by_id.get(strategy_id)
        if descriptor is None:
            raise NotFoundError("Strategy", str(strategy_id))
        return descriptor

    def __contains__(self, strategy_id: int) -> bool:
        return strategy_id in self._by_id

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self):
        return iter(self._descriptors)


def get_default_registry() -> StrategyRegistry:
    """Registry seeded with the production fleet"""
    return StrategyRegistry.from_records(STRATEGY_ADDRESSES)
