"""Pydantic response models for the pool API.

Amounts, weights, prices and fees are uint256 fixed-point values serialized
as decimal strings.
"""

from pydantic import BaseModel, Field

from mmm_pool.events import feed_label
from mmm_pool.models.types import Address, Uint256
from mmm_pool.pool import Pool


class TokenState(BaseModel):
    """A bound token as seen by the pool."""

    address: Address
    index: int
    balance: Uint256
    denorm: Uint256 = Field(description="Declared weight")
    effective_weight: Uint256 = Field(
        alias="effectiveWeight", description="Declared weight scaled by price performance"
    )
    oracle: str = Field(description="Price feed identifier")
    initial_price: Uint256 = Field(alias="initialPrice")
    price_decimals: int = Field(alias="priceDecimals")

    model_config = {"populate_by_name": True}


class PoolSummary(BaseModel):
    """Compact pool listing entry."""

    address: Address
    controller: Address
    finalized: bool
    public_swap: bool = Field(alias="publicSwap")
    tokens: list[Address]

    model_config = {"populate_by_name": True}

    @classmethod
    def from_pool(cls, pool: Pool) -> "PoolSummary":
        return cls(
            address=pool.address,
            controller=pool.get_controller(),
            finalized=pool.is_finalized(),
            public_swap=pool.is_public_swap(),
            tokens=pool.get_current_tokens(),
        )


class PoolDetail(PoolSummary):
    """Full pool state snapshot."""

    swap_fee: Uint256 = Field(alias="swapFee")
    total_weight: Uint256 = Field(alias="totalWeight")
    total_supply: Uint256 = Field(alias="totalSupply")
    coverage_fee_z: Uint256 = Field(alias="coverageFeeZ")
    coverage_fee_horizon: Uint256 = Field(alias="coverageFeeHorizon")
    lookback_rounds: int = Field(alias="lookbackRounds")
    lookback_seconds: int = Field(alias="lookbackSeconds")
    token_states: list[TokenState] = Field(alias="tokenStates")

    @classmethod
    def from_pool(cls, pool: Pool) -> "PoolDetail":
        records = pool.records
        bindings = pool.price_bindings
        coverage = pool.get_coverage_parameters()
        token_states = [
            TokenState(
                address=addr,
                index=records[addr].index,
                balance=records[addr].balance,
                denorm=records[addr].denorm,
                effective_weight=pool.get_denormalized_weight_mmm(addr),
                oracle=feed_label(bindings[addr].oracle),
                initial_price=bindings[addr].initial_price,
                price_decimals=bindings[addr].decimals,
            )
            for addr in pool.tokens
        ]
        return cls(
            address=pool.address,
            controller=pool.get_controller(),
            finalized=pool.is_finalized(),
            public_swap=pool.is_public_swap(),
            tokens=list(pool.tokens),
            swap_fee=pool.get_swap_fee(),
            total_weight=pool.get_total_denormalized_weight(),
            total_supply=pool.shares.total_supply(),
            coverage_fee_z=coverage["z"],
            coverage_fee_horizon=coverage["horizon"],
            lookback_rounds=coverage["lookback_rounds"],
            lookback_seconds=coverage["lookback_seconds"],
            token_states=token_states,
        )


class SpotPrice(BaseModel):
    """Spot price of token_out in units of token_in."""

    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    spot_price: Uint256 = Field(alias="spotPrice")
    spot_price_sans_fee: Uint256 = Field(alias="spotPriceSansFee")

    model_config = {"populate_by_name": True}


class Quote(BaseModel):
    """Result of a swap quote."""

    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out: Uint256 = Field(alias="amountOut")
    spread: Uint256 = Field(description="Coverage spread added to the swap fee")

    model_config = {"populate_by_name": True}
