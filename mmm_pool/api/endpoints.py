"""API endpoints for MMM pools."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from mmm_pool.api.schemas import PoolDetail, PoolSummary, Quote, SpotPrice
from mmm_pool.errors import PoolError, Reason
from mmm_pool.factory import Factory, get_default_factory
from mmm_pool.models.types import normalize_address
from mmm_pool.pool import Pool

logger = structlog.get_logger()

router = APIRouter(prefix="/pools")


def get_factory() -> Factory:
    """Dependency provider for the pool factory.

    Override this in tests to inject a prepared factory:
        app.dependency_overrides[get_factory] = lambda: factory

    Returns:
        The factory whose pools are served.
    """
    return get_default_factory()


def _lookup(factory: Factory, address: str) -> Pool:
    if not factory.is_pool(address):
        raise HTTPException(status_code=404, detail=Reason.NOT_POOL.value)
    return factory.get_pool(address)


def _reject(error: PoolError, **context: object) -> HTTPException:
    logger.info("request_rejected", reason=error.reason.value, detail=error.detail, **context)
    return HTTPException(status_code=400, detail=error.reason.value)


def _parse_amount(value: str) -> int:
    try:
        amount = int(value)
    except ValueError as err:
        raise HTTPException(status_code=422, detail=f"invalid amount: {value}") from err
    if amount < 0:
        raise HTTPException(status_code=422, detail=f"invalid amount: {value}")
    return amount


@router.get("", response_model=list[PoolSummary])
async def list_pools(factory: Factory = Depends(get_factory)) -> list[PoolSummary]:
    """List every pool registered with the factory."""
    return [PoolSummary.from_pool(pool) for pool in factory.pools]


@router.get("/{address}", response_model=PoolDetail)
async def get_pool(address: str, factory: Factory = Depends(get_factory)) -> PoolDetail:
    """Full state snapshot of one pool."""
    pool = _lookup(factory, address)
    try:
        return PoolDetail.from_pool(pool)
    except PoolError as err:
        raise _reject(err, pool=pool.address) from err


@router.get("/{address}/spot-price", response_model=SpotPrice)
async def spot_price(
    address: str,
    token_in: str = Query(alias="tokenIn"),
    token_out: str = Query(alias="tokenOut"),
    factory: Factory = Depends(get_factory),
) -> SpotPrice:
    """Spot price of token_out in units of token_in, with and without the swap fee."""
    pool = _lookup(factory, address)
    try:
        return SpotPrice(
            token_in=normalize_address(token_in),
            token_out=normalize_address(token_out),
            spot_price=pool.get_spot_price(token_in, token_out),
            spot_price_sans_fee=pool.get_spot_price_sans_fee(token_in, token_out),
        )
    except PoolError as err:
        raise _reject(err, pool=pool.address) from err


@router.get("/{address}/quote/exact-in", response_model=Quote)
async def quote_exact_in(
    address: str,
    token_in: str = Query(alias="tokenIn"),
    token_out: str = Query(alias="tokenOut"),
    amount_in: str = Query(alias="amountIn"),
    factory: Factory = Depends(get_factory),
) -> Quote:
    """Quote selling exactly ``amountIn`` of token_in.

    Error Handling:
        - Unknown pool: 404
        - Pool check fails (unbound token, ratio limit, ...): 400 with reason code
    """
    pool = _lookup(factory, address)
    amount = _parse_amount(amount_in)
    try:
        amount_out, spread = pool.get_amount_out_given_in_mmm(token_in, amount, token_out)
    except PoolError as err:
        raise _reject(err, pool=pool.address, side="exact_in") from err

    logger.debug("quote_exact_in", pool=pool.address, amount_in=amount, amount_out=amount_out)
    return Quote(
        token_in=normalize_address(token_in),
        token_out=normalize_address(token_out),
        amount_in=amount,
        amount_out=amount_out,
        spread=spread,
    )


@router.get("/{address}/quote/exact-out", response_model=Quote)
async def quote_exact_out(
    address: str,
    token_in: str = Query(alias="tokenIn"),
    token_out: str = Query(alias="tokenOut"),
    amount_out: str = Query(alias="amountOut"),
    factory: Factory = Depends(get_factory),
) -> Quote:
    """Quote buying exactly ``amountOut`` of token_out."""
    pool = _lookup(factory, address)
    amount = _parse_amount(amount_out)
    try:
        amount_in, spread = pool.get_amount_in_given_out_mmm(token_in, token_out, amount)
    except PoolError as err:
        raise _reject(err, pool=pool.address, side="exact_out") from err

    logger.debug("quote_exact_out", pool=pool.address, amount_in=amount_in, amount_out=amount)
    return Quote(
        token_in=normalize_address(token_in),
        token_out=normalize_address(token_out),
        amount_in=amount_in,
        amount_out=amount,
        spread=spread,
    )
