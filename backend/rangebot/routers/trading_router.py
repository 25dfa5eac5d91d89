"""
Trading Router - Admin trading operations

Manual paper/live orders, status, and strategy control. Every route
requires the admin bearer token. Domain errors are rendered by the
AppError handler in main.py.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from rangebot.auth.dependencies import require_admin
from rangebot.trading_context import TradingContext, get_trading_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["trading"], dependencies=[Depends(require_admin)])


class OrderRequest(BaseModel):
    product: str = "BTC-USD"
    side: str = "buy"
    usd: float = 5.0


class StrategyEnabledRequest(BaseModel):
    enabled: Optional[bool] = None  # null clears the override


@router.post("/paper-order")
async def paper_order(
    request: OrderRequest,
    context: TradingContext = Depends(get_trading_context),
) -> Dict[str, Any]:
    """Simulate a market order against the paper ledger"""
    record = await context.executor.execute(request.product, request.side, request.usd, "paper")
    return record.to_dict()


@router.post("/live-order")
async def live_order(
    request: OrderRequest,
    context: TradingContext = Depends(get_trading_context),
) -> Dict[str, Any]:
    """Place a real market order; refused while paper mode is on"""
    try:
        record = await context.executor.execute(request.product, request.side, request.usd, "live")
    except Exception as e:
        logger.error(f"[LIVE ORDER ERROR] {e}")
        raise

    return {"ok": True, "placed": True, "order": record.to_dict()}


@router.get("/status")
async def get_status(context: TradingContext = Depends(get_trading_context)) -> Dict[str, Any]:
    return context.get_status()


@router.post("/strategy/enabled")
async def set_strategy_enabled(
    request: StrategyEnabledRequest,
    context: TradingContext = Depends(get_trading_context),
) -> Dict[str, Any]:
    """Force the strategy on/off until restart (null restores the configured default)"""
    context.toggle.set(request.enabled)
    logger.info(f"Strategy override set to {request.enabled} (effective: {context.toggle.enabled})")
    return {
        "ok": True,
        "override": context.toggle.override,
        "strategy_enabled": context.toggle.enabled,
    }


@router.post("/strategy/tick")
async def run_strategy_tick(context: TradingContext = Depends(get_trading_context)) -> Dict[str, Any]:
    """Run one strategy tick now; failures are returned as error responses"""
    result = await context.strategy.tick("manual", raise_errors=True)
    return result.to_dict()
