"""
System Router - unauthenticated health check
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from rangebot.trading_context import TradingContext, get_trading_context

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health")
async def health(context: TradingContext = Depends(get_trading_context)) -> Dict[str, Any]:
    return {
        "ok": True,
        "paper": context.settings.paper_trading,
        "time": datetime.now(timezone.utc).isoformat(),
    }
