"""
Authentication dependencies for routers.

The admin API is gated by a single static bearer token (CN_ADMIN_TOKEN).
"""

import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rangebot.trading_context import TradingContext, get_trading_context

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields our own 401 body
security = HTTPBearer(auto_error=False)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    context: TradingContext = Depends(get_trading_context),
) -> None:
    """Reject the request unless it carries the configured admin token"""
    expected = context.settings.cn_admin_token
    token = credentials.credentials if credentials else ""

    if not expected or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin request with missing or invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
