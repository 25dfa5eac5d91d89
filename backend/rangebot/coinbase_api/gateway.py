"""
Authenticated gateway to the Coinbase Advanced Trade brokerage.

Every request is signed right before it is sent, and every failure
(non-2xx status, transport error, rejected order) surfaces as a
GatewayError that keeps the raw response body.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from rangebot.coinbase_api.auth import CredentialSigner, build_signer
from rangebot.coinbase_api.order_api import serialize_order_body, summarize_order_response
from rangebot.constants import ORDERS_ENDPOINT
from rangebot.exceptions import GatewayError

logger = logging.getLogger(__name__)

MAX_RETRIES = 3


class CoinbaseGateway:
    """Signs, sends and normalizes brokerage requests"""

    def __init__(self, signer: CredentialSigner, base_url: str = "https://api.coinbase.com", timeout: float = 30.0):
        self.signer = signer
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config) -> "CoinbaseGateway":
        """Build a gateway, failing fast with ConfigurationError when no credentials exist"""
        host = urlparse(config.coinbase_api_base_url).netloc or "api.coinbase.com"
        signer = build_signer(config, host=host)
        return cls(signer, base_url=config.coinbase_api_base_url)

    async def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Make an authenticated request.

        Retries HTTP 429 with exponential backoff (1s, 2s). A new credential
        is signed for every attempt.

        Raises:
            GatewayError: on non-2xx status or network failure
            SigningError: if the request cannot be signed
        """
        method = method.upper()
        body = serialize_order_body(data) if data is not None else ""
        url = f"{self.base_url}{path}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(MAX_RETRIES):
                headers = {"Content-Type": "application/json"}
                headers.update(self.signer.sign(method, path, body))

                try:
                    # Send the exact text that was signed
                    response = await client.request(method, url, headers=headers, content=body or None)
                except httpx.HTTPError as e:
                    logger.error(f"❌ Coinbase request failed on {method} {path}: {type(e).__name__}: {e}")
                    raise GatewayError(f"Coinbase request failed: {e}", upstream_status=None, raw_body=str(e)) from e

                if response.status_code == 429 and attempt < MAX_RETRIES - 1:
                    wait_time = 2**attempt
                    logger.warning(
                        f"⚠️  Rate limited (429) on {method} {path}, "
                        f"retrying in {wait_time}s... (attempt {attempt + 1}/{MAX_RETRIES})"
                    )
                    await asyncio.sleep(wait_time)
                    continue

                text = response.text
                if not 200 <= response.status_code < 300:
                    logger.error(f"❌ Coinbase API error {response.status_code} on {method} {path}: {text}")
                    raise GatewayError(
                        f"Coinbase error {response.status_code}",
                        upstream_status=response.status_code,
                        raw_body=text,
                    )

                try:
                    return response.json()
                except (json.JSONDecodeError, ValueError):
                    return {"raw": text}

        raise GatewayError(f"No response after {MAX_RETRIES} attempts on {method} {path}")

    async def submit_order(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Submit an order body.

        A 2xx response with success=false is a rejected order and raises
        GatewayError with the response preserved.
        """
        response = await self.request("POST", ORDERS_ENDPOINT, data=body)

        summary = summarize_order_response(response)
        if not summary["success"]:
            raise GatewayError(
                f"Coinbase rejected order: {summary['failure_reason']}",
                upstream_status=200,
                raw_body=json.dumps(response),
            )
        return response
