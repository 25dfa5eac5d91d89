"""
Authentication utilities for Coinbase Advanced Trade API
Supports both CDP (JWT) and HMAC methods behind one signer interface
"""

import hashlib
import hmac
import json
import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import jwt
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from rangebot.constants import JWT_TTL_SECONDS
from rangebot.exceptions import ConfigurationError, SigningError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "api.coinbase.com"


def load_cdp_credentials_from_file(file_path: str) -> Tuple[str, str]:
    """
    Load CDP credentials from JSON key file

    Args:
        file_path: Path to cdp_api_key.json file

    Returns:
        Tuple of (key_name, private_key)
    """
    with open(file_path, "r") as f:
        data = json.load(f)

    return data["name"], data["privateKey"]


def generate_jwt(
    key_name: str,
    private_key: str,
    request_method: str,
    request_path: str,
    now: Optional[int] = None,
    host: str = DEFAULT_HOST,
    nonce: Optional[str] = None,
) -> str:
    """
    Generate JWT token for CDP API request

    Args:
        key_name: CDP API key name
        private_key: CDP EC private key PEM string
        request_method: HTTP method (GET, POST, etc.)
        request_path: API endpoint path
        now: Unix time the token becomes valid (defaults to current time)
        host: API hostname included in the signed URI
        nonce: Header nonce (defaults to a random 128-bit hex string)

    Returns:
        JWT token string
    """
    private_key_obj = serialization.load_pem_private_key(
        private_key.encode("utf-8"), password=None, backend=default_backend()
    )

    # Query params are NOT part of the signed URI
    path_without_query = request_path.split("?")[0]

    # URI must include hostname per Coinbase docs
    uri = f"{request_method.upper()} {host}{path_without_query}"
    current_time = int(time.time()) if now is None else int(now)

    payload = {
        "sub": key_name,
        "iss": "cdp",  # Coinbase Developer Platform
        "nbf": current_time,
        "exp": current_time + JWT_TTL_SECONDS,
        "uri": uri,
    }

    # ES256 = ECDSA over the P-256 curve
    token = jwt.encode(
        payload,
        private_key_obj,
        algorithm="ES256",
        headers={"kid": key_name, "nonce": nonce or secrets.token_hex(16)},
    )

    return token


def generate_hmac_signature(api_secret: str, timestamp: str, method: str, request_path: str, body: str = "") -> str:
    """
    Generate HMAC-SHA256 signature for API request

    Args:
        api_secret: HMAC API secret (used as provided, no base64 decode)
        timestamp: Unix timestamp string
        method: HTTP method
        request_path: API endpoint path
        body: Request body (empty for GET requests)

    Returns:
        HMAC signature hex string
    """
    message = timestamp + method.upper() + request_path + body
    signature = hmac.new(api_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
    return signature


class CredentialSigner(ABC):
    """
    Produces authorization headers for one outbound brokerage request.

    Signers depend only on (method, path, body, now) and their key
    material, so a fresh credential is built for every request.
    """

    auth_type: str = ""

    @abstractmethod
    def sign(self, method: str, path: str, body: str = "", now: Optional[int] = None) -> Dict[str, str]:
        """Return the auth headers for a request"""


class CdpJwtSigner(CredentialSigner):
    """Bearer JWT signed with a CDP EC private key"""

    auth_type = "cdp"

    def __init__(self, key_name: str, private_key: str, host: str = DEFAULT_HOST):
        if not key_name or not private_key:
            raise ConfigurationError("CDP key name and private key are required")
        self.key_name = key_name
        self._private_key = private_key
        self.host = host

    def sign(self, method: str, path: str, body: str = "", now: Optional[int] = None) -> Dict[str, str]:
        try:
            token = generate_jwt(self.key_name, self._private_key, method, path, now=now, host=self.host)
        except Exception as e:
            # Never include key material in the message
            raise SigningError(f"Failed to sign CDP request: {type(e).__name__}") from e
        return {"Authorization": f"Bearer {token}"}


class HmacSigner(CredentialSigner):
    """Legacy API key + HMAC-SHA256 prehash signature"""

    auth_type = "hmac"

    def __init__(self, api_key: str, api_secret: str):
        if not api_key or not api_secret:
            raise ConfigurationError("API key and secret are required for HMAC auth")
        self.api_key = api_key
        self._api_secret = api_secret

    def sign(self, method: str, path: str, body: str = "", now: Optional[int] = None) -> Dict[str, str]:
        timestamp = str(int(time.time()) if now is None else int(now))
        try:
            signature = generate_hmac_signature(self._api_secret, timestamp, method, path, body)
        except Exception as e:
            raise SigningError(f"Failed to sign HMAC request: {type(e).__name__}") from e
        return {
            "CB-ACCESS-KEY": self.api_key,
            "CB-ACCESS-SIGN": signature,
            "CB-ACCESS-TIMESTAMP": timestamp,
        }


def build_signer(config, host: str = DEFAULT_HOST) -> CredentialSigner:
    """
    Pick a signer based on which secret material is configured.

    CDP (key file, or key name + private key) takes precedence over HMAC.

    Raises:
        ConfigurationError: if no usable credentials are configured
    """
    if config.coinbase_cdp_key_file:
        try:
            key_name, private_key = load_cdp_credentials_from_file(config.coinbase_cdp_key_file)
        except (OSError, KeyError, ValueError) as e:
            raise ConfigurationError(f"Could not load CDP key file: {type(e).__name__}") from e
        logger.info("Using CDP (JWT) authentication from key file")
        return CdpJwtSigner(key_name, private_key, host=host)

    if config.coinbase_cdp_key_name and config.coinbase_cdp_private_key:
        logger.info("Using CDP (JWT) authentication")
        return CdpJwtSigner(config.coinbase_cdp_key_name, config.coinbase_cdp_private_key, host=host)

    if config.coinbase_api_key and config.coinbase_api_secret:
        logger.info("Using HMAC authentication")
        return HmacSigner(config.coinbase_api_key, config.coinbase_api_secret)

    raise ConfigurationError("Missing Coinbase API credentials")
