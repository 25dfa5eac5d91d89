"""
Domain exceptions for the trading engine.

Services raise these instead of fastapi.HTTPException to avoid coupling
the engine to the web framework. A global exception handler in
main.py translates them into HTTP responses.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "type": type(self).__name__}


class ConfigurationError(AppError):
    """Missing or invalid configuration / credentials (500)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class SigningError(AppError):
    """Key material is configured but a request could not be signed (500)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class RiskViolation(AppError):
    """Order rejected by risk checks before any network call (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class ExecutionFailure(AppError):
    """Order could not be filled or recorded (500)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class UpstreamError(AppError):
    """Price feed or brokerage unavailable or returned garbage (502)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class GatewayError(UpstreamError):
    """
    Brokerage call failed or the order was rejected.

    upstream_status is the brokerage HTTP status (None for transport
    failures); raw_body is the response text, kept verbatim.
    """

    def __init__(self, message: str, upstream_status: Optional[int] = None, raw_body: str = ""):
        self.upstream_status = upstream_status
        self.raw_body = raw_body
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["upstream_status"] = self.upstream_status
        data["raw_body"] = self.raw_body
        return data
