from typing import Dict, List

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Admin API bearer token (empty disables every admin route)
    cn_admin_token: str = ""

    # Risk controls
    paper_trading: bool = True  # hard safety switch: live orders are refused while true
    max_trade_usd: float = 100.0
    allowed_products: str = "BTC-USD,ETH-USD"
    # Extra pricing proxies, e.g. "BTC-USDT:BTC-USD,ETH-USDT:ETH-USD"
    pricing_product_overrides: str = ""

    # Range accumulation strategy
    strat_enabled: bool = False
    strat_currency: str = "BTC-USD"
    strat_buy_amount_usd: float = 5.0
    strat_ma_window_hours: int = 12
    strat_atr_multiplier: float = 1.2
    strat_min_band_pct: float = 1.0
    strat_max_band_pct: float = 5.0
    strat_cooldown_sec: int = 1800
    strat_sell_enabled: bool = False
    strat_sell_max_fraction: float = 0.2
    strat_sell_extra_band_pct: float = 0.5
    strat_min_virtual_btc: float = 0.00001  # dust threshold for sells
    strat_interval_seconds: int = 900
    strat_live_orders: bool = False  # automated orders stay on paper unless set

    # Coinbase API - Legacy HMAC (if using old keys)
    coinbase_api_key: str = ""
    coinbase_api_secret: str = ""

    # Coinbase CDP API - EC private key method (recommended)
    coinbase_cdp_key_file: str = ""  # Path to cdp_api_key.json file
    coinbase_cdp_key_name: str = ""  # API key name from CDP
    coinbase_cdp_private_key: str = ""  # EC private key from CDP

    coinbase_api_base_url: str = "https://api.coinbase.com"
    coinbase_public_base_url: str = "https://api.exchange.coinbase.com"

    # Server
    port: int = 10000
    log_level: str = "INFO"

    @field_validator("coinbase_cdp_private_key")
    @classmethod
    def convert_newlines(cls, v: str) -> str:
        """Convert literal \\n to actual newlines in private key"""
        if v:
            return v.replace("\\n", "\n")
        return v

    @field_validator("strat_currency")
    @classmethod
    def upper_case_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("strat_sell_max_fraction")
    @classmethod
    def check_sell_fraction(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("strat_sell_max_fraction must be in (0, 1]")
        return v

    @model_validator(mode="after")
    def check_band_limits(self) -> "Settings":
        if self.strat_min_band_pct > self.strat_max_band_pct:
            raise ValueError("strat_min_band_pct must not exceed strat_max_band_pct")
        return self

    def get_allowed_products(self) -> List[str]:
        """Allow-listed trading pairs, upper cased"""
        return [p.strip().upper() for p in self.allowed_products.split(",") if p.strip()]

    def get_pricing_overrides(self) -> Dict[str, str]:
        """Parse "PAIR:PRICING_PAIR" entries into a mapping"""
        overrides: Dict[str, str] = {}
        for entry in self.pricing_product_overrides.split(","):
            if ":" not in entry:
                continue
            product, pricing = entry.split(":", 1)
            if product.strip() and pricing.strip():
                overrides[product.strip().upper()] = pricing.strip().upper()
        return overrides

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
