"""Pydantic Settings configuration models.

3-tier config hierarchy (lowest to highest priority):
1. Pydantic defaults (in code below)
2. .env file (loaded by Pydantic Settings)
3. Environment variables (e.g., OHLCV_PROVIDERS__TIMEOUT_SECONDS=5)

Nested mappings and lists are passed as JSON in env vars, e.g.
OHLCV_CACHE__NAMESPACES='{"intraday": 120, "daily": 1800}'.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ohlcv.sources.types import Interval, Purpose

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})
KNOWN_SOURCES = frozenset({"binance", "coingecko"})

_DEFAULT_SYMBOL_MAP: dict[str, str] = {
    "bitcoin": "BTCUSDT",
    "ethereum": "ETHUSDT",
    "solana": "SOLUSDT",
    "binancecoin": "BNBUSDT",
    "ripple": "XRPUSDT",
    "cardano": "ADAUSDT",
    "dogecoin": "DOGEUSDT",
    "avalanche-2": "AVAXUSDT",
    "polkadot": "DOTUSDT",
    "chainlink": "LINKUSDT",
}


class ProvidersConfig(BaseModel):
    """Upstream provider endpoints and request limits."""

    binance_base_url: str = "https://api.binance.com"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: str = ""
    vs_currency: str = "usd"
    timeout_seconds: float = Field(default=10.0, ge=0.5, le=60.0)
    symbol_map: dict[str, str] = Field(default_factory=lambda: dict(_DEFAULT_SYMBOL_MAP))


class PolicyEntryConfig(BaseModel):
    """One row of the static source policy table."""

    source_id: str
    allow_display: bool = True
    allow_redistribution: bool = False
    allowed_purposes: list[Purpose] = Field(default_factory=lambda: [Purpose.CHART])
    attribution: str | None = None

    @field_validator("source_id")
    @classmethod
    def normalize_source_id(cls, v: str) -> str:
        return v.strip().lower()


def _default_policy() -> list[PolicyEntryConfig]:
    return [
        PolicyEntryConfig(
            source_id="binance",
            allow_display=True,
            allow_redistribution=True,
            allowed_purposes=[Purpose.CHART, Purpose.DOWNLOAD],
            attribution="Data provided by Binance",
        ),
        PolicyEntryConfig(
            source_id="coingecko",
            allow_display=True,
            allow_redistribution=False,
            allowed_purposes=[Purpose.CHART],
            attribution="Data provided by CoinGecko",
        ),
    ]


class CacheConfig(BaseModel):
    """TTL per cache namespace, and which namespace each interval uses."""

    namespaces: dict[str, int] = Field(
        default_factory=lambda: {
            "intraday": 300,
            "daily": 3600,
        },
    )
    interval_namespaces: dict[Interval, str] = Field(
        default_factory=lambda: {
            Interval.H1: "intraday",
            Interval.H4: "intraday",
            Interval.D1: "daily",
            Interval.W1: "daily",
        },
    )

    @field_validator("namespaces")
    @classmethod
    def validate_ttls(cls, v: dict[str, int]) -> dict[str, int]:
        for name, ttl in v.items():
            if ttl <= 0:
                raise ValueError(f"TTL for namespace {name!r} must be > 0, got {ttl}")
        return v

    @model_validator(mode="after")
    def validate_mapping(self) -> CacheConfig:
        for interval in Interval:
            namespace = self.interval_namespaces.get(interval)
            if namespace is None:
                raise ValueError(f"No cache namespace for interval {interval.value}")
            if namespace not in self.namespaces:
                raise ValueError(
                    f"Interval {interval.value} maps to unknown namespace {namespace!r}"
                )
        return self


class AppConfig(BaseSettings):
    """Top-level engine configuration.

    Env var examples:
        OHLCV_LOG_LEVEL=DEBUG
        OHLCV_PROVIDERS__COINGECKO_API_KEY=your-key
        OHLCV_CHAINS='{"chart": ["coingecko"], "download": ["binance"]}'
        OHLCV_REDISTRIBUTION_ALLOWLIST='["binance"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="OHLCV_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"
    providers: ProvidersConfig = ProvidersConfig()
    cache: CacheConfig = CacheConfig()
    chains: dict[Purpose, list[str]] = Field(
        default_factory=lambda: {
            Purpose.CHART: ["binance", "coingecko"],
            Purpose.DOWNLOAD: ["binance", "coingecko"],
        },
    )
    policy: list[PolicyEntryConfig] = Field(default_factory=_default_policy)
    redistribution_allowlist: list[str] | None = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v}"
            )
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v}"
            )
        return v

    @field_validator("chains")
    @classmethod
    def validate_chains(cls, v: dict[Purpose, list[str]]) -> dict[Purpose, list[str]]:
        for purpose in Purpose:
            chain = v.get(purpose)
            if not chain:
                raise ValueError(f"Provider chain for {purpose.value} must not be empty")
        normalized: dict[Purpose, list[str]] = {}
        for purpose, chain in v.items():
            ids = [s.strip().lower() for s in chain]
            if len(set(ids)) != len(ids):
                raise ValueError(f"Duplicate source in {purpose.value} chain: {ids}")
            unknown = set(ids) - KNOWN_SOURCES
            if unknown:
                raise ValueError(f"Unknown source(s) in {purpose.value} chain: {sorted(unknown)}")
            normalized[purpose] = ids
        return normalized

    @field_validator("policy")
    @classmethod
    def validate_policy(cls, v: list[PolicyEntryConfig]) -> list[PolicyEntryConfig]:
        ids = [entry.source_id for entry in v]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate source in policy table: {ids}")
        return v
