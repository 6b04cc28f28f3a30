"""Build a MarketDataService from AppConfig.

The first source of every configured chain is the display-safe primary;
the rest are gated by the source policy.
"""

from __future__ import annotations

from ohlcv.cache.result_cache import ResultCache, TTLTable
from ohlcv.config import AppConfig
from ohlcv.engine.indicators import IndicatorEngine
from ohlcv.engine.resolver import ProviderDescriptor, SourceResolver
from ohlcv.service.market_data import MarketDataService
from ohlcv.sources.binance import BinanceIngestor
from ohlcv.sources.coingecko import CoinGeckoIngestor
from ohlcv.sources.ingestor import TickIngestor
from ohlcv.sources.policy import PolicyEntry, SourcePolicy
from ohlcv.sources.types import Purpose


def build_policy(config: AppConfig) -> SourcePolicy:
    return SourcePolicy(
        [
            PolicyEntry(
                source_id=row.source_id,
                allow_display=row.allow_display,
                allow_redistribution=row.allow_redistribution,
                allowed_purposes=frozenset(row.allowed_purposes),
                attribution=row.attribution,
            )
            for row in config.policy
        ],
        redistribution_allowlist=config.redistribution_allowlist,
    )


def build_ttl_table(config: AppConfig) -> TTLTable:
    return TTLTable(config.cache.namespaces, config.cache.interval_namespaces)


def build_ingestors(config: AppConfig) -> dict[str, TickIngestor]:
    providers = config.providers
    return {
        "binance": BinanceIngestor(
            base_url=providers.binance_base_url,
            symbol_map=providers.symbol_map,
            timeout_seconds=providers.timeout_seconds,
        ),
        "coingecko": CoinGeckoIngestor(
            base_url=providers.coingecko_base_url,
            vs_currency=providers.vs_currency,
            api_key=providers.coingecko_api_key,
            timeout_seconds=providers.timeout_seconds,
        ),
    }


def build_chains(
    config: AppConfig,
    ingestors: dict[str, TickIngestor],
) -> dict[Purpose, list[ProviderDescriptor]]:
    timeout = config.providers.timeout_seconds
    return {
        purpose: [
            ProviderDescriptor(
                ingestor=ingestors[source_id],
                primary=(i == 0),
                timeout_seconds=timeout,
            )
            for i, source_id in enumerate(chain)
        ]
        for purpose, chain in config.chains.items()
    }


def build_service(
    config: AppConfig,
    cache: ResultCache | None = None,
    ingestors: dict[str, TickIngestor] | None = None,
) -> MarketDataService:
    """Assemble ingestors, policy, cache and resolver into a service."""
    if ingestors is None:
        ingestors = build_ingestors(config)
    resolver = SourceResolver(
        chains=build_chains(config, ingestors),
        policy=build_policy(config),
        cache=cache if cache is not None else ResultCache(),
        ttl_table=build_ttl_table(config),
    )
    return MarketDataService(
        resolver=resolver,
        indicators=IndicatorEngine(),
        ingestors=ingestors.values(),
    )
