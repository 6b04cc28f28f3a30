"""Click CLI commands for the OHLCV engine."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import click
from pydantic import ValidationError

from ohlcv.config import AppConfig
from ohlcv.engine.indicators import IndicatorKind
from ohlcv.service import CandleQuery, MarketDataService, build_service
from ohlcv.service.factory import build_policy
from ohlcv.sources.errors import EngineError
from ohlcv.sources.types import Interval, Purpose
from ohlcv.utils.logging import request_context, setup_logging

_INTERVAL_CHOICE = click.Choice([i.value for i in Interval])
_PURPOSE_CHOICE = click.Choice([p.value for p in Purpose])


def _query_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every data command."""
    func = click.option(
        "--purpose",
        type=_PURPOSE_CHOICE,
        default=Purpose.CHART.value,
        help="chart (display) or download (redistribution).",
    )(func)
    func = click.option(
        "--days", default=30, type=int, help="Window length in days (default: 30)."
    )(func)
    func = click.option(
        "--interval",
        type=_INTERVAL_CHOICE,
        default=Interval.D1.value,
        help="Candle interval (default: 1d).",
    )(func)
    return click.argument("subject")(func)


def _run(
    call: Callable[[MarketDataService, CandleQuery], Awaitable[dict[str, Any]]],
    **query_fields: Any,
) -> None:
    """Validate the query, run one service call and print JSON."""
    try:
        query = CandleQuery(**query_fields)
    except ValidationError as e:
        raise click.ClickException(str(e)) from e

    async def _go() -> dict[str, Any]:
        async with build_service(AppConfig()) as service:
            return await call(service, query)

    with request_context():
        try:
            payload = asyncio.run(_go())
        except EngineError as e:
            raise click.ClickException(str(e)) from e

    click.echo(json.dumps(payload, indent=2))


@click.group()
def cli() -> None:
    """OHLCV engine: candles and technical indicators from market data providers."""
    cfg = AppConfig()
    setup_logging(level=cfg.log_level, log_format=cfg.log_format)


@cli.command()
@_query_options
def candles(subject: str, interval: str, days: int, purpose: str) -> None:
    """Print the candle series for SUBJECT as JSON."""
    _run(
        MarketDataService.candles,
        subject=subject,
        interval=interval,
        days=days,
        purpose=purpose,
    )


@cli.command()
@_query_options
@click.option(
    "--kind",
    required=True,
    type=click.Choice([k.value for k in IndicatorKind]),
    help="Indicator to compute.",
)
@click.option("--window", type=int, default=None, help="Override the indicator period.")
def indicator(
    subject: str,
    interval: str,
    days: int,
    purpose: str,
    kind: str,
    window: int | None,
) -> None:
    """Compute one indicator for SUBJECT."""
    _run(
        MarketDataService.indicator,
        subject=subject,
        interval=interval,
        days=days,
        purpose=purpose,
        indicator=kind,
        window=window,
    )


@cli.command()
@_query_options
def snapshot(subject: str, interval: str, days: int, purpose: str) -> None:
    """Compute the standard indicator panel for SUBJECT."""
    _run(
        MarketDataService.snapshot,
        subject=subject,
        interval=interval,
        days=days,
        purpose=purpose,
    )


@cli.command()
def config() -> None:
    """Show current configuration."""
    cfg = AppConfig()

    click.echo("=== OHLCV Engine Configuration ===\n")

    click.echo(f"Log Level:    {cfg.log_level}")
    click.echo(f"Log Format:   {cfg.log_format}")
    click.echo("")

    click.echo("[Providers]")
    click.echo(f"  Binance:    {cfg.providers.binance_base_url}")
    click.echo(f"  CoinGecko:  {cfg.providers.coingecko_base_url}")
    click.echo(f"  Timeout:    {cfg.providers.timeout_seconds}s")
    click.echo("")

    click.echo("[Chains]")
    for purpose, chain in cfg.chains.items():
        click.echo(f"  {purpose.value:<10}  {' -> '.join(chain)}")
    click.echo("")

    click.echo("[Cache TTLs]")
    for namespace, ttl in cfg.cache.namespaces.items():
        click.echo(f"  {namespace:<10}  {ttl}s")


@cli.command()
def policy() -> None:
    """Show which sources are cleared for each purpose."""
    cfg = AppConfig()
    source_policy = build_policy(cfg)

    for source_id in source_policy.source_ids:
        click.echo(f"[{source_id}]")
        attribution = source_policy.attribution(source_id)
        if attribution:
            click.echo(f"  Attribution: {attribution}")
        for purpose in Purpose:
            reason = source_policy.block_reason(source_id, purpose)
            status = "allowed" if reason is None else f"blocked ({reason})"
            click.echo(f"  {purpose.value:<10} {status}")
