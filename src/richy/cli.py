from __future__ import annotations

import asyncio
import dataclasses
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer

from richy.config import (
    CONF_FILE,
    CredentialsConfig,
    load_credentials_config,
    save_credentials_config,
)
from richy.exchange import KrakenError, KrakenSpotClient
from richy.logging_utils import configure_logging
from richy.settings import Settings
from richy.types import Side

app = typer.Typer(no_args_is_help=True, add_completion=False)
logger = logging.getLogger("richy")

_CONFIG_OPTION_HELP = "Credentials file (host/api_key/api_secret). Defaults to env / .env."


def _render(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _render(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [_render(v) for v in value]
    if isinstance(value, dict):
        return {k: _render(v) for k, v in value.items()}
    if isinstance(value, Decimal):
        return format(value, "f")
    return value


def _redact(secret: str) -> str:
    return "***" if secret else ""


def _build_client(settings: Settings, config: Optional[Path]) -> KrakenSpotClient:
    api_key = settings.kraken_api_key
    api_secret = settings.kraken_api_secret
    base_url = settings.base_url()
    if config is not None:
        if not config.exists():
            raise typer.BadParameter(f"config file not found: {config}")
        try:
            cfg = load_credentials_config(config)
            base_url = cfg.base_url()
        except ValueError as e:
            raise typer.BadParameter(f"invalid config: {e}") from e
        api_key = cfg.api_key
        api_secret = cfg.api_secret
    return KrakenSpotClient(
        api_key=api_key,
        api_secret=api_secret,
        base_url=base_url,
        sandbox=settings.kraken_sandbox,
        timeout_seconds=settings.kraken_timeout_seconds,
        user_agent=settings.kraken_user_agent,
    )


def _run(config: Optional[Path], call: Callable[[KrakenSpotClient], Awaitable[Any]]) -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    client = _build_client(settings, config)

    async def _main() -> Any:
        try:
            return await call(client)
        finally:
            await client.aclose()

    try:
        result = asyncio.run(_main())
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    except KrakenError as e:
        typer.echo({"ok": False, "error": type(e).__name__, "detail": str(e)}, err=True)
        raise typer.Exit(code=1) from e
    typer.echo(_render(result))


@app.command()
def config_init(
    path: Path = typer.Option(CONF_FILE, help="Path to write the credentials file."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite if exists."),
) -> None:
    """
    Write a credentials file seeded from the current environment.
    """
    if path.exists() and not overwrite:
        raise typer.Exit(code=1)

    settings = Settings()
    cfg = CredentialsConfig(
        host=settings.kraken_host,
        api_key=settings.kraken_api_key,
        api_secret=settings.kraken_api_secret,
    )
    save_credentials_config(cfg, path)
    typer.echo(f"Wrote {path}")


@app.command()
def show_config(
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    redacted = settings.model_dump()
    redacted["kraken_api_secret"] = _redact(redacted["kraken_api_secret"])
    redacted["base_url"] = settings.base_url()
    redacted["has_credentials"] = settings.has_credentials()
    if config is not None:
        if not config.exists():
            raise typer.BadParameter(f"config file not found: {config}")
        cfg = load_credentials_config(config)
        redacted["config_file"] = {
            "host": cfg.host,
            "api_key": cfg.api_key,
            "api_secret": _redact(cfg.api_secret),
        }
    logger.info("loaded_config", extra={"pair": settings.pair})
    typer.echo(redacted)


@app.command()
def health(
    auth: bool = typer.Option(False, "--auth", help="Also check the API credentials."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    """
    Print the venue's server time and system status.
    """

    async def _call(client: KrakenSpotClient) -> dict[str, Any]:
        server_time = await client.server_time()
        status = await client.system_status()
        out: dict[str, Any] = {
            "ok": True,
            "base_url": client.base_url,
            "server_time": server_time,
            "status": status,
        }
        if auth:
            out["authenticated"] = await client.test_authentication()
        return out

    _run(config, _call)


@app.command()
def ticker(
    pairs: Optional[list[str]] = typer.Argument(
        None,
        help="Pairs, e.g. XBTUSD ETHUSD. Defaults to PAIR.",
    ),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    wanted = pairs or [Settings().pair]

    async def _call(client: KrakenSpotClient) -> Any:
        if len(wanted) == 1:
            return await client.ticker(wanted[0])
        return await client.tickers(wanted)

    _run(config, _call)


@app.command()
def depth(
    pair: str = typer.Argument(..., help="Pair, e.g. XBTUSD."),
    count: int = typer.Option(10, min=1, max=500, help="Price levels per side."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _run(config, lambda client: client.order_book(pair, depth=count))


@app.command()
def trades(
    pair: str = typer.Argument(..., help="Pair, e.g. XBTUSD."),
    count: int = typer.Option(20, min=1, max=1000, help="Number of recent trades."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _run(config, lambda client: client.recent_trades(pair, count=count))


@app.command()
def ohlc(
    pair: str = typer.Argument(..., help="Pair, e.g. XBTUSD."),
    interval: int = typer.Option(1, help="Candle interval in minutes."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _run(config, lambda client: client.ohlc(pair, interval=interval))


@app.command()
def balance(
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _run(config, lambda client: client.balance())


@app.command()
def open_orders(
    pair: Optional[str] = typer.Option(None, help="Only orders for this pair."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _run(config, lambda client: client.open_orders(pair))


def _submit(
    *,
    side: Side,
    pair: str,
    volume: str,
    price: Optional[str],
    validate: bool,
    config: Optional[Path],
) -> None:
    try:
        volume_d = Decimal(volume)
        price_d = Decimal(price) if price is not None else None
    except ArithmeticError as e:
        raise typer.BadParameter(f"invalid number: {e}") from e

    async def _call(client: KrakenSpotClient) -> Any:
        return await client.add_order(
            pair=pair,
            side=side,
            order_type="market" if price_d is None else "limit",
            volume=volume_d,
            price=price_d,
            validate=validate,
        )

    _run(config, _call)


@app.command()
def buy(
    pair: str = typer.Argument(..., help="Pair, e.g. XBTUSD."),
    volume: str = typer.Argument(..., help="Order volume in base asset."),
    price: Optional[str] = typer.Option(None, help="Limit price; market order if omitted."),
    validate: bool = typer.Option(False, "--validate", help="Validate only, do not submit."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _submit(side="buy", pair=pair, volume=volume, price=price, validate=validate, config=config)


@app.command()
def sell(
    pair: str = typer.Argument(..., help="Pair, e.g. XBTUSD."),
    volume: str = typer.Argument(..., help="Order volume in base asset."),
    price: Optional[str] = typer.Option(None, help="Limit price; market order if omitted."),
    validate: bool = typer.Option(False, "--validate", help="Validate only, do not submit."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    _submit(side="sell", pair=pair, volume=volume, price=price, validate=validate, config=config)


@app.command()
def cancel(
    txid: str = typer.Argument(..., help="Transaction id of the order to cancel."),
    config: Optional[Path] = typer.Option(None, help=_CONFIG_OPTION_HELP),
) -> None:
    async def _call(client: KrakenSpotClient) -> dict[str, Any]:
        return {"ok": True, "txid": txid, "count": await client.cancel_order(txid)}

    _run(config, _call)
