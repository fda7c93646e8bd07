"""Command line entry point for the exchange adapter."""

import asyncio
import sys
from typing import Any, Optional
import click
from dotenv import load_dotenv
from loguru import logger

from .adapter import ExchangeAdapter
from .config import LoggingConfig, get_config
from .core.errors import FatalConfigError, TradeGateError


def setup_logging(settings: Optional[LoggingConfig] = None) -> None:
    """Configure loguru sinks."""
    settings = settings or LoggingConfig()
    logger.remove()
    logger.add(sys.stderr, level=settings.level,
               format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
    if settings.file:
        logger.add(settings.file, level="DEBUG",
                   format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}")


def run_operation(config_path: str, operation: str, *args: Any, retry: bool = True) -> Any:
    """Build the adapter, run one operation and shut down."""
    load_dotenv()
    try:
        config = get_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    setup_logging(config.logging)

    async def execute():
        adapter = ExchangeAdapter.from_config(config)
        try:
            return await adapter.request(operation, *args, retry_allowed=retry)
        finally:
            await adapter.close()

    try:
        return asyncio.run(execute())
    except FatalConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except TradeGateError as e:
        logger.error(f"{operation} failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Stopped by user")


def common_options(fn):
    fn = click.option('--config', type=click.Path(exists=True), default='config.yaml',
                      help='Path to config file')(fn)
    fn = click.option('--retry/--no-retry', default=True,
                      help='Retry failed calls every retry.delay_seconds (default: retry)')(fn)
    return fn


@click.group()
def cli():
    """Uniform exchange adapter CLI."""
    pass


@cli.command()
@common_options
def trades(config, retry):
    """Show recent trades for the configured pair."""
    for trade in run_operation(config, "get_trades", retry=retry):
        click.echo(f"{trade.timestamp}  {trade.price}  {trade.amount}")


@cli.command()
@common_options
def balance(config, retry):
    """Show available balances and the trading fee."""
    result = run_operation(config, "get_balance", retry=retry)
    click.echo(f"currency: {result.currency_available}")
    click.echo(f"asset:    {result.asset_available}")
    click.echo(f"fee:      {result.fee}")


@cli.command()
@common_options
@click.option('--depth', default=5, type=int, help='Levels to show per side (default: 5)')
def book(config, retry, depth):
    """Show the top of the order book."""
    result = run_operation(config, "get_order_book", retry=retry)
    click.echo("asks:")
    for level in reversed(result.asks[:depth]):
        click.echo(f"  {level.currency_price}  {level.asset_amount}")
    click.echo("bids:")
    for level in result.bids[:depth]:
        click.echo(f"  {level.currency_price}  {level.asset_amount}")


@cli.command()
@common_options
@click.argument('order_type', type=click.Choice(['buy', 'sell']))
@click.argument('amount')
@click.argument('price')
def place(config, retry, order_type, amount, price):
    """Place a limit order."""
    result = run_operation(config, "place_order", order_type, amount, price, retry=retry)
    click.echo(result.transaction_id)


@cli.command()
@common_options
@click.argument('order_id')
def filled(config, retry, order_id):
    """Check whether an order left the open set."""
    click.echo("filled" if run_operation(config, "order_filled", order_id, retry=retry) else "open")


@cli.command()
@common_options
@click.argument('order_id')
def cancel(config, retry, order_id):
    """Cancel an open order."""
    click.echo("cancelled" if run_operation(config, "cancel_order", order_id, retry=retry) else "not cancelled")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
