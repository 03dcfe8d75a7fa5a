"""Command line entry point for the algorithmic trading bot engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Optional

from algo_trading_engine.config import BinanceConfig, Settings, load_settings
from algo_trading_engine.data import BinancePriceSource, PriceSource, SimulatedPriceSource
from algo_trading_engine.database import DatabaseManager
from algo_trading_engine.exchanges import BinanceService
from algo_trading_engine.execution import BotScheduler, OrderManager, SettlementEngine, StrategyService
from algo_trading_engine.monitoring import configure_logging
from algo_trading_engine.strategies import StrategyKind, TradingMode


logger = logging.getLogger(__name__)


def build_service(
    settings: Settings,
    database: DatabaseManager,
    binance_service: Optional[BinanceService] = None,
) -> tuple[StrategyService, BotScheduler, OrderManager]:
    price_source: PriceSource
    if binance_service is not None:
        price_source = BinancePriceSource(binance_service)
    else:
        price_source = SimulatedPriceSource()
    order_manager = OrderManager(binance_service)
    settlement = SettlementEngine(database, order_manager)
    scheduler = BotScheduler(
        price_source,
        settlement,
        history_size=settings.price_history_size,
        price_fetch_attempts=settings.price_fetch_attempts,
        price_retry_delay=settings.price_retry_delay,
    )
    service = StrategyService(database, scheduler, settings)
    return service, scheduler, order_manager


async def run_bot(settings: Settings, args: argparse.Namespace) -> None:
    configure_logging(settings.log_level)
    database = DatabaseManager(settings.database_url)
    binance_config = BinanceConfig.from_env(settings)
    binance_service: Optional[BinanceService] = None
    if binance_config.is_configured:
        binance_service = BinanceService(binance_config)
    elif args.mode == TradingMode.LIVE.value:
        raise SystemExit('Live mode needs BINANCE_API_KEY and BINANCE_API_SECRET')
    else:
        logger.warning('Binance credentials not configured; using simulated prices.')

    service, scheduler, order_manager = build_service(settings, database, binance_service)
    payload = {
        'type': args.strategy,
        'symbol': args.symbol,
        'amount': args.amount,
        'interval': args.interval,
        'mode': args.mode,
        'params': json.loads(args.params) if args.params else {},
    }
    try:
        bot = await service.start_strategy(args.user_id, payload)
        logger.info('Bot %s running for %ss', bot.bot_id, args.duration)
        await asyncio.sleep(args.duration)
        await service.stop_strategy(args.user_id, args.symbol)
        await scheduler.shutdown()
    finally:
        await order_manager.close()
        database.close()

    print_history(settings, args.user_id, limit=20)


def print_history(settings: Settings, user_id: int, limit: int) -> None:
    database = DatabaseManager(settings.database_url)
    try:
        account = database.get_paper_account(user_id)
        if account is not None:
            print(f'Paper balance: {account.balance:.2f}')
        for trade in database.load_trades(user_id, limit=limit):
            pnl = '' if trade.pnl is None else f' pnl={trade.pnl:.2f}'
            print(
                f'{trade.timestamp:%Y-%m-%d %H:%M:%S} {trade.mode:<5} {trade.side:<4} '
                f'{trade.amount} {trade.symbol} @ {trade.price:.2f}{pnl}'
            )
    finally:
        database.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Algorithmic trading bot CLI')
    sub = parser.add_subparsers(dest='command', required=True)

    run = sub.add_parser('run', help='Run one strategy bot for a fixed duration')
    run.add_argument('--user-id', type=int, default=1)
    run.add_argument('--symbol', default='BTCUSDT')
    run.add_argument('--strategy', choices=[kind.value for kind in StrategyKind], default=StrategyKind.MA_CROSSOVER.value)
    run.add_argument('--mode', choices=[mode.value for mode in TradingMode], default=TradingMode.PAPER.value)
    run.add_argument('--amount', type=float, default=0.01)
    run.add_argument('--interval', type=int, default=1_000, help='Polling interval in milliseconds')
    run.add_argument('--duration', type=int, default=60, help='Runtime in seconds')
    run.add_argument('--params', help='Strategy parameters as JSON, e.g. \'{"shortPeriod": 5}\'')

    history = sub.add_parser('history', help='Show recorded trades')
    history.add_argument('--user-id', type=int, default=1)
    history.add_argument('--limit', type=int, default=20)

    return parser


async def async_main(args: argparse.Namespace) -> None:
    settings = load_settings()
    if args.command == 'run':
        await run_bot(settings, args)
    elif args.command == 'history':
        print_history(settings, args.user_id, args.limit)
    else:  # pragma: no cover
        raise ValueError(f'Unknown command {args.command}')


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    asyncio.run(async_main(args))


if __name__ == '__main__':
    main()
