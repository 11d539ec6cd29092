import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import List, Optional

from requests import RequestException
from solana.rpc.api import Client
from solders.keypair import Keypair

from .agent import ArbitrageBot, BotContext
from .config import AgentConfig, ConfigError, PollMode, load_config, load_keypair
from .http_client import HttpClient
from .jupiter import JupiterClient
from .logging_setup import configure_logging
from .poller import OverlapPolicy, PollDriver, PollStats
from .tokens import TokenListError, TokenRegistry, possible_pairs, token_list_url

LOG = logging.getLogger(__name__)

USER_AGENT = "jupiter-poller/1.0"


def bootstrap(
    config: AgentConfig,
    keypair: Optional[Keypair],
    http: Optional[HttpClient] = None,
    rpc: Optional[Client] = None,
) -> BotContext:
    network = config.network
    http = http or HttpClient(timeout=network.request_timeout, max_retries=network.retries, user_agent=USER_AGENT)
    registry = TokenRegistry.fetch(http, token_list_url(network.cluster, network.token_list_url))

    jupiter = JupiterClient(
        http,
        network.jupiter_base_url,
        rpc=rpc or Client(network.rpc_endpoint),
        keypair=keypair,
        platform_fee_bps=config.platform_fee.fee_bps,
        fee_account=config.platform_fee.fee_account,
    )
    route_map = jupiter.load()

    input_token = registry.get(config.pair.input_mint)
    output_token = registry.get(config.pair.output_mint)
    if input_token is None:
        LOG.warning("Input mint %s not in token list", config.pair.input_mint)
    if output_token is None:
        LOG.warning("Output mint %s not in token list", config.pair.output_mint)

    pairs = possible_pairs(registry, route_map, input_token)
    LOG.info("%d tokens reachable from input mint", len(pairs))

    return BotContext(
        config=config,
        registry=registry,
        aggregator=jupiter,
        input_token=input_token,
        output_token=output_token,
        route_map=route_map,
    )


def make_driver(bot: ArbitrageBot) -> PollDriver:
    async def tick() -> None:
        await asyncio.to_thread(bot.run_cycle)

    return PollDriver(tick, overlap=OverlapPolicy(bot.context.config.poll.overlap))


async def serve(context: BotContext) -> PollStats:
    poll = context.config.poll
    driver = make_driver(ArbitrageBot(context))

    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, driver.stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available on Windows event loops or off the main thread.
            pass

    LOG.info("Polling started (%s mode)", poll.mode.value)
    try:
        if poll.mode is PollMode.BOUNDED:
            stats = await driver.run_bounded(poll.iterations, poll.interval_seconds)
        else:
            stats = await driver.run_forever(poll.interval_seconds)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
    LOG.info(
        "Polling stopped: %d scheduled, %d completed, %d failed, %d skipped",
        stats.scheduled,
        stats.completed,
        stats.failed,
        stats.skipped,
    )
    return stats


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Jupiter quote poller and swap bot")
    parser.add_argument("--config", type=Path, default=Path("config/poller.yaml"))
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        configure_logging()
        LOG.error("Configuration error: %s", exc)
        return 1

    configure_logging(config.logging.level, config.logging.file)
    try:
        keypair = load_keypair()
        context = bootstrap(config, keypair)
    except (ConfigError, TokenListError, RequestException, ValueError) as exc:
        LOG.error("Startup failed: %s", exc)
        return 1

    asyncio.run(serve(context))
    return 0
