import logging
from typing import Protocol

from .models import Route, SwapResult

LOG = logging.getLogger(__name__)

EXPLORER_TX_URL = "https://explorer.solana.com/tx/"


class Executable(Protocol):
    def execute(self) -> SwapResult:
        ...


class Exchanger(Protocol):
    def exchange(self, route: Route) -> Executable:
        ...


def explorer_url(txid: str, cluster: str = "mainnet-beta") -> str:
    url = f"{EXPLORER_TX_URL}{txid}"
    if cluster != "mainnet-beta":
        url += f"?cluster={cluster}"
    return url


class SwapExecutor:
    def __init__(self, aggregator: Exchanger, cluster: str = "mainnet-beta") -> None:
        self.aggregator = aggregator
        self.cluster = cluster

    def execute(self, route: Route) -> SwapResult:
        # Preparation errors propagate to the caller.
        prepared = self.aggregator.exchange(route)
        result = prepared.execute()

        if result.error is not None:
            LOG.error("Swap failed: %s", result.error)
        else:
            LOG.info("%s", explorer_url(result.txid or "", self.cluster))
            LOG.info("inputAddress=%s outputAddress=%s", result.input_address, result.output_address)
            LOG.info("inputAmount=%s outputAmount=%s", result.input_amount, result.output_amount)
        return result
