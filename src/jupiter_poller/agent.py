import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from .config import AgentConfig
from .executor import Exchanger, SwapExecutor
from .models import QuoteResult, QuoteStatus, SwapDecision, SwapResult, Token
from .quotes import Aggregator, QuoteRequester, to_base_units
from .strategy import ThresholdEvaluator
from .tokens import TokenRegistry

LOG = logging.getLogger(__name__)


class SwapAggregator(Aggregator, Exchanger, Protocol):
    pass


@dataclass
class BotContext:
    config: AgentConfig
    registry: TokenRegistry
    aggregator: SwapAggregator
    input_token: Optional[Token]
    output_token: Optional[Token]
    route_map: Dict[str, List[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class CycleReport:
    quote: QuoteResult
    attempts: int
    decision: Optional[SwapDecision] = None
    swap: Optional[SwapResult] = None


class ArbitrageBot:
    def __init__(self, context: BotContext) -> None:
        self.context = context
        self.requester = QuoteRequester(context.aggregator)
        self.evaluator = ThresholdEvaluator(context.config.strategy)
        self.executor = SwapExecutor(context.aggregator, cluster=context.config.network.cluster)

    def input_base_units(self) -> int:
        token = self.context.input_token
        return to_base_units(self.context.config.pair.amount, token.decimals) if token else 0

    def fetch_quote(self) -> CycleReport:
        pair = self.context.config.pair
        retries = self.context.config.poll.transient_retries
        attempts = 0
        while True:
            attempts += 1
            quote = self.requester.request(
                self.context.input_token, self.context.output_token, pair.amount, pair.slippage_pct
            )
            if quote.status is not QuoteStatus.TRANSIENT_FAILURE or attempts > retries:
                return CycleReport(quote=quote, attempts=attempts)
            LOG.info("Transient quote failure, retrying (%d/%d)", attempts, retries)

    def run_cycle(self) -> CycleReport:
        report = self.fetch_quote()
        if not report.quote.has_route:
            LOG.info("No route this tick (%s)", report.quote.status.value)
            return report

        decision = self.evaluator.evaluate(report.quote.best, self.input_base_units())
        LOG.info(
            "min out %d vs input %d (+%d fee allowance): %s",
            decision.min_out_amount,
            decision.input_amount,
            decision.fee_allowance,
            decision.reason,
        )
        if not decision.execute or decision.route is None:
            return CycleReport(quote=report.quote, attempts=report.attempts, decision=decision)

        LOG.info("executing route %s (%d hops)", decision.route.route_id, decision.route.hops)
        swap = self.executor.execute(decision.route)
        return CycleReport(quote=report.quote, attempts=report.attempts, decision=decision, swap=swap)
