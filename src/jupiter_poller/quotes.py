import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Protocol, Union

from requests import RequestException

from .http_client import error_code_of, is_transient
from .models import QuoteResult, QuoteStatus, Route, Token

LOG = logging.getLogger(__name__)

NO_ROUTE_ERROR_CODES = frozenset({"COULD_NOT_FIND_ANY_ROUTE", "NO_ROUTES_FOUND"})

Amount = Union[int, float, Decimal, str]


class Aggregator(Protocol):
    def compute_routes(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
        force_fetch: bool = True,
        only_direct_routes: bool = False,
    ) -> List[Route]:
        ...


def to_base_units(amount: Amount, decimals: int) -> int:
    """Convert a UI-scale amount to base units, rounding half away from zero."""
    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def slippage_to_bps(slippage_pct: Amount) -> int:
    return to_base_units(slippage_pct, 2)


def classify_failure(exc: BaseException) -> QuoteStatus:
    if isinstance(exc, RequestException):
        if is_transient(exc):
            return QuoteStatus.TRANSIENT_FAILURE
        if error_code_of(exc) in NO_ROUTE_ERROR_CODES:
            return QuoteStatus.NO_ROUTE
    return QuoteStatus.PERMANENT_FAILURE


class QuoteRequester:
    def __init__(self, aggregator: Aggregator) -> None:
        self.aggregator = aggregator

    def request(
        self,
        input_token: Optional[Token],
        output_token: Optional[Token],
        amount: Amount,
        slippage_pct: Amount,
    ) -> QuoteResult:
        if input_token is None or output_token is None:
            return QuoteResult(QuoteStatus.NO_ROUTE, error="input or output token unknown")

        LOG.info("Getting routes for %s %s -> %s...", amount, input_token.symbol, output_token.symbol)
        base_units = to_base_units(amount, input_token.decimals)
        try:
            routes = self.aggregator.compute_routes(
                input_token.address,
                output_token.address,
                base_units,
                slippage_to_bps(slippage_pct),
                force_fetch=True,
                only_direct_routes=False,
            )
        except (RequestException, ValueError, KeyError, TypeError) as exc:
            status = classify_failure(exc)
            LOG.warning("Quote request failed (%s): %s", status.value, exc)
            return QuoteResult(status, error=str(exc))

        if not routes:
            return QuoteResult(QuoteStatus.NO_ROUTE)

        best_quote = Decimal(routes[0].out_amount) / (Decimal(10) ** output_token.decimals)
        LOG.info("Possible number of routes: %d", len(routes))
        LOG.info("Best quote: %s (%s)", best_quote, output_token.symbol)
        return QuoteResult(QuoteStatus.FOUND, routes=tuple(routes), best_quote=best_quote)
