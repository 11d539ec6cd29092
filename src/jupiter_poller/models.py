from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Token:
    address: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class Route:
    route_id: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    other_amount_threshold: Optional[int]
    hops: int
    slippage_bps: int
    # Raw aggregator quote, only read back by the aggregator when building the swap.
    payload: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)


class QuoteStatus(Enum):
    FOUND = "found"
    NO_ROUTE = "no_route"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class QuoteResult:
    status: QuoteStatus
    routes: Tuple[Route, ...] = ()
    best_quote: Optional[Decimal] = None
    error: Optional[str] = None

    @property
    def has_route(self) -> bool:
        return self.status is QuoteStatus.FOUND and bool(self.routes)

    @property
    def best(self) -> Optional[Route]:
        return self.routes[0] if self.routes else None


@dataclass(frozen=True)
class SwapDecision:
    execute: bool
    reason: str
    input_amount: int
    min_out_amount: int
    fee_allowance: int
    route: Optional[Route]


@dataclass(frozen=True)
class SwapResult:
    txid: Optional[str]
    input_address: str
    output_address: str
    input_amount: int
    output_amount: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
