import base64
import logging
from typing import Any, Dict, List, Mapping, Optional

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from .http_client import HttpClient
from .models import Route, SwapResult

LOG = logging.getLogger(__name__)


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Jupiter {what} is not an object: {value!r}")
    return value


def _sequence(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Jupiter {what} is not a list: {value!r}")
    return value


class JupiterClient:
    def __init__(
        self,
        http: HttpClient,
        base_url: str,
        rpc: Optional[Client] = None,
        keypair: Optional[Keypair] = None,
        platform_fee_bps: int = 0,
        fee_account: Optional[str] = None,
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.rpc = rpc
        self.keypair = keypair
        self.platform_fee_bps = platform_fee_bps
        self.fee_account = fee_account
        self.route_map: Dict[str, List[str]] = {}

    # ---------- route map ----------------------------------------------
    def load(self) -> Dict[str, List[str]]:
        response = self.http.get_json(
            f"{self.base_url}/indexed-route-map", params={"onlyDirectRoutes": "false"}
        )
        self.route_map = self.parse_route_map(response)
        LOG.info("Route map loaded for %d input mints", len(self.route_map))
        return self.route_map

    def get_route_map(self) -> Dict[str, List[str]]:
        return self.route_map

    @staticmethod
    def parse_route_map(response: Mapping[str, Any]) -> Dict[str, List[str]]:
        try:
            mint_keys = response["mintKeys"]
            indexed = response["indexedRouteMap"]
            return {
                mint_keys[int(index)]: [mint_keys[int(other)] for other in targets]
                for index, targets in indexed.items()
            }
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ValueError(f"malformed route map: {exc!r}") from exc

    # ---------- quotes -------------------------------------------------
    def quote_params(
        self, in_mint: str, out_mint: str, amount: int, slippage_bps: int, only_direct_routes: bool = False
    ) -> Dict[str, str]:
        params = {
            "inputMint": in_mint,
            "outputMint": out_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "swapMode": "ExactIn",
            "onlyDirectRoutes": "true" if only_direct_routes else "false",
        }
        if self.platform_fee_bps:
            params["platformFeeBps"] = str(self.platform_fee_bps)
        return params

    def parse_route(self, response: Mapping[str, Any], slippage_bps: int) -> Route:
        if not isinstance(response, Mapping):
            raise ValueError(f"Jupiter quote entry is not an object: {response!r}")
        for key in ("inAmount", "outAmount"):
            if response.get(key) is None:
                raise ValueError(f"Jupiter quote response missing {key}")

        # v6 quotes carry routePlan[].swapInfo, older list quotes carry marketInfos[].
        if "routePlan" in response:
            plan = _sequence(response.get("routePlan"), "routePlan")
            legs = [_mapping(_mapping(leg, "routePlan leg").get("swapInfo"), "swapInfo") for leg in plan]
            keys = [str(leg.get("ammKey", "")) for leg in legs]
        else:
            legs = [_mapping(leg, "marketInfos entry") for leg in _sequence(response.get("marketInfos"), "marketInfos")]
            keys = [str(leg.get("id", "")) for leg in legs]

        threshold = response.get("otherAmountThreshold")
        return Route(
            route_id=">".join(keys),
            input_mint=str(response.get("inputMint", "")),
            output_mint=str(response.get("outputMint", "")),
            in_amount=int(response["inAmount"]),
            out_amount=int(response["outAmount"]),
            other_amount_threshold=int(threshold) if threshold is not None else None,
            hops=len(legs),
            slippage_bps=int(response.get("slippageBps", slippage_bps)),
            payload=dict(response),
        )

    def parse_routes(self, response: Any, slippage_bps: int) -> List[Route]:
        if isinstance(response, dict) and "data" in response:
            entries = _sequence(response["data"], "data")
        elif isinstance(response, list):
            entries = response
        elif isinstance(response, dict):
            entries = [response]
        else:
            raise ValueError(f"unexpected quote response type {type(response).__name__}")
        return [self.parse_route(entry, slippage_bps) for entry in entries]

    def compute_routes(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
        force_fetch: bool = True,
        only_direct_routes: bool = False,
    ) -> List[Route]:
        params = self.quote_params(input_mint, output_mint, amount, slippage_bps, only_direct_routes)
        headers = {"Cache-Control": "no-cache"} if force_fetch else None
        response = self.http.get_json(f"{self.base_url}/quote", params=params, headers=headers)
        return self.parse_routes(response, slippage_bps)

    # ---------- swaps --------------------------------------------------
    def swap_payload(self, route: Route) -> Dict[str, Any]:
        if self.keypair is None:
            raise RuntimeError("no signing keypair configured")
        payload: Dict[str, Any] = {
            "quoteResponse": dict(route.payload),
            "userPublicKey": str(self.keypair.pubkey()),
            "wrapAndUnwrapSol": True,
        }
        if self.fee_account:
            payload["feeAccount"] = self.fee_account
        return payload

    def exchange(self, route: Route) -> "PreparedSwap":
        response = self.http.post_json(f"{self.base_url}/swap", self.swap_payload(route))
        encoded = response.get("swapTransaction") if isinstance(response, dict) else None
        if not encoded:
            detail = response.get("error") if isinstance(response, dict) else response
            raise ValueError(f"Jupiter swap response missing swapTransaction: {detail}")
        transaction = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        return PreparedSwap(self, route, transaction)


class PreparedSwap:
    def __init__(self, client: JupiterClient, route: Route, transaction: VersionedTransaction) -> None:
        self.client = client
        self.route = route
        self.transaction = transaction

    def execute(self) -> SwapResult:
        if self.client.rpc is None or self.client.keypair is None:
            raise RuntimeError("swap execution needs an RPC client and a keypair")
        signed = VersionedTransaction(self.transaction.message, [self.client.keypair])
        try:
            resp = self.client.rpc.send_raw_transaction(
                bytes(signed), opts=TxOpts(skip_preflight=False, preflight_commitment=Confirmed)
            )
        except RPCException as exc:
            return self._result(txid=None, error=str(exc))
        return self._result(txid=str(resp.value))

    def _result(self, txid: Optional[str], error: Optional[str] = None) -> SwapResult:
        return SwapResult(
            txid=txid,
            input_address=self.route.input_mint,
            output_address=self.route.output_mint,
            input_amount=self.route.in_amount,
            output_amount=self.route.out_amount,
            error=error,
        )
