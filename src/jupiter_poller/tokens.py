"""Token list loading and route-map pair lookup."""

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from requests import RequestException

from .http_client import HttpClient
from .models import Token

LOG = logging.getLogger(__name__)

TOKEN_LIST_URLS: Dict[str, str] = {
    "mainnet-beta": "https://cache.jup.ag/tokens",
    "devnet": "https://api.jup.ag/api/tokens/devnet",
    "testnet": "https://api.jup.ag/api/tokens/testnet",
}


class TokenListError(RuntimeError):
    """Raised when the token list cannot be fetched or parsed."""


def token_list_url(cluster: str, override: Optional[str] = None) -> str:
    if override:
        return override
    try:
        return TOKEN_LIST_URLS[cluster]
    except KeyError:
        raise TokenListError(f"no token list known for cluster {cluster!r}") from None


class TokenRegistry:
    def __init__(self, tokens: Iterable[Token]) -> None:
        self._by_address: Dict[str, Token] = {t.address: t for t in tokens}

    def __len__(self) -> int:
        return len(self._by_address)

    def get(self, address: str) -> Optional[Token]:
        return self._by_address.get(address)

    @classmethod
    def parse(cls, payload: object) -> "TokenRegistry":
        if not isinstance(payload, list):
            raise TokenListError(f"token list must be a JSON array, got {type(payload).__name__}")
        tokens: List[Token] = []
        for index, record in enumerate(payload):
            try:
                tokens.append(
                    Token(
                        address=str(record["address"]),
                        symbol=str(record["symbol"]),
                        decimals=int(record["decimals"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise TokenListError(f"token record {index} is malformed: {exc!r}") from exc
        return cls(tokens)

    @classmethod
    def fetch(cls, http: HttpClient, url: str) -> "TokenRegistry":
        try:
            payload = http.get_json(url)
        except (RequestException, ValueError) as exc:
            raise TokenListError(f"token list fetch from {url} failed: {exc}") from exc
        registry = cls.parse(payload)
        LOG.info("Loaded %d tokens from %s", len(registry), url)
        return registry


def possible_pairs(
    registry: TokenRegistry,
    route_map: Mapping[str, List[str]],
    input_token: Optional[Token],
) -> Dict[str, Optional[Token]]:
    """Map every mint the input token can swap into to its token info.

    Mints missing from the token list map to None.
    """
    if input_token is None:
        return {}
    return {address: registry.get(address) for address in route_map.get(input_token.address, [])}
