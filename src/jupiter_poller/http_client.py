from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter, Retry

TRANSIENT_STATUSES = (429, 500, 502, 503, 504)


class HttpClient:
    def __init__(self, timeout: float, max_retries: int, user_agent: str) -> None:
        self.timeout = timeout
        self.session = requests.Session()
        retry_policy = Retry(
            total=max_retries,
            backoff_factor=0.2,
            status_forcelist=TRANSIENT_STATUSES,
            allowed_methods=("GET", "POST"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_policy, pool_connections=4, pool_maxsize=16)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"User-Agent": user_agent})

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        response = self.session.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json()


def status_of(exc: BaseException) -> Optional[int]:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def error_code_of(exc: BaseException) -> Optional[str]:
    """Return the ``errorCode`` field of a JSON error body, if there is one."""
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        code = body.get("errorCode")
        return str(code) if code is not None else None
    return None


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, requests.HTTPError):
        return status_of(exc) in TRANSIENT_STATUSES
    return False
