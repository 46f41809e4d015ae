import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from PySide6.QtCore import QObject

from cadence import __version__
import cadence.misc.cleanup as cleanup

DEFAULT_TIMEOUT = 10.0

# statuses the backend proxy answers with while the catalog rate limits it
RETRY_STATUSES = (429, 500, 502, 503, 504)
# POST and PATCH are not idempotent and are never retried
RETRY_METHODS = frozenset({"GET", "PUT", "DELETE", "HEAD", "OPTIONS"})


def _retrying_session(headers: Dict[str, str]) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        max_retries=Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=RETRY_STATUSES,
            allowed_methods=RETRY_METHODS,
            raise_on_status=False,
        )
    )
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    session.headers.update(headers)
    return session


class NetworkManager(QObject):
    """Shared HTTP session for the backend client and anything else that talks HTTP.

    `request` raises so callers can tell transient failures from server errors.
    """

    _instance: "NetworkManager" = None  # type: ignore

    @classmethod
    def get_instance(cls) -> "NetworkManager":
        if cls._instance is None:
            cls._instance = NetworkManager()
        return cls._instance

    def __init__(self):
        if NetworkManager._instance is not None:
            raise RuntimeError("Use NetworkManager.get_instance() instead of constructor")

        super().__init__()
        self.logger = logging.getLogger("NetworkManager")
        self.timeout: float = DEFAULT_TIMEOUT
        self.default_headers: Dict[str, str] = {
            "User-Agent": f"Cadence/{__version__}",
            "Accept": "application/json",
        }
        self.session = _retrying_session(self.default_headers)

        NetworkManager._instance = self
        cleanup.addCleanup(self.close)

    def set_timeout(self, timeout: float):
        """Default timeout in seconds for requests that don't pass their own"""
        self.timeout = float(timeout)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """
        Send a request through the shared session.

        Raises:
            requests.ConnectionError / requests.Timeout: the server was not reached
            requests.HTTPError: the server answered with an error status
        """
        self.logger.debug("%s %s", method, url)
        response = self.session.request(
            method,
            url,
            params=params,
            json=json,
            headers={**self.default_headers, **(headers or {})},
            timeout=self.timeout if timeout is None else timeout,
        )
        response.raise_for_status()
        return response

    def close(self):
        self.session.close()
        self.logger.debug("HTTP session closed")
