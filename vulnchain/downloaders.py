"""HTTP helpers shared by the vulnerability source resolvers.

Requests go through one session with a bounded timeout.  Only connection
failures are retried; everything else surfaces to the resolver, which
decides how to report it.
"""

import threading
from typing import Any, Callable

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

MSRC_UPDATES_URL = "https://api.msrc.microsoft.com/cvrf/v3.0/updates"
OSV_QUERY_URL = "https://api.osv.dev/v1/query"
CISA_KEV_URL = "https://www.cisa.gov/sites/default/files/feeds/known_exploited_vulnerabilities.json"

DEFAULT_HTTP_TIMEOUT = 30.0

_transient = retry(
    retry=retry_if_exception_type(requests.ConnectionError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    reraise=True,
)


def requests_session() -> requests.Session:
    """Create a configured requests session with default headers.

    Returns:
        Configured ``requests.Session``.
    """
    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": "VulnChain/0.1 (+https://github.com/)",
            "Accept": "application/json",
        }
    )
    return s


@_transient
def get_json(session: requests.Session, url: str, timeout: float = DEFAULT_HTTP_TIMEOUT) -> Any:
    """Fetch JSON from a URL.

    Connection failures are retried; timeouts and HTTP errors are not.

    Args:
        session: Requests session.
        url: URL to fetch.
        timeout: Per-request timeout in seconds.

    Returns:
        Parsed JSON data.
    """
    r = session.get(url, timeout=timeout)
    r.raise_for_status()
    return r.json()


@_transient
def post_json(
    session: requests.Session,
    url: str,
    payload: dict[str, Any],
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> Any:
    """POST a JSON body and return the parsed JSON response.

    Args:
        session: Requests session.
        url: Endpoint URL.
        payload: JSON-serializable request body.
        timeout: Per-request timeout in seconds.

    Returns:
        Parsed JSON data.
    """
    r = session.post(url, json=payload, timeout=timeout)
    r.raise_for_status()
    return r.json()


class CatalogCache:
    """Scan-scoped, load-once cache for a static catalog.

    The first caller runs the loader while holding the lock; concurrent
    callers wait and then reuse the loaded value.  A failed load leaves
    the cache empty so a later call can try again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Any = None
        self._loaded = False
        self.load_count = 0

    @property
    def loaded(self) -> bool:
        return self._loaded

    def get(self, loader: Callable[[], Any]) -> Any:
        """Return the cached value, loading it on first use.

        Args:
            loader: Zero-argument callable producing the catalog.

        Returns:
            The cached catalog.
        """
        if self._loaded:
            return self._value
        with self._lock:
            if not self._loaded:
                self.load_count += 1
                self._value = loader()
                self._loaded = True
        return self._value

    def reset(self) -> None:
        """Drop the cached value; the next ``get`` reloads."""
        with self._lock:
            self._value = None
            self._loaded = False
