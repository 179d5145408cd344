# ology/fetch.py
"""
Fetching JSON documents over HTTPS.

The resolver depends only on the Fetch signature below, so tests (and
callers with their own HTTP stack) can pass any callable.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import FetchError

logger = logging.getLogger(__name__)

# fetch(url, headers) -> parsed JSON body
Fetch = Callable[[str, Dict[str, str]], Any]


def fetch_json(url: str, headers: Optional[Dict[str, str]] = None,
               timeout: float = 30.0) -> Any:
    """
    GET a URL and parse the body as JSON.

    Args:
        url: Document URL
        headers: Extra request headers (e.g. Accept)
        timeout: Request timeout in seconds

    Returns:
        Parsed JSON

    Raises:
        FetchError: on non-2xx status, connection failure, or invalid JSON
    """
    req = Request(url, headers=dict(headers or {}), method="GET")
    logger.debug(f"GET {url}")

    try:
        with urlopen(req, timeout=timeout) as response:
            body = response.read()
    except HTTPError as e:
        raise FetchError(f"HTTP {e.code} fetching {url}", url=url, status=e.code) from e
    except URLError as e:
        raise FetchError(f"Failed to fetch {url}: {e.reason}", url=url) from e
    except (TimeoutError, OSError) as e:
        raise FetchError(f"Failed to fetch {url}: {e}", url=url) from e

    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FetchError(f"Invalid JSON from {url}: {e}", url=url) from e


def make_fetch(timeout: float = 30.0, user_agent: Optional[str] = None) -> Fetch:
    """Bind timeout and User-Agent into a Fetch callable."""
    def fetch(url: str, headers: Dict[str, str]) -> Any:
        merged = dict(headers)
        if user_agent:
            merged.setdefault("User-Agent", user_agent)
        return fetch_json(url, merged, timeout=timeout)
    return fetch
