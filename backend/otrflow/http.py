"""
Shared HTTP session factory for the service clients.

Both the key service and the cut list provider talk plain HTTP to small
legacy endpoints; sessions retry transient server errors with backoff.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_TIMEOUT_SECONDS = 30.0


def create_session(user_agent: str, retries: int = 3) -> requests.Session:
    """Create a requests session with retry logic and a fixed user agent."""
    session = requests.Session()

    retry_strategy = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({"User-Agent": user_agent})
    return session
