import requests
import logging
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import Config

logger = logging.getLogger("spans-client")

SEARCH_PATH = "/api/v2/spans/events/search"
AGGREGATE_PATH = "/api/v2/spans/analytics/aggregate"


class SpansApiClient:
    """Thin HTTP client for the Datadog Spans API (v2)"""

    def __init__(self, config: Config, session: requests.Session = None):
        self.config = config
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "DD-API-KEY": self.config.DD_CLIENT_API_KEY,
            "DD-APPLICATION-KEY": self.config.DD_CLIENT_APP_KEY,
        })

        # HTTP session with retry logic
        if self.config.ENABLE_RETRY:
            retry_strategy = Retry(
                total=self.config.MAX_RETRIES,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=frozenset(["POST"]),
                backoff_factor=1,
                raise_on_status=False
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        return session

    def list_spans(self, body: dict):
        """Search spans; returns (payload, response)"""
        return self._post(SEARCH_PATH, body)

    def aggregate_spans(self, body: dict):
        """Run an aggregation over spans; returns (payload, response)"""
        return self._post(AGGREGATE_PATH, body)

    def _post(self, path: str, body: dict):
        url = f"{self.config.api_endpoint}{path}"
        logger.debug(f"POST {url}")
        logger.debug(f"Request body: {body}")

        try:
            response = self.session.post(
                url,
                json=body,
                timeout=self.config.REQUEST_TIMEOUT
            )

            logger.debug(f"Response status: {response.status_code}")
            logger.debug(f"Rate limit remaining: {response.headers.get('X-RateLimit-Remaining')}")

            response.raise_for_status()
            return response.json(), response

        except requests.RequestException as e:
            logger.error(f"Spans API error: {e}")
            logger.error(f"Failed request URL: {url}")
            raise
        except ValueError as e:
            logger.error(f"Spans API returned a non-JSON body from {url}: {e}")
            raise
