import os
import random
from typing import Any, Dict, List

import requests
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.errors import NotFound, RemoteUnavailable
from core.logger import get_logger
from core.models import Product

logger = get_logger(__name__)

BASE_URL = os.getenv("CATALOG_API_BASE_URL", "https://fakestoreapi.com").rstrip("/")
HTTP_TIMEOUT = float(os.getenv("CATALOG_HTTP_TIMEOUT", "10"))
FETCH_ATTEMPTS = int(os.getenv("CATALOG_FETCH_ATTEMPTS", "3"))
USER_AGENT = os.getenv("CATALOG_USER_AGENT", "catalog-sync/0.1 (+python-requests)")
PROXY_URL = os.getenv("CATALOG_PROXY_URL", "").strip()

# The service has no inventory fields; these are display placeholders.
STOCK_MIN = 1
STOCK_MAX = 100
IN_STOCK_PROBABILITY = 0.9


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Content-Type": "application/json"})
    if PROXY_URL:
        session.proxies.update({"http": PROXY_URL, "https": PROXY_URL})
    return session


def _is_not_found(exc: BaseException) -> bool:
    return (
        isinstance(exc, requests.HTTPError)
        and exc.response is not None
        and exc.response.status_code == 404
    )


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, requests.RequestException) and not _is_not_found(exc)


class RemoteCatalogClient:
    """
    Client for a fakestoreapi.com-shaped JSON catalog.

    Reads are retried with exponential jitter; mirror writes are single-shot.
    Every network failure surfaces as RemoteUnavailable.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session=None,
        rng: random.Random | None = None,
        attempts: int | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or BASE_URL).rstrip("/")
        self.session = session if session is not None else _build_session()
        self.rng = rng or random.Random()
        self.attempts = max(1, attempts if attempts is not None else FETCH_ATTEMPTS)
        self.timeout = timeout if timeout is not None else HTTP_TIMEOUT

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        logger.info("API request: %s %s", method, url)
        r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        r.raise_for_status()
        logger.debug("API response: %s %s", r.status_code, url)
        return r

    def _get_json(self, path: str, product_id: int | None = None) -> Any:
        retrying = Retrying(
            wait=wait_exponential_jitter(initial=1, max=30),
            stop=stop_after_attempt(self.attempts),
            retry=retry_if_exception(_is_transient),
        )
        try:
            r = retrying(self._request, "GET", path)
        except RetryError as e:
            raise RemoteUnavailable(
                f"GET {path} failed after {self.attempts} attempts: {e.last_attempt.exception()}"
            ) from e
        except requests.RequestException as e:
            # only 404s get here, everything else is retried
            if product_id is not None:
                raise NotFound(product_id) from e
            raise RemoteUnavailable(f"GET {path} failed: {e}") from e
        if not r.text or not r.text.strip():
            return None
        try:
            return r.json()
        except ValueError as e:
            raise RemoteUnavailable(f"GET {path} returned invalid JSON: {e}") from e

    def _with_inventory(self, raw: Dict[str, Any]) -> Product:
        data = dict(raw)
        data["stock"] = self.rng.randint(STOCK_MIN, STOCK_MAX)
        data["inStock"] = self.rng.random() < IN_STOCK_PROBABILITY
        return Product.from_dict(data)

    def fetch_all(self) -> List[Product]:
        payload = self._get_json("/products")
        if not isinstance(payload, list):
            raise RemoteUnavailable(f"GET /products returned {type(payload).__name__}, expected a list")

        products: List[Product] = []
        for raw in payload:
            try:
                products.append(self._with_inventory(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed remote product %r: %s", raw, e)
        logger.info("Remote catalog: found %d products", len(products))
        return products

    def fetch_one(self, product_id: int) -> Product:
        path = f"/products/{product_id}"
        payload = self._get_json(path, product_id=product_id)
        # fakestoreapi answers unknown ids with 200 and an empty body
        if not isinstance(payload, dict) or not payload:
            raise NotFound(product_id)
        try:
            return self._with_inventory(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise RemoteUnavailable(f"GET {path} returned a malformed product: {e}") from e

    def fetch_categories(self) -> List[str]:
        payload = self._get_json("/products/categories")
        if not isinstance(payload, list):
            raise RemoteUnavailable("GET /products/categories did not return a list")
        return [str(c) for c in payload]

    # -- Best-effort mirror calls --

    def _mirror(self, method: str, path: str, **kwargs) -> None:
        try:
            self._request(method, path, **kwargs)
        except requests.RequestException as e:
            raise RemoteUnavailable(f"{method} {path} failed: {e}") from e

    def create(self, fields: Dict[str, Any]) -> None:
        self._mirror("POST", "/products", json=fields)

    def update(self, product_id: int, fields: Dict[str, Any]) -> None:
        self._mirror("PUT", f"/products/{product_id}", json=fields)

    def delete(self, product_id: int) -> None:
        self._mirror("DELETE", f"/products/{product_id}")
