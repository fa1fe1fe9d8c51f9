"""Live exchange rate providers."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from tradelytics.exceptions import RateProviderError
from tradelytics.models import BASE_CURRENCY, ExchangeRateSet

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_URL = "https://open.er-api.com/v6/latest/{base}"


class RateProvider(ABC):
    """Abstract source of the latest exchange rates."""

    @abstractmethod
    async def fetch_latest(self, base_currency: str = BASE_CURRENCY) -> ExchangeRateSet:
        """Fetch the latest rates relative to a base currency.

        Args:
            base_currency: Base currency code.

        Returns:
            ExchangeRateSet stamped with the fetch time.

        Raises:
            RateProviderError: If the provider does not answer successfully.
        """
        pass


class ExchangeRateApiProvider(RateProvider):
    """Rates from the public ExchangeRate-API ``latest`` endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_PROVIDER_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the provider.

        Args:
            url: Endpoint template with a ``{base}`` placeholder.
            timeout: Request timeout in seconds.
            client: Optional shared HTTP client; one is created per call otherwise.
        """
        self._url = url
        self._timeout = timeout
        self._client = client

    async def fetch_latest(self, base_currency: str = BASE_CURRENCY) -> ExchangeRateSet:
        url = self._url.format(base=base_currency)
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise RateProviderError(f"Rate request failed: {e}") from e

        if response.status_code != 200:
            raise RateProviderError(
                f"Rate request returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise RateProviderError("Rate response is not valid JSON") from e

        if not isinstance(payload, dict):
            raise RateProviderError("Rate response is not a JSON object")
        if payload.get("result", "success") != "success" or not payload.get("rates"):
            raise RateProviderError(
                f"Rate provider reported failure: {payload.get('error-type', 'no rates')}"
            )

        logger.debug("Fetched %d rates for base %s", len(payload["rates"]), base_currency)
        return ExchangeRateSet(
            base=base_currency,
            rates=payload["rates"],
            timestamp=int(time.time() * 1000),
        )
