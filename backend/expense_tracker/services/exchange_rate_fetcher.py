"""
HTTP client for the remote exchange-rate provider.

The provider serves one rate table per day at a URL built from the
configured template, e.g. ``https://host/historical/{date}.json?app_id={apikey}``,
and replies with ``{"base": "USD", "rates": {"EUR": 0.84, ...}}``.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

import httpx

from expense_tracker.config import ExchangeRateFetcherSettings
from expense_tracker.domain.exchange_rates import ExchangeRates
from expense_tracker.errors import (
    ExchangeRateAuthError,
    ExchangeRateFetchError,
    IncorrectInputError,
)
from expense_tracker.repositories.base import ExchangeRateFetcher

logger = logging.getLogger(__name__)


class HttpExchangeRateFetcher(ExchangeRateFetcher):
    def __init__(self, settings: ExchangeRateFetcherSettings, client: Optional[httpx.Client] = None):
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=settings.timeout,
            headers={"Accept": "application/json"},
        )

    def url_for(self, day: date) -> str:
        return self.settings.url.format(date=day.isoformat(), apikey=self.settings.apikey)

    def fetch(self, dates: Sequence[date]) -> List[ExchangeRates]:
        """
        Fetch rate tables for the given days.

        Raises:
            ExchangeRateAuthError: If the provider answers 401
            ExchangeRateFetchError: On transport errors, other non-2xx replies
                or an unreadable body
        """
        results = []
        for day in dates:
            results.append(self._fetch_one(day))
        return results

    def _fetch_one(self, day: date) -> ExchangeRates:
        try:
            response = self.client.get(self.url_for(day))
        except httpx.HTTPError as e:
            raise ExchangeRateFetchError(f"failed response for {day.isoformat()}: {e}", cause=e)

        if response.status_code == 401:
            raise ExchangeRateAuthError(f"failed to authorize: {response.text}")
        if not response.is_success:
            raise ExchangeRateFetchError(f"unsuccessful reply: {response.text}")

        try:
            payload = response.json(parse_float=Decimal)
            rates = ExchangeRates(
                date=day,
                base_currency=payload.get("base", ""),
                rates=payload.get("rates") or {},
            )
        except (ValueError, AttributeError, IncorrectInputError) as e:
            raise ExchangeRateFetchError(f"response decode for {day.isoformat()}: {e}", cause=e)

        logger.debug(f"[RATES] Fetched {len(rates.rates)} rates for {day.isoformat()}")
        return rates

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
