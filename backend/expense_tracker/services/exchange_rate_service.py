"""
Exchange rate service: serves rate tables from the local store and fetches
the days it is missing from the remote provider.
"""
import logging
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from expense_tracker.domain.exchange_rates import DateRange, ExchangeRates
from expense_tracker.errors import ExchangeRateAuthError, ExchangeRateFetchError
from expense_tracker.repositories.base import ExchangeRateFetcher, ExchangeRateRepository

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ExchangeRateService:
    """Service for managing exchange rates."""

    def __init__(
        self,
        repo: ExchangeRateRepository,
        fetcher: Optional[ExchangeRateFetcher] = None,
        today: Callable[[], date] = utc_today,
    ):
        self.repo = repo
        self.fetcher = fetcher
        self.today = today

    def missing_dates(self, date_range: DateRange, stored: List[ExchangeRates]) -> List[date]:
        """Days in the range, up to today, with no stored rate table."""
        known = {rate.date for rate in stored}
        today = self.today()
        return [day for day in date_range.dates() if day <= today and day not in known]

    def get_rates(self, date_range: DateRange) -> List[ExchangeRates]:
        """
        Get rate tables for every day of the range, fetching missing days.

        A failed fetch is logged and the stored tables are returned as they
        are, so callers carry on with partial coverage. Store failures
        propagate as DependencyError.

        Args:
            date_range: Days to cover

        Returns:
            Rate tables sorted by date
        """
        stored = self.repo.get_all(date_range)
        missing = self.missing_dates(date_range, stored)
        if not missing:
            return stored

        if self.fetcher is None:
            logger.debug(f"[RATES] No rate provider configured; {len(missing)} days stay uncovered")
            return stored

        logger.info(
            f"[RATES] Fetching {len(missing)} missing days between "
            f"{missing[0].isoformat()} and {missing[-1].isoformat()}"
        )
        try:
            fetched = self.fetcher.fetch(missing)
        except ExchangeRateAuthError as e:
            logger.error(f"[RATES] Rate provider rejected credentials: {e}. Skipping.")
            return stored
        except ExchangeRateFetchError as e:
            logger.warning(f"[RATES] Failed to fetch exchange rates: {e}. Skipping.")
            return stored

        self.repo.upsert_all(fetched)
        logger.info(f"[RATES] Stored {len(fetched)} fetched rate tables")
        return sorted(stored + fetched, key=lambda rate: rate.date)
