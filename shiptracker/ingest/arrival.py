"""
Arrival detection for vessels recorded as en route.

The arrival predicate depends on a live page whose layout is not stable, so
it sits behind the ``ArrivalDetector`` interface. The arrival transition
engine only sees ``ArrivalSignal`` values and does not know how they were
derived.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..config.settings import TrackerConfig
from ..timeutil import parse_month_day, parse_timestamp, utc_now
from .base_fetcher import Throttle
from .vessel_detail import VesselDetailFetcher, voyage_status_value

logger = logging.getLogger(__name__)

ATA_PREFIX = "ATA:"


@dataclass
class ArrivalSignal:
    """Result of re-checking one vessel."""
    has_arrived: bool
    actual_arrival: Optional[datetime] = None
    should_flag: bool = False

    @classmethod
    def not_arrived(cls) -> "ArrivalSignal":
        return cls(has_arrived=False)


def is_implausible_voyage(
    departure: Optional[datetime],
    arrival: Optional[datetime],
    min_voyage_days: int,
) -> bool:
    """
    True when an arrival deserves human review.

    That is an arrival at or before the departure, or one sooner than
    ``min_voyage_days`` after it. Without both timestamps nothing is flagged.
    """
    if departure is None or arrival is None:
        return False
    return arrival - departure < timedelta(days=min_voyage_days)


class ArrivalDetector(ABC):
    """Capability answering "has this vessel arrived?" for one ledger entry."""

    @abstractmethod
    def check(self, imo: str, departure_date: Optional[datetime]) -> ArrivalSignal:
        """
        Derive the current arrival signal for a vessel.

        Implementations must not raise for fetch or parse problems; they
        return ``ArrivalSignal.not_arrived()`` instead.
        """


class DetailPageArrivalDetector(ArrivalDetector):
    """Reads the vessel detail page and reports arrival when it shows an ATA.

    While a vessel is at sea the voyage line reads "ETA: ...". Once it
    reaches its destination the same line switches to "ATA: ...".
    """

    def __init__(
        self,
        config: TrackerConfig,
        session=None,
        throttle: Optional[Throttle] = None,
    ):
        self.config = config
        self.fetcher = VesselDetailFetcher(config, session=session, throttle=throttle)

    def check(self, imo: str, departure_date: Optional[datetime]) -> ArrivalSignal:
        url = self.config.vessel_url(imo)
        doc, error = self.fetcher.fetch(url)
        if doc is None:
            logger.warning(f"  Could not check arrival for IMO {imo}: {error}")
            return ArrivalSignal.not_arrived()

        ata_text = voyage_status_value(doc, ATA_PREFIX)
        if not ata_text:
            return ArrivalSignal.not_arrived()

        reference = (departure_date or utc_now()).date()
        arrival = parse_month_day(ata_text, reference) or parse_timestamp(ata_text)
        if arrival is None:
            logger.warning(f"  Unrecognised ATA for IMO {imo}: {ata_text!r}")
            return ArrivalSignal.not_arrived()

        # A year-less ATA early in January belongs to the year after a December departure
        if departure_date is not None and arrival < departure_date - timedelta(days=180):
            try:
                arrival = arrival.replace(year=arrival.year + 1)
            except ValueError:
                pass  # Feb 29 has no counterpart next year; keep as parsed

        return ArrivalSignal(
            has_arrived=True,
            actual_arrival=arrival,
            should_flag=is_implausible_voyage(departure_date, arrival, self.config.min_voyage_days),
        )
