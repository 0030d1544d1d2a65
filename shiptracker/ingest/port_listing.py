"""
Vessel extraction for the port listing page.

Turns the classified entries of the listing page into VesselStub records:
a cleaned vessel name, a link to the detail page and, for departures,
the departure date shown in the row.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from ..timeutil import MONTH_ABBREVIATIONS, parse_month_day
from .base_fetcher import BaseFetcher
from .dom import DocumentNode
from .sections import SectionClassifier, SectionLabel

logger = logging.getLogger(__name__)

LNG_VESSEL_TYPE = "LNG Tanker"

VESSEL_TYPE_SUFFIXES = (
    "LNG Tanker",
    "Bulk Carrier",
    "Passenger ship",
    "Pleasure craft",
    "Tug",
    "SAR",
    "General Cargo Ship",
    "Passenger/Ro-Ro Cargo Ship",
)

_SUFFIX_PATTERN = re.compile(
    r"\s+(?:" + "|".join(re.escape(s) for s in VESSEL_TYPE_SUFFIXES) + r")\s*$",
    re.IGNORECASE,
)

# A "name" that is really a date cell ("Jan 5") or a number cell
_DATE_LIKE_NAME = re.compile(r"^(?:" + "|".join(MONTH_ABBREVIATIONS) + r")\s+\d", re.IGNORECASE)

MIN_NAME_LENGTH = 6

VESSEL_LINK_SELECTOR = 'a[href*="/vessels/"]'


class PortListingError(Exception):
    """Raised when the port listing page cannot be fetched at all."""
    pass


@dataclass
class VesselStub:
    """A vessel reference from the listing page, before enrichment."""
    name: str
    vessel_type: str
    detail_url: Optional[str]
    section: SectionLabel
    departure_date: Optional[datetime] = None


@dataclass
class PortListing:
    """LNG vessels found on one listing page, grouped by section."""
    in_port: List[VesselStub] = field(default_factory=list)
    arrivals: List[VesselStub] = field(default_factory=list)
    departures: List[VesselStub] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "in_port": len(self.in_port),
            "arrivals": len(self.arrivals),
            "departures": len(self.departures),
        }


def clean_vessel_name(raw: str) -> str:
    """Strip a trailing vessel-type suffix ("Pacific Breeze LNG Tanker" -> "Pacific Breeze")."""
    return _SUFFIX_PATTERN.sub("", (raw or "").strip()).strip()


def is_plausible_vessel_name(name: str) -> bool:
    """Reject names that are too short or look like a date or number cell."""
    if len(name) < MIN_NAME_LENGTH:
        return False
    if name[0].isdigit():
        return False
    if _DATE_LIKE_NAME.match(name):
        return False
    return True


def extract_departure_date(row: DocumentNode, reference: Optional[date] = None) -> Optional[datetime]:
    """
    Departure date from the first cell of a row that holds a valid date.

    Args:
        row: Listing table row
        reference: Date supplying the year when the cell omits it

    Returns:
        UTC datetime or None
    """
    for cell in row.find_all(("td",)):
        parsed = parse_month_day(cell.text, reference)
        if parsed is not None:
            return parsed
    return None


def extract_vessel_stub(
    row: DocumentNode,
    section: SectionLabel,
    base_url: str,
    reference: Optional[date] = None,
) -> Optional[VesselStub]:
    """
    Build a stub from one listing entry, or None if it is not an LNG vessel.

    The entry is a table row or a standalone vessel link. For a link, its
    parent element is the context searched for the LNG marker and date
    cells. Departure dates are only read for entries in the departures
    section.
    """
    if row.tag == "a":
        link, context = row, row.parent() or row
    else:
        link, context = row.select_one(VESSEL_LINK_SELECTOR), row
    if link is None:
        return None

    name = clean_vessel_name(link.text)
    if not is_plausible_vessel_name(name):
        return None

    if "lng tanker" not in context.text.lower():
        return None

    href = link.attr("href") or ""
    detail_url = urljoin(base_url, href) if href else None

    departure_date = None
    if section == SectionLabel.DEPARTURES:
        departure_date = extract_departure_date(context, reference)
        if departure_date is not None:
            logger.info(f"  Found departure date for {name}: {departure_date:%Y-%m-%d}")

    return VesselStub(
        name=name,
        vessel_type=LNG_VESSEL_TYPE,
        detail_url=detail_url,
        section=section,
        departure_date=departure_date,
    )


def extract_listing(
    rows: Sequence[Tuple[DocumentNode, SectionLabel]],
    base_url: str,
    reference: Optional[date] = None,
) -> PortListing:
    """
    Extract LNG vessel stubs from classified entries.

    Unclassified entries are ignored. Within each section the first entry with a
    given cleaned name wins.
    """
    listing = PortListing()
    buckets = {
        SectionLabel.IN_PORT: listing.in_port,
        SectionLabel.ARRIVALS: listing.arrivals,
        SectionLabel.DEPARTURES: listing.departures,
    }
    seen = {label: set() for label in buckets}

    for row, section in rows:
        if section not in buckets:
            continue
        stub = extract_vessel_stub(row, section, base_url, reference)
        if stub is None or stub.name in seen[section]:
            continue
        seen[section].add(stub.name)
        buckets[section].append(stub)

    return listing


def extract_departures(root: DocumentNode, base_url: str, reference: Optional[date] = None) -> List[VesselStub]:
    """Departed LNG vessels on a parsed listing page."""
    rows = SectionClassifier().classify(root)
    return extract_listing(rows, base_url, reference).departures


class PortListingFetcher(BaseFetcher[PortListing]):
    """Fetches the configured port page and extracts its vessels."""

    @property
    def timeout(self) -> float:
        return self.config.listing_timeout_seconds

    def _fetch_impl(self, url: str) -> PortListing:
        root = self.get_document(url)
        rows = SectionClassifier().classify(root)
        return extract_listing(rows, self.config.base_url)

    def fetch_listing(self) -> PortListing:
        """
        Fetch and parse the port listing.

        Raises:
            PortListingError: If the page could not be fetched after retries
        """
        logger.info(f"Scraping port page {self.config.port_url}")
        listing, error = self.fetch(self.config.port_url)
        if listing is None:
            raise PortListingError(f"Unable to fetch port listing: {error}")

        counts = listing.counts()
        logger.info(
            f"Found vessels - In Port: {counts['in_port']}, "
            f"Arrivals: {counts['arrivals']}, Departures: {counts['departures']}"
        )
        if listing.departures:
            logger.info("Departed vessels: " + ", ".join(v.name for v in listing.departures))
        return listing
