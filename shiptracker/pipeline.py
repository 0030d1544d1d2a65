"""
One scrape-reconcile-check cycle.

1. Open the ledger (fails fast on missing configuration, before any fetch)
2. Scrape the port listing for departed LNG tankers
3. Fetch each vessel's detail page (throttled, failures contained per vessel)
4. Merge the vessels into the ledger
5. Re-check en route shipments for arrival
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config.settings import TrackerConfig
from .ingest.arrival import ArrivalDetector, DetailPageArrivalDetector
from .ingest.base_fetcher import Throttle, build_session
from .ingest.port_listing import PortListingFetcher, VesselStub
from .ingest.vessel_detail import VesselDetailFetcher
from .ledger.arrivals import ArrivalTransitionEngine
from .ledger.models import NOTE_CAPACITY_ASSUMED, NOTE_NEEDS_MANUAL_ENTRY, DepartedVessel
from .ledger.reconcile import reconcile
from .ledger.store import CsvLedgerStore, LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Operator-facing counts for one cycle."""
    vessels_found: int = 0
    added: int = 0
    skipped: int = 0
    total: int = 0
    arrivals_checked: int = 0
    arrivals_updated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def format(self) -> str:
        return "\n".join([
            "Summary:",
            f"   Vessels found: {self.vessels_found}",
            f"   Added: {self.added}",
            f"   Skipped (duplicates): {self.skipped}",
            f"   Total shipments in ledger: {self.total}",
            f"   Arrivals updated: {self.arrivals_updated}/{self.arrivals_checked}",
        ])


def open_store(config: TrackerConfig) -> CsvLedgerStore:
    """
    Open the configured ledger, creating its header row if needed.

    Raises:
        ConfigError: If no ledger path is configured
        LedgerError: If the ledger cannot be initialized
    """
    store = CsvLedgerStore(config.require_ledger_path())
    store.initialize()
    return store


def enrich_departures(
    stubs: Sequence[VesselStub],
    detail_fetcher: VesselDetailFetcher,
    config: TrackerConfig,
) -> List[DepartedVessel]:
    """
    Fetch detail pages for departed vessels.

    Every stub yields a DepartedVessel; vessels without an IMO carry a note
    asking for manual completion.
    """
    vessels = []
    for stub in stubs:
        logger.info(f"Fetching details for {stub.name}...")
        detail = detail_fetcher.fetch_detail(stub)

        notes = []
        if not detail.has_identifier:
            logger.warning(f"  No IMO for {stub.name}; recording basic info for manual entry")
            notes.append(NOTE_NEEDS_MANUAL_ENTRY)
        if detail.capacity_cbm is None and config.default_capacity_cbm is not None:
            detail.capacity_cbm = config.default_capacity_cbm
            notes.append(NOTE_CAPACITY_ASSUMED)

        vessels.append(DepartedVessel(
            detail=detail,
            departure_date=stub.departure_date,
            notes="; ".join(notes),
        ))

    logger.info(f"Extracted details for {len(vessels)} vessels")
    return vessels


def run_cycle(
    config: TrackerConfig,
    store: Optional[LedgerStore] = None,
    session: Optional[requests.Session] = None,
    detector: Optional[ArrivalDetector] = None,
    scrape: bool = True,
    check_arrivals: bool = True,
    dry_run: bool = False,
) -> RunSummary:
    """
    Run one cycle.

    Args:
        config: Run configuration
        store: Ledger store (opened from config if None)
        session: HTTP session shared by all fetchers
        detector: Arrival capability (detail page detector if None)
        scrape: Scrape and reconcile new departures
        check_arrivals: Re-check en route shipments
        dry_run: Decide merges without writing; skips arrival writes

    Returns:
        RunSummary

    Raises:
        ConfigError: Missing configuration
        PortListingError: Listing page unreachable
        LedgerError: Ledger unreadable or merge write rejected
    """
    if store is None:
        store = open_store(config)

    session = session if session is not None else build_session()
    throttle = Throttle(config.request_delay_seconds)
    summary = RunSummary()

    if scrape:
        listing = PortListingFetcher(config, session=session, throttle=throttle).fetch_listing()
        summary.vessels_found = len(listing.departures)

        if listing.departures:
            detail_fetcher = VesselDetailFetcher(config, session=session, throttle=throttle)
            vessels = enrich_departures(listing.departures, detail_fetcher, config)
            result = reconcile(store, vessels, dry_run=dry_run)
            summary.added = result.added
            summary.skipped = result.skipped
            summary.total = result.total
        else:
            logger.info("No departed vessels found")
            summary.total = len(store.read_table()[1])

    if check_arrivals and not dry_run:
        if detector is None:
            detector = DetailPageArrivalDetector(config, session=session, throttle=throttle)
        arrivals = ArrivalTransitionEngine(store, detector).run()
        summary.arrivals_checked = arrivals.checked
        summary.arrivals_updated = arrivals.updated

    if not scrape:
        summary.total = len(store.read_table()[1])

    return summary
