"""
Arrival transition: en route ledger entries become arrived.

For each entry with an IMO and no actual arrival, the arrival detector is
asked for a signal. Arrived vessels get ``actual_arrival`` written and, when
the signal says so, ``flagged`` set. A vessel whose row cannot be found or
written is logged and skipped; the run carries on.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from ..ingest.arrival import ArrivalDetector, ArrivalSignal
from ..timeutil import calendar_day, format_timestamp, parse_timestamp
from .models import FLAG_TRUE, ShipmentRecord
from .reconcile import read_ledger
from .store import LedgerError, LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class ArrivalCheckResult:
    """Counts reported after an arrival pass."""
    checked: int = 0
    arrived: int = 0
    updated: int = 0
    flagged: int = 0


def find_pending(records: Sequence[ShipmentRecord]) -> List[ShipmentRecord]:
    """Ledger entries still en route that can be looked up by IMO."""
    return [r for r in records if r.is_en_route and r.imo_number]


def apply_arrival(
    store: LedgerStore,
    imo: str,
    departure_day: str,
    actual_arrival: datetime,
    should_flag: bool = False,
) -> bool:
    """
    Record an arrival on the ledger row matching (imo, departure day).

    Args:
        store: Ledger store
        imo: IMO number of the vessel
        departure_day: Departure calendar day, YYYY-MM-DD ('' if unknown)
        actual_arrival: Arrival timestamp
        should_flag: Also mark the row for review

    Returns:
        True if the row was found and updated, False otherwise
    """
    try:
        with store.lock():
            columns, records = read_ledger(store)

            arrival_column = columns.column_name("actual_arrival")
            if arrival_column is None:
                logger.warning("Ledger has no actual_arrival column; cannot record arrivals")
                return False

            for row_index, record in enumerate(records):
                if record.imo_number != imo or calendar_day(record.departure_date) != departure_day:
                    continue

                values = {arrival_column: format_timestamp(actual_arrival)}
                flag_column = columns.column_name("flagged")
                if should_flag and flag_column is not None:
                    values[flag_column] = FLAG_TRUE

                # One write, so a row never ends up arrived but unflagged
                store.update_cells(row_index, values)
                return True

    except LedgerError as e:
        logger.error(f"Error updating shipment arrival for IMO {imo}: {e}")
        return False

    logger.warning(f"No ledger row for IMO {imo} departing {departure_day or '(no date)'}")
    return False


class ArrivalTransitionEngine:
    """Checks en route shipments and records the ones that have arrived."""

    def __init__(self, store: LedgerStore, detector: ArrivalDetector):
        self.store = store
        self.detector = detector

    def check_vessel(self, record: ShipmentRecord) -> Optional[ArrivalSignal]:
        """Signal for one en route record, or None if it has not arrived."""
        departure = parse_timestamp(record.departure_date)
        signal = self.detector.check(record.imo_number, departure)
        return signal if signal.has_arrived and signal.actual_arrival is not None else None

    def run(self) -> ArrivalCheckResult:
        """
        Check every en route shipment once.

        Detector requests share the run's throttle, so consecutive vessels
        are spaced by the configured request delay.

        Raises:
            LedgerError: If the ledger cannot be read at the start
        """
        _, records = read_ledger(self.store)
        pending = find_pending(records)
        result = ArrivalCheckResult()
        logger.info(f"Checking arrivals for {len(pending)} en route shipments")

        for record in pending:
            result.checked += 1
            logger.info(f"Checking {record.vessel_name} (IMO {record.imo_number})...")
            signal = self.check_vessel(record)
            if signal is None:
                continue

            result.arrived += 1
            updated = apply_arrival(
                self.store,
                record.imo_number,
                calendar_day(record.departure_date),
                signal.actual_arrival,
                signal.should_flag,
            )
            if updated:
                result.updated += 1
                if signal.should_flag:
                    result.flagged += 1
                logger.info(
                    f"  Arrived {format_timestamp(signal.actual_arrival)}"
                    + (" (flagged for review)" if signal.should_flag else "")
                )

        logger.info(f"Arrivals updated: {result.updated}/{result.checked}")
        return result
