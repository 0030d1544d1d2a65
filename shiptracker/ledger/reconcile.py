"""
Reconciliation of newly scraped vessels into the ledger.

A shipment is identified by (IMO number, UTC calendar day of departure).
Incoming vessels whose key is already in the ledger, or earlier in the same
batch, are skipped. Vessels without an IMO are always added so they can be
completed by hand later.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Set, Tuple

from .models import ColumnMap, DepartedVessel, IdentityKey, ShipmentRecord
from .store import LedgerError, LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Counts reported after a merge."""
    added: int
    total: int
    skipped: int = 0


def merge_records(
    ledger: Sequence[ShipmentRecord],
    incoming: Sequence[ShipmentRecord],
) -> Tuple[List[ShipmentRecord], MergeResult]:
    """
    Decide which incoming records to append.

    Args:
        ledger: Records already in the ledger
        incoming: Candidate records in scrape order

    Returns:
        (records to append in input order, MergeResult)
    """
    existing: Set[IdentityKey] = {r.identity_key for r in ledger}
    accepted: List[ShipmentRecord] = []

    for record in incoming:
        key = record.identity_key
        logger.debug(f"  New shipment key: {key[0]}:{key[1]} ({record.vessel_name})")

        if not record.imo_number:
            accepted.append(record)
            continue

        if key in existing:
            logger.info(f"  Duplicate shipment {record.vessel_name} ({key[0]}, {key[1] or 'no date'}) - skipping")
            continue

        existing.add(key)
        accepted.append(record)

    result = MergeResult(
        added=len(accepted),
        total=len(ledger) + len(accepted),
        skipped=len(incoming) - len(accepted),
    )
    return accepted, result


def read_ledger(store: LedgerStore) -> Tuple[ColumnMap, List[ShipmentRecord]]:
    """
    Read the ledger through its header row.

    Raises:
        LedgerError: If the ledger has no header row
    """
    header, rows = store.read_table()
    if not header:
        raise LedgerError("No headers found in the ledger. Ensure the first row has column headers.")
    columns = ColumnMap(header)
    return columns, [columns.to_record(row) for row in rows]


def reconcile(store: LedgerStore, vessels: Sequence[DepartedVessel], dry_run: bool = False) -> MergeResult:
    """
    Merge scraped vessels into the ledger.

    Read, decide and append happen under the store lock, and all accepted
    rows are written in a single append.

    Args:
        store: Ledger store
        vessels: Scraped vessels in scrape order
        dry_run: Decide without writing

    Returns:
        MergeResult

    Raises:
        LedgerError: If the ledger cannot be read or written
    """
    incoming = [v.to_record() for v in vessels]

    with store.lock():
        columns, existing = read_ledger(store)
        logger.info(f"Found {len(existing)} existing shipments in ledger")

        accepted, result = merge_records(existing, incoming)

        if not accepted:
            logger.info("No new shipments to add (all are duplicates)")
            return result

        if dry_run:
            logger.info(f"Dry run: would add {len(accepted)} shipments")
            return result

        store.append_rows([columns.to_row(r) for r in accepted])

    logger.info(f"Added {result.added} shipments to ledger")
    return result
