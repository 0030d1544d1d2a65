"""
Ledger schema and shipment records.

The ledger is a table whose header row names its columns. Column order and
presence vary between deployments, so records are mapped through the header
(``ColumnMap``) rather than by position.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..ingest.vessel_detail import VesselDetail
from ..timeutil import calendar_day, format_timestamp

# Logical fields, in the order used when a new ledger is created
LEDGER_COLUMNS = [
    "vessel_name",
    "imo_number",
    "mmsi",
    "capacity_cbm",
    "cer_reported_payload",
    "departure_date",
    "destination_port",
    "destination_country",
    "estimated_arrival",
    "actual_arrival",
    "notes",
    "flagged",
]

# Older ledgers used shorter header names
COLUMN_ALIASES = {
    "name": "vessel_name",
    "imo": "imo_number",
    "capacity": "capacity_cbm",
    "destination": "destination_port",
}

FLAG_TRUE = "TRUE"
_TRUTHY = {"true", "yes", "y", "1", "x"}

NOTE_NEEDS_MANUAL_ENTRY = "IMO not found; needs manual entry"
NOTE_CAPACITY_ASSUMED = "capacity assumed"

IdentityKey = Tuple[str, str]


def normalize_header(header: str) -> str:
    """'Vessel Name' / 'CER_reported_payload' -> 'vessel_name' / 'cer_reported_payload'."""
    name = "_".join((header or "").replace("\ufeff", "").strip().lower().split())
    return COLUMN_ALIASES.get(name, name)


def identity_key(imo_number: str, departure_date) -> IdentityKey:
    """(IMO, UTC calendar day of departure); either part may be ''."""
    return (imo_number or "").strip(), calendar_day(departure_date)


@dataclass
class ShipmentRecord:
    """One shipment row of the ledger. Every text field defaults to ''."""
    vessel_name: str = ""
    imo_number: str = ""
    mmsi: str = ""
    capacity_cbm: str = ""
    cer_reported_payload: str = ""
    departure_date: str = ""
    destination_port: str = ""
    destination_country: str = ""
    estimated_arrival: str = ""
    actual_arrival: str = ""
    notes: str = ""
    flagged: bool = False

    @property
    def identity_key(self) -> IdentityKey:
        return identity_key(self.imo_number, self.departure_date)

    @property
    def is_en_route(self) -> bool:
        return not self.actual_arrival.strip()

    def to_values(self) -> Dict[str, str]:
        """Field values as ledger cell strings."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["flagged"] = FLAG_TRUE if self.flagged else ""
        return values

    @classmethod
    def from_values(cls, values: Dict[str, str]) -> "ShipmentRecord":
        kwargs = {}
        for f in fields(cls):
            raw = values.get(f.name, "")
            raw = "" if raw is None else str(raw)
            if f.name == "flagged":
                kwargs[f.name] = raw.strip().lower() in _TRUTHY
            else:
                kwargs[f.name] = raw.strip()
        return cls(**kwargs)


@dataclass
class DepartedVessel:
    """A scraped vessel ready for reconciliation: detail plus departure date."""
    detail: VesselDetail
    departure_date: Optional[datetime] = None
    notes: str = ""

    def to_record(self) -> ShipmentRecord:
        d = self.detail
        return ShipmentRecord(
            vessel_name=d.name or "",
            imo_number=d.imo or "",
            mmsi=d.mmsi or "",
            capacity_cbm=str(d.capacity_cbm) if d.capacity_cbm is not None else "",
            departure_date=format_timestamp(self.departure_date),
            destination_port=d.destination_port or "",
            destination_country=d.destination_country or "",
            estimated_arrival=d.estimated_arrival or "",
            notes=self.notes,
        )


class ColumnMap:
    """Maps logical ledger fields onto the columns of a physical header row."""

    def __init__(self, header: Sequence[str]):
        self.header = list(header)
        self._index: Dict[str, int] = {}
        for i, name in enumerate(self.header):
            # First column wins if a deployment repeats a header
            self._index.setdefault(normalize_header(name), i)

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._index

    def index(self, field_name: str) -> Optional[int]:
        return self._index.get(field_name)

    def column_name(self, field_name: str) -> Optional[str]:
        i = self._index.get(field_name)
        return self.header[i] if i is not None else None

    def to_record(self, row: Sequence[str]) -> ShipmentRecord:
        values = {}
        for field_name, i in self._index.items():
            values[field_name] = row[i] if i < len(row) else ""
        return ShipmentRecord.from_values(values)

    def to_row(self, record: ShipmentRecord) -> List[str]:
        """Cells in header order; columns with no logical field are left ''."""
        values = record.to_values()
        return [values.get(normalize_header(name), "") for name in self.header]
