"""
Vessel detail page extraction.

Detail page layout varies between vessels and over time, so every field is
read through an ordered list of strategies. The first strategy that
produces a value wins; later strategies are not consulted. A field no
strategy can read is None, never an error.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .base_fetcher import BaseFetcher
from .dom import DocumentNode
from .port_listing import VesselStub

logger = logging.getLogger(__name__)

V = TypeVar("V")
Strategy = Callable[[DocumentNode], Optional[V]]

IMO_MMSI_LABEL = "IMO / MMSI"
CAPACITY_LABELS = ("LNG Capacity", "Capacity (LNG)")
DESTINATION_LABEL = "Destination"
DESTINATION_LINK_SELECTOR = "a._npNa"
VOYAGE_STATUS_SELECTOR = "span._mcol12ext"
ETA_PREFIX = "ETA:"

_IMO = re.compile(r"^\d{7}$")
_MMSI = re.compile(r"^\d{9}$")
_STANDALONE_IMO = re.compile(r"(?<!\d)(\d{7})(?!\d)")
_STANDALONE_MMSI = re.compile(r"(?<!\d)(\d{9})(?!\d)")
_HEADING_IMO = re.compile(r"IMO\s+(\d{7})(?!\d)")
_GROUPED_INTEGER = re.compile(r"\d[\d,]*")


@dataclass
class VesselDetail:
    """Identifiers and voyage data read from a vessel's detail page."""
    name: str
    vessel_type: str
    imo: Optional[str] = None
    mmsi: Optional[str] = None
    capacity_cbm: Optional[int] = None
    destination_port: Optional[str] = None
    destination_country: Optional[str] = None
    estimated_arrival: Optional[str] = None

    @property
    def has_identifier(self) -> bool:
        """False when no IMO was found and the record needs manual completion."""
        return self.imo is not None

    @classmethod
    def from_stub(cls, stub: VesselStub) -> "VesselDetail":
        """Basic info only, for vessels whose page could not be read."""
        return cls(name=stub.name, vessel_type=stub.vessel_type)


def first_match(strategies: Sequence[Strategy], doc: DocumentNode) -> Optional[V]:
    """Run strategies in order and return the first non-None result."""
    for strategy in strategies:
        value = strategy(doc)
        if value is not None:
            return value
    return None


def _labelled_cells(doc: DocumentNode, predicate: Callable[[str], bool]) -> List[Tuple[DocumentNode, str]]:
    """(label cell, value text) pairs for table cells whose label matches."""
    pairs = []
    for cell in doc.find_all(("td",)):
        if predicate(cell.text):
            value = cell.next_sibling()
            pairs.append((cell, value.text if value is not None else ""))
    return pairs


def _imo_mmsi_pair(doc: DocumentNode) -> Tuple[Optional[str], Optional[str]]:
    """Values of the combined "IMO / MMSI" row ("9123456 / 311000123")."""
    for _, value in _labelled_cells(doc, lambda text: text == IMO_MMSI_LABEL):
        parts = [p.strip() for p in value.split("/")]
        if len(parts) != 2:
            continue
        imo = parts[0] if _IMO.match(parts[0]) else None
        mmsi = parts[1] if _MMSI.match(parts[1]) else None
        return imo, mmsi
    return None, None


def imo_from_combined_cell(doc: DocumentNode) -> Optional[str]:
    return _imo_mmsi_pair(doc)[0]


def mmsi_from_combined_cell(doc: DocumentNode) -> Optional[str]:
    return _imo_mmsi_pair(doc)[1]


def imo_from_cell_scan(doc: DocumentNode) -> Optional[str]:
    """First cell mentioning IMO with a standalone 7-digit number in it."""
    for cell in doc.find_all(("td",)):
        text = cell.text
        if "IMO" in text:
            match = _STANDALONE_IMO.search(text)
            if match:
                return match.group(1)
    return None


def mmsi_from_cell_scan(doc: DocumentNode) -> Optional[str]:
    """First cell mentioning MMSI with a standalone 9-digit number in it."""
    for cell in doc.find_all(("td",)):
        text = cell.text
        if "MMSI" in text:
            match = _STANDALONE_MMSI.search(text)
            if match:
                return match.group(1)
    return None


def imo_from_heading(doc: DocumentNode) -> Optional[str]:
    heading = doc.select_one("h2.vst")
    if heading is None:
        return None
    match = _HEADING_IMO.search(heading.text)
    return match.group(1) if match else None


IMO_STRATEGIES: Sequence[Strategy] = (imo_from_combined_cell, imo_from_cell_scan, imo_from_heading)
MMSI_STRATEGIES: Sequence[Strategy] = (mmsi_from_combined_cell, mmsi_from_cell_scan)


def extract_capacity(doc: DocumentNode) -> Optional[int]:
    """
    LNG cargo capacity in cubic metres.

    Only LNG-specific labels are read; deadweight or gross tonnage rows
    also say "capacity" on some pages and must not be picked up.
    """
    def is_lng_label(text: str) -> bool:
        return any(label in text for label in CAPACITY_LABELS)

    for _, value in _labelled_cells(doc, is_lng_label):
        match = _GROUPED_INTEGER.search(value)
        if match:
            return int(match.group(0).replace(",", ""))
    return None


def extract_destination(doc: DocumentNode) -> Tuple[Optional[str], Optional[str]]:
    """
    Destination port text and country.

    Returns:
        (port, country); country is the last comma-separated segment and is
        only set when the text has more than one segment
    """
    for label in doc.select(".vilabel"):
        if label.text != DESTINATION_LABEL:
            continue

        link = label.next_sibling()
        if link is None or link.tag != "a" or not link.has_class("_npNa"):
            parent = label.parent()
            link = parent.select_one(DESTINATION_LINK_SELECTOR) if parent is not None else None

        destination = link.text if link is not None else ""
        if not destination:
            continue

        parts = [p.strip() for p in destination.split(",")]
        country = parts[-1] if len(parts) > 1 and parts[-1] else None
        return destination, country
    return None, None


def voyage_status_value(doc: DocumentNode, prefix: str) -> Optional[str]:
    """Text after ``prefix`` in the voyage status line ("ETA: ...", "ATA: ...")."""
    for span in doc.select(VOYAGE_STATUS_SELECTOR):
        text = span.text
        if prefix in text:
            value = text.split(prefix, 1)[1].strip()
            return value or None
    return None


def extract_estimated_arrival(doc: DocumentNode) -> Optional[str]:
    return voyage_status_value(doc, ETA_PREFIX)


def name_from_heading(doc: DocumentNode) -> Optional[str]:
    heading = doc.select_one("h1")
    return (heading.text or None) if heading is not None else None


def name_from_title(doc: DocumentNode) -> Optional[str]:
    title = doc.select_one("title")
    if title is None:
        return None
    return title.text.split("-")[0].strip() or None


NAME_STRATEGIES: Sequence[Strategy] = (name_from_heading, name_from_title)


def extract_vessel_detail(doc: DocumentNode, stub: VesselStub) -> VesselDetail:
    """Read every field from a parsed detail page, falling back to the stub's name."""
    destination_port, destination_country = extract_destination(doc)
    return VesselDetail(
        name=first_match(NAME_STRATEGIES, doc) or stub.name,
        vessel_type=stub.vessel_type,
        imo=first_match(IMO_STRATEGIES, doc),
        mmsi=first_match(MMSI_STRATEGIES, doc),
        capacity_cbm=extract_capacity(doc),
        destination_port=destination_port,
        destination_country=destination_country,
        estimated_arrival=extract_estimated_arrival(doc),
    )


class VesselDetailFetcher(BaseFetcher[DocumentNode]):
    """Fetches vessel detail pages."""

    @property
    def timeout(self) -> float:
        return self.config.detail_timeout_seconds

    def _fetch_impl(self, url: str) -> DocumentNode:
        return self.get_document(url)

    def fetch_detail(self, stub: VesselStub) -> VesselDetail:
        """
        Best-effort detail for one listed vessel.

        Never raises for fetch or parse problems: an unreachable page yields
        the stub's basic info with every other field absent.
        """
        if not stub.detail_url:
            logger.warning(f"  No detail link for {stub.name}")
            return VesselDetail.from_stub(stub)

        logger.info(f"  Accessing: {stub.detail_url}")
        doc, error = self.fetch(stub.detail_url)
        if doc is None:
            logger.warning(f"  Could not fetch details for {stub.name}: {error}")
            return VesselDetail.from_stub(stub)

        detail = extract_vessel_detail(doc, stub)
        logger.info(f"  Found IMO: {detail.imo}, MMSI: {detail.mmsi}")
        return detail
