"""
Section classifier for port listing pages.

The listing page puts vessels under headings such as "In Port",
"Expected Arrivals" and "Recent Departures". The classifier walks headings
and vessel entries in document order with a cursor holding the current
section; each entry is attributed to whatever section is active when it is
reached.

A vessel entry is a table row, or a vessel link outside any table row
(older layouts list vessels in plain ``div``/``li`` blocks).
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from .dom import DocumentNode

logger = logging.getLogger(__name__)


class SectionLabel(Enum):
    """Listing page sections."""
    UNCLASSIFIED = "unclassified"
    IN_PORT = "in_port"
    ARRIVALS = "arrivals"
    DEPARTURES = "departures"


HEADING_TAGS = ("h2", "h3", "h4")
ROW_TAGS = ("tr",)
LINK_TAGS = ("a",)

VESSEL_HREF_MARKER = "/vessels/"

# Checked in order; the first section with a matching phrase wins
SECTION_PHRASES = (
    (SectionLabel.IN_PORT, ("in port", "at port", "vessels in")),
    (SectionLabel.ARRIVALS, ("arrival", "expected")),
    (SectionLabel.DEPARTURES, ("departure", "sailed")),
)


def classify_heading(text: str) -> Optional[SectionLabel]:
    """Section named by a heading, or None if the heading is not a section marker."""
    lowered = (text or "").lower()
    for label, phrases in SECTION_PHRASES:
        if any(phrase in lowered for phrase in phrases):
            return label
    return None


def is_standalone_vessel_link(node: DocumentNode) -> bool:
    """Vessel link that is not inside a table row (rows are visited as a whole)."""
    if node.tag not in LINK_TAGS:
        return False
    if VESSEL_HREF_MARKER not in (node.attr("href") or ""):
        return False
    return node.ancestor("tr") is None


class SectionClassifier:
    """Finite-state walk over headings and vessel entries.

    State is the current SectionLabel. Recognised headings replace it,
    unrecognised headings leave it alone, and entries read it. There is no
    look-ahead, so an entry is never reclassified by a later heading.
    """

    def __init__(self):
        self.state = SectionLabel.UNCLASSIFIED

    def reset(self) -> None:
        self.state = SectionLabel.UNCLASSIFIED

    def visit(self, node: DocumentNode) -> Optional[SectionLabel]:
        """
        Apply one node to the state machine.

        Returns:
            The section an entry belongs to, or None for heading/other nodes
        """
        if node.tag in HEADING_TAGS:
            label = classify_heading(node.text)
            if label is not None and label != self.state:
                logger.debug(f"Entering {label.value} section at heading {node.text!r}")
            if label is not None:
                self.state = label
            return None
        if node.tag in ROW_TAGS or is_standalone_vessel_link(node):
            return self.state
        return None

    def classify(self, root: DocumentNode) -> List[Tuple[DocumentNode, SectionLabel]]:
        """
        Attribute every vessel entry in the document to a section.

        Args:
            root: Parsed listing page

        Returns:
            (entry, section) pairs in document order, where an entry is a
            ``tr`` or a standalone ``a`` node; entries before the first
            recognised heading are UNCLASSIFIED
        """
        self.reset()
        entries = []
        for node in root.find_all(HEADING_TAGS + ROW_TAGS + LINK_TAGS):
            label = self.visit(node)
            if label is not None:
                entries.append((node, label))
        return entries
