"""
LNG shipment tracker.

Scrapes a port listing page for departed LNG tankers, enriches each vessel
from its detail page, merges the result into a deduplicated shipment ledger
and later records arrivals.

Modules:
    config - Run configuration (YAML + environment)
    ingest - Page fetching and HTML extraction
    ledger - Ledger schema, store, reconciliation and arrivals
    pipeline - One scrape-reconcile-check cycle
    cli - Command-line entry point
"""

__version__ = "1.0.0"
