"""
Shipment ledger.

Modules:
    models - Ledger columns, ShipmentRecord and identity keys
    store - Store boundary and the local CSV store
    reconcile - Duplicate-free merge of scraped vessels
    arrivals - En route to arrived transitions
"""
