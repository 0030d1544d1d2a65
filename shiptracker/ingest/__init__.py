"""
Scraping side of the tracker.

Modules:
    dom - Parser-independent document node wrapper
    base_fetcher - HTTP session, retries and request throttle
    sections - Port listing section classifier
    port_listing - Vessel row extraction from the listing page
    vessel_detail - Detail page field extraction
    arrival - Arrival signal capability
"""
