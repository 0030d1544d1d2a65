"""Shared fixtures: zero-delay config, page HTML and a routed fake HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests

from shiptracker.config.settings import TrackerConfig

BASE_URL = "https://www.vesselfinder.com"
PORT_URL = f"{BASE_URL}/ports/CAKTM001"


LISTING_HTML = """
<html>
<head><title>Port of KITIMAT (CA KTM) - VesselFinder</title></head>
<body>
<h1>Port of Kitimat</h1>
<section>
  <h2>Vessels in Port</h2>
  <table class="ships">
    <tr><th>Vessel</th><th>Arrived</th></tr>
    <tr>
      <td><a href="/vessels/details/9111111"><div>COASTAL SPIRIT</div><div>LNG Tanker</div></a></td>
      <td>Jan 8, 09:10</td>
    </tr>
    <tr><td><a href="/vessels/details/9222222">HARBOUR HELPER Tug</a></td><td>Jan 9</td></tr>
  </table>

  <h2>Expected Arrivals</h2>
  <table>
    <tr><td><a href="/vessels/details/9333333">NORTHERN DAWN LNG Tanker</a></td><td>Jan 20</td></tr>
  </table>

  <h2>Recent Departures</h2>
  <table>
    <tr><td><a href="/vessels/details/9123456">ARCTIC VOYAGER LNG Tanker</a></td><td>Jan 10, 2025</td></tr>
    <tr>
      <td><a href="https://www.vesselfinder.com/vessels/details/9444444">PACIFIC BREEZE LNG Tanker</a></td>
      <td>Jan 12, 2025</td>
    </tr>
    <tr><td><a href="/vessels/details/9555555">BULK HAULER Bulk Carrier</a></td><td>Jan 11, 2025</td></tr>
    <tr><td><a href="/vessels/details/9123456">ARCTIC VOYAGER LNG Tanker</a></td><td>Jan 13, 2025</td></tr>
  </table>
</section>
</body>
</html>
"""


DETAIL_HTML = """
<html>
<head><title>ARCTIC VOYAGER - LNG Tanker, IMO 9123456 - VesselFinder</title></head>
<body>
<h1>ARCTIC VOYAGER</h1>
<h2 class="vst">LNG Tanker, IMO 9123456</h2>
<div class="vi__r1">
  <div class="vilabel">Destination</div>
  <a class="_npNa" href="/ports/JPTYO001">Tokyo, Japan</a>
  <span class="_mcol12ext">ETA: Jan 25, 12:00</span>
</div>
<table class="tparams">
  <tr><td class="tpc1">IMO / MMSI</td><td class="tpc2">9123456 / 311000123</td></tr>
  <tr><td class="tpc1">Gross Tonnage</td><td class="tpc2">113,000</td></tr>
  <tr><td class="tpc1">LNG Capacity</td><td class="tpc2">174,000 m³</td></tr>
</table>
</body>
</html>
"""


def make_response(text: str = "", status_code: int = 200) -> MagicMock:
    """Fake requests.Response; raise_for_status raises for non-2xx codes."""
    response = MagicMock()
    response.text = text
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status = MagicMock()
    return response


def make_session(routes: dict) -> MagicMock:
    """
    Session whose GET answers from ``routes``.

    Route values are HTML strings, response mocks, or exceptions to raise.
    Unknown URLs get a 404.
    """
    session = MagicMock()

    def fake_get(url, timeout=None, **kwargs):
        value = routes.get(url)
        if value is None:
            return make_response(status_code=404)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, str):
            return make_response(value)
        return value

    session.get.side_effect = fake_get
    return session


@pytest.fixture
def config(tmp_path):
    """Config with no delays or backoff and a ledger under tmp_path."""
    return TrackerConfig(
        port_url=PORT_URL,
        base_url=BASE_URL,
        vessel_url_template=BASE_URL + "/vessels/details/{imo}",
        request_delay_seconds=0,
        max_retries=1,
        initial_backoff_seconds=0,
        ledger_path=tmp_path / "ledger.csv",
    )
