"""
Pytest Fixtures for the agent scraper tests

Inline HTML pages, a canned fetcher and a recording sink, so every test runs
offline against the real parsing and crawl code.
"""

import threading

import orjson
import pytest


# =============================================================================
# HTML BUILDERS
# =============================================================================


def _next_data_html(page_props: dict) -> str:
    payload = orjson.dumps({"props": {"pageProps": page_props}}).decode("utf-8")
    return (
        "<html><head>"
        f'<script id="__NEXT_DATA__" type="application/json">{payload}</script>'
        "</head><body><div id='__next'></div></body></html>"
    )


def _json_ld_html(*blocks) -> str:
    scripts = "".join(
        f'<script type="application/ld+json">{orjson.dumps(b).decode("utf-8")}</script>' for b in blocks
    )
    return f"<html><head>{scripts}</head><body><h1>Profile</h1></body></html>"


@pytest.fixture
def next_data_html():
    """Build a page carrying props.pageProps in a __NEXT_DATA__ script."""
    return _next_data_html


@pytest.fixture
def json_ld_html():
    """Build a page carrying one or more application/ld+json blocks."""
    return _json_ld_html


@pytest.fixture
def empty_html() -> str:
    return "<html><head><title>Find an agent</title></head><body><main></main></body></html>"


def _raw_agent(n: int, **extra) -> dict:
    raw = {
        "id": n,
        "slug": f"agent-{n}",
        "name": f"Agent {n}",
        "broker": {"id": 900 + n, "name": "Acme Realty"},
    }
    raw.update(extra)
    return raw


@pytest.fixture
def raw_agent():
    """Factory for a minimal embedded-state agent payload."""
    return _raw_agent


@pytest.fixture
def search_page(next_data_html):
    """Factory: a search-results page with agents numbered `start`..`start+count-1`."""

    def build(start: int, count: int, **extra) -> str:
        return next_data_html({"brokers": [_raw_agent(n, **extra) for n in range(start, start + count)]})

    return build


def profile_url(n: int) -> str:
    return f"https://www.propertyfinder.ae/en/agent/agent-{n}-{n}"


@pytest.fixture
def agent_url():
    """Canonical profile URL of the n-th fixture agent."""
    return profile_url


AGENT_CARDS_HTML = """
<html><body>
  <section>
    <div data-testid="agent-card">
      <a href="/en/agent/jane-doe-101"><img src="//cdn.example.com/jane.jpg"></a>
      <h2 data-testid="agent-name">Jane  Doe</h2>
      <span class="agency">Acme Realty</span>
      <span class="location">Dubai Marina</span>
      <span class="listing-count">1,250 properties</span>
      <span class="rating">4.8</span>
      <a href="mailto:jane@acme.ae">Email</a>
      <a href="tel:+971501234567">Call</a>
      <a href="https://wa.me/971501234567">WhatsApp</a>
    </div>
    <div data-testid="agent-card">
      <a href="https://www.propertyfinder.ae/en/agent/omar-ali-102?ref=search">Omar</a>
      <h3>Omar Ali</h3>
    </div>
    <div class="agent-card-legacy">
      <a href="/en/agent/legacy-card-103">Legacy</a>
      <h3>Legacy Card</h3>
    </div>
  </section>
</body></html>
"""


@pytest.fixture
def agent_cards_html() -> str:
    return AGENT_CARDS_HTML


# =============================================================================
# FAKES
# =============================================================================


class FakeFetcher:
    """
    Canned PageFetcher stand-in.
    pages: url -> html, or an Exception instance to raise for that url.
    Unknown urls raise FetchError(http_404).
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch(self, url, referer=None):
        from agent_scraper.core.http import FetchError

        with self._lock:
            self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "http_404", 404)
        if isinstance(page, Exception):
            raise page
        return page

    def close(self):
        self.closed = True


class RecordingSink:
    """Sink that keeps every (record, completeness) pair in memory."""

    def __init__(self):
        self.rows = []
        self.closed = False

    def write(self, record, completeness):
        self.rows.append((record, completeness))

    def close(self):
        self.closed = True

    @property
    def records(self):
        return [r for r, _ in self.rows]


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def make_adapter():
    """Factory: PropertyFinderAdapter over a FakeFetcher built from `pages`."""
    from agent_scraper.core.config import RunConfig
    from agent_scraper.sites.propertyfinder.adapter import PropertyFinderAdapter

    def build(pages=None, **config_kwargs):
        config = RunConfig(**config_kwargs)
        fetcher = FakeFetcher(pages)
        return PropertyFinderAdapter(config, fetcher=fetcher), config, fetcher

    return build


@pytest.fixture
def no_sleep():
    """Drop-in for time.sleep that records the requested delays."""
    delays = []

    def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep
