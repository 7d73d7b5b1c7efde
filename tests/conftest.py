"""Pytest fixtures and configuration for machscrape tests."""

from typing import Union

import pytest

from machscrape.scraper.fetcher import DocumentSource
from machscrape.utils.config import AppConfig, ScraperConfig, reset_config
from machscrape.utils.exceptions import NetworkError

ORIGIN = "https://www.machines4u.com.au"
LISTING_URL = f"{ORIGIN}/brand/caterpillar/excavators/"
DETAIL_A = f"{ORIGIN}/view/advert/caterpillar-320-excavator/1001/"
DETAIL_B = f"{ORIGIN}/view/advert/caterpillar-308-excavator/1002/"


LISTING_HTML = """
<html>
<body>
<div class="col-md-9 col-sm-9 col-xs-12 search-right-column view-type-1">
    <div class="search-right-head-panel">Spotlight Ads</div>
    <div class="row">
        <div class="tiled_results_container">
            <a class="equip_link" href="/view/advert/spotlight-loader/9001/">Spotlight Loader</a>
        </div>
    </div>
    <div class="search-right-head-panel">Listings</div>
    <div class="row">
        <div class="tiled_results_container">
            <a class="equip_link" href="/view/advert/caterpillar-320-excavator/1001/">
                <img class="img-responsive" src="/img/1001.jpg" />
            </a>
            <a class="equip_link" href="/view/advert/caterpillar-320-excavator/1001/">2019 Caterpillar 320</a>
        </div>
        <div class="tiled_results_container">
            <a class="equip_link" href="https://www.machines4u.com.au/view/advert/caterpillar-308-excavator/1002/">2021 Caterpillar 308</a>
        </div>
    </div>
    <div class="search-right-head-panel">Other Ads</div>
    <div class="row">
        <div class="tiled_results_container">
            <a class="equip_link" href="/view/advert/other-dozer/9101/">Dozer</a>
            <a class="equip_link" href="/view/advert/other-grader/9102/">Grader</a>
            <a class="equip_link" href="/view/advert/caterpillar-320-excavator/1001/">Repeat</a>
        </div>
    </div>
</div>
</body>
</html>
"""


DETAIL_HTML = """
<html>
<body>
    <h1 class="m-x-t-0 list-title">2019 Caterpillar 320 Excavator</h1>
    <div class="price_container">
        <span class="price_normal"><b>$12,000 - $14,500</b></span>
    </div>
    <div class="business-name">Heavy Gear Pty Ltd</div>
    <a onclick="showAdvertMap()" href="#">Unit 4, Dubbo, NSW</a>
    <div class="ad_det">
        <div class="ad_det_children">Condition:</div>
        <div class="ad_det_children">Used</div>
    </div>
    <div class="ad_det">
        <div class="ad_det_children">Category:</div>
        <div class="ad_det_children">Excavators</div>
    </div>
    <div class="ad_det">
        <div class="ad_det_children">Make:</div>
        <div class="ad_det_children">Caterpillar</div>
    </div>
    <div class="ad_det">
        <div class="ad_det_children">Model:</div>
        <div class="ad_det_children">320</div>
    </div>
    <div class="ad_det">
        <div class="ad_det_children">Year:</div>
        <div class="ad_det_children">2019</div>
    </div>
</body>
</html>
"""


DETAIL_HTML_POA = """
<html>
<body>
    <h1 class="list-title">2021 Caterpillar 308 Mini Excavator</h1>
    <span class="price_gstex"><b>Ask for Price</b></span>
    <a onclick="showAdvertMap()">QLD</a>
    <div class="ad_det">
        <div class="ad_det_children">Make:</div>
        <div class="ad_det_children">Caterpillar</div>
        <div class="ad_det_children">Year:</div>
        <div class="ad_det_children">2021</div>
    </div>
</body>
</html>
"""


class FakeSource(DocumentSource):
    """In-memory document source keyed by URL.

    A value that is an exception is raised instead of returned; unknown
    URLs raise a 404 NetworkError.
    """

    def __init__(self, pages: dict[str, Union[str, BaseException]]):
        self.pages = pages
        self.requested: list[str] = []

    async def fetch(self, url: str) -> str:
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise NetworkError("HTTP error! status: 404", url=url, status_code=404)
        if isinstance(page, BaseException):
            raise page
        return page


@pytest.fixture
def test_config() -> AppConfig:
    """Default configuration without pacing delay."""
    return AppConfig(scraper=ScraperConfig(request_delay=0.0), log_level="DEBUG")


@pytest.fixture
def listing_html() -> str:
    return LISTING_HTML


@pytest.fixture
def detail_html() -> str:
    return DETAIL_HTML


@pytest.fixture
def fake_source() -> FakeSource:
    """Source serving the listing page and both Listings detail pages."""
    return FakeSource({
        LISTING_URL: LISTING_HTML,
        DETAIL_A: DETAIL_HTML,
        DETAIL_B: DETAIL_HTML_POA,
    })


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached configuration between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_source():
    """Factory for FakeSource instances with custom pages."""
    return FakeSource


@pytest.fixture
def listing_url() -> str:
    return LISTING_URL


@pytest.fixture
def detail_urls() -> list[str]:
    """Detail URLs of the Listings section, in document order."""
    return [DETAIL_A, DETAIL_B]


@pytest.fixture
def site_pages() -> dict[str, str]:
    """Listing and detail pages keyed by path, with every link site-relative."""
    return {
        "/brand/caterpillar/excavators/": LISTING_HTML.replace(ORIGIN, ""),
        DETAIL_A[len(ORIGIN):]: DETAIL_HTML,
        DETAIL_B[len(ORIGIN):]: DETAIL_HTML_POA,
    }
