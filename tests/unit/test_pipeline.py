"""Unit tests for batch orchestration and progressive delivery."""

import asyncio

import pytest

from machscrape.scraper.events import EventType
from machscrape.scraper.models import NOT_AVAILABLE
from machscrape.scraper.pipeline import RunState, ScrapePipeline, ScrapeRun
from machscrape.utils.exceptions import EmptyReason, EmptyResultError, InvalidURLError, NetworkError, PerItemError


async def _collect(stream):
    return [event async for event in stream]


class TestBufferedRun:
    """Test run() returning the aggregate outcome."""

    def test_records_in_collection_order(self, test_config, fake_source, listing_url, detail_urls):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)
        outcome = asyncio.run(pipeline.run(listing_url))

        assert [record.url for record in outcome.records] == detail_urls
        assert outcome.count == 2
        assert outcome.failure_count == 0
        assert fake_source.requested == [listing_url, *detail_urls]

    def test_record_fields(self, test_config, fake_source, listing_url):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)
        first, second = asyncio.run(pipeline.run(listing_url)).records

        assert first.price == "14500"
        assert first.brand == "Caterpillar"
        assert second.price == ""
        assert second.seller == NOT_AVAILABLE
        assert second.location == "QLD"
        assert second.year == "2021"

    def test_failed_detail_does_not_abort(self, test_config, fake_source, listing_url, detail_urls):
        """Test one failing detail page is recorded and the batch continues."""
        fake_source.pages[detail_urls[0]] = NetworkError("HTTP error! status: 500", status_code=500)
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        outcome = asyncio.run(pipeline.run(listing_url))

        assert [record.url for record in outcome.records] == [detail_urls[1]]
        assert outcome.failure_count == 1
        assert outcome.failures[0].url == detail_urls[0]
        assert "500" in outcome.failures[0].reason

    def test_unexpected_detail_error_isolated(self, test_config, fake_source, listing_url, detail_urls):
        fake_source.pages[detail_urls[1]] = ValueError("bad bytes")
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        outcome = asyncio.run(pipeline.run(listing_url))

        assert outcome.count == 1
        assert outcome.failures[0].reason == "ValueError: bad bytes"

    def test_unexpected_error_wrapped_with_cause(self, test_config, fake_source, listing_url, detail_urls, monkeypatch):
        """Test an unexpected detail error is wrapped as a per-item error keeping its cause."""
        original = ScrapeRun._failed
        seen = []

        def recording(run, reference, error):
            seen.append(error)
            return original(run, reference, error)

        monkeypatch.setattr(ScrapeRun, "_failed", recording)
        cause = ValueError("bad bytes")
        fake_source.pages[detail_urls[1]] = cause
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        asyncio.run(pipeline.run(listing_url))

        [error] = seen
        assert isinstance(error, PerItemError)
        assert error.cause is cause
        assert error.context == {"url": detail_urls[1], "cause": "ValueError"}

    def test_page_without_fields_is_failed_item(self, test_config, fake_source, listing_url, detail_urls):
        """Test a detail page yielding nothing at all counts as a failure."""
        fake_source.pages[detail_urls[0]] = "<html><body><p>Listing removed</p></body></html>"
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        outcome = asyncio.run(pipeline.run(listing_url))

        assert outcome.count == 1
        assert outcome.failures[0].reason == "No recoverable fields on detail page"

    def test_main_page_failure_is_fatal(self, test_config, make_source, listing_url):
        source = make_source({listing_url: NetworkError("HTTP error! status: 503", status_code=503)})
        pipeline = ScrapePipeline(config=test_config, source=source)

        with pytest.raises(NetworkError):
            asyncio.run(pipeline.run(listing_url))

        assert source.requested == [listing_url]

    def test_missing_section_is_fatal(self, test_config, make_source, listing_url):
        source = make_source({listing_url: "<html><body><h2>Nothing</h2></body></html>"})
        pipeline = ScrapePipeline(config=test_config, source=source)

        with pytest.raises(EmptyResultError) as exc_info:
            asyncio.run(pipeline.run(listing_url))

        assert exc_info.value.reason is EmptyReason.SECTION_NOT_FOUND

    @pytest.mark.parametrize("url", [
        None,
        "",
        "   ",
        "not a url",
        "ftp://www.machines4u.com.au/listing",
        "https://www.example.com/brand/caterpillar/",
        "https://machines4u.com.au.evil.test/",
    ])
    def test_invalid_url_makes_no_request(self, test_config, fake_source, url):
        """Test validation fails before any network activity."""
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        with pytest.raises(InvalidURLError):
            asyncio.run(pipeline.run(url))

        assert fake_source.requested == []

    def test_subdomain_accepted(self, test_config, fake_source):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)
        run = pipeline.start("https://m.machines4u.com.au/search/")

        assert run.state is RunState.IDLE


class TestRunState:
    """Test run lifecycle states."""

    def test_done(self, test_config, fake_source, listing_url):
        async def drive():
            run = ScrapePipeline(config=test_config, source=fake_source).start(listing_url)
            async for _ in run.events():
                pass
            return run

        run = asyncio.run(drive())
        assert run.state is RunState.DONE
        assert len(run.references) == 2

    def test_failed(self, test_config, make_source, listing_url):
        async def drive():
            run = ScrapePipeline(config=test_config, source=make_source({})).start(listing_url)
            with pytest.raises(NetworkError):
                async for _ in run.events():
                    pass
            return run

        assert asyncio.run(drive()).state is RunState.FAILED

    def test_concurrent_runs_do_not_share_state(self, test_config, fake_source, listing_url):
        """Test two runs on one pipeline keep separate outcomes."""
        other_url = "https://www.machines4u.com.au/brand/komatsu/"
        fake_source.pages[other_url] = (
            '<div class="search-right-head-panel">Listings</div>'
            '<a class="equip_link" href="/view/advert/komatsu/3001/">K</a>'
        )
        fake_source.pages["https://www.machines4u.com.au/view/advert/komatsu/3001/"] = (
            '<h1 class="list-title">Komatsu PC200</h1>'
        )
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        async def both():
            return await asyncio.gather(pipeline.run(listing_url), pipeline.run(other_url))

        first, second = asyncio.run(both())

        assert first.count == 2
        assert [record.title for record in second.records] == ["Komatsu PC200"]


class TestProgressiveStream:
    """Test stream() event ordering and terminal events."""

    def test_event_sequence(self, test_config, fake_source, listing_url):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)
        events = asyncio.run(_collect(pipeline.stream(listing_url)))
        types = [event.type for event in events]

        assert types[0] is EventType.STATUS
        assert types.count(EventType.PRODUCT) == 2
        assert types[-1] is EventType.DONE
        assert sum(event.is_terminal for event in events) == 1

        last_product = max(i for i, t in enumerate(types) if t is EventType.PRODUCT)
        assert last_product < len(types) - 1

    def test_status_messages(self, test_config, fake_source, listing_url):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)
        events = asyncio.run(_collect(pipeline.stream(listing_url)))
        messages = [event.data["message"] for event in events if event.type is EventType.STATUS]

        assert messages[0] == f"Starting scrape for: {listing_url}"
        assert messages[1] == "Found 2 unique products to scrape. Starting detail scraping..."
        assert "Scraping product 1/2..." in messages
        assert events[-1].data == {
            "message": "Scraping complete! Successfully scraped 2 of 2 products.",
            "count": 2,
            "failed": 0,
        }

    def test_product_payload_uses_export_keys(self, test_config, fake_source, listing_url, detail_urls):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)
        events = asyncio.run(_collect(pipeline.stream(listing_url)))
        products = [event.data for event in events if event.type is EventType.PRODUCT]

        assert [product["URL"] for product in products] == detail_urls
        assert products[0]["AD Title"] == "2019 Caterpillar 320 Excavator"

    def test_failed_item_reported_as_status(self, test_config, fake_source, listing_url, detail_urls):
        fake_source.pages[detail_urls[0]] = NetworkError("HTTP error! status: 500", status_code=500)
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        events = asyncio.run(_collect(pipeline.stream(listing_url)))

        assert any(
            event.type is EventType.STATUS and event.data["message"].startswith("Skipped product 1/2")
            for event in events
        )
        assert events[-1].type is EventType.DONE
        assert events[-1].data["failed"] == 1

    def test_empty_section_ends_with_error(self, test_config, make_source, listing_url):
        source = make_source({listing_url: '<div class="search-right-head-panel">Listings</div>'})
        pipeline = ScrapePipeline(config=test_config, source=source)

        events = asyncio.run(_collect(pipeline.stream(listing_url)))

        assert events[-1].type is EventType.ERROR
        assert events[-1].data["message"] == "No products found in the Listings section"
        assert sum(event.is_terminal for event in events) == 1
        assert not any(event.type is EventType.PRODUCT for event in events)

    def test_invalid_url_single_error_event(self, test_config, fake_source):
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        events = asyncio.run(_collect(pipeline.stream(None)))

        assert [event.type for event in events] == [EventType.ERROR]
        assert events[0].data["message"] == "URL is required"
        assert fake_source.requested == []

    def test_abandoned_stream_stops_fetching(self, test_config, fake_source, listing_url, detail_urls):
        """Test closing the stream early stops further fetches and emits no terminal event."""
        pipeline = ScrapePipeline(config=test_config, source=fake_source)

        async def consume_first_product():
            seen = []
            stream = pipeline.stream(listing_url)
            async for event in stream:
                seen.append(event)
                if event.type is EventType.PRODUCT:
                    break
            await stream.aclose()
            return seen

        seen = asyncio.run(consume_first_product())

        assert seen[-1].type is EventType.PRODUCT
        assert not any(event.is_terminal for event in seen)
        assert fake_source.requested == [listing_url, detail_urls[0]]

    def test_cancelled_consumer(self, test_config, fake_source, listing_url, detail_urls):
        """Test cancelling the consuming task abandons the in-flight fetch."""

        class StallingSource(type(fake_source)):
            async def fetch(self, url):
                if url == detail_urls[0]:
                    self.requested.append(url)
                    self.stalled.set()
                    await asyncio.sleep(10)
                return await super().fetch(url)

        async def scenario():
            source = StallingSource(fake_source.pages)
            source.stalled = asyncio.Event()
            pipeline = ScrapePipeline(config=test_config, source=source)
            events = []

            async def consume():
                async for event in pipeline.stream(listing_url):
                    events.append(event)

            task = asyncio.create_task(consume())
            await source.stalled.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return source, events

        source, events = asyncio.run(scenario())

        assert source.requested == [listing_url, detail_urls[0]]
        assert not any(event.is_terminal for event in events)
