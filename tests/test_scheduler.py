# File: tests/test_scheduler.py
# CrawlScheduler: concurrency bound, retries, ordering and progress
from __future__ import annotations

import asyncio
from collections import Counter

import pytest
from site_ingest.config import IngestConfig
from site_ingest.crawler.models import PageData
from site_ingest.crawler.scheduler import CrawlScheduler, scrape_multiple_pages_with_retry
from site_ingest.errors import PageFetchError, PageFetchTimeout


class FakeExtractor:
    """Extractor double: optional delay, per-URL failure plans and call accounting."""

    def __init__(self, *, delay: float = 0.0, fail_times: dict[str, int] | None = None,
                 errors: dict[str, Exception] | None = None) -> None:
        self.delay = delay
        self.fail_times = dict(fail_times or {})
        self.errors = errors or {}
        self.calls: Counter = Counter()
        self.active = 0
        self.peak = 0

    async def extract(self, url: str) -> PageData:
        self.calls[url] += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if url in self.errors:
                raise self.errors[url]
            if self.fail_times.get(url, 0) > 0:
                self.fail_times[url] -= 1
                raise PageFetchTimeout(url, 1.0)
            return PageData(url=url, text_content=f"text of {url}", title=url.rsplit("/", 1)[-1])
        finally:
            self.active -= 1


def urls(n: int) -> list[str]:
    return [f"https://s.test/p{i}" for i in range(n)]


def make_scheduler(extractor, **kwargs) -> CrawlScheduler:
    options = dict(max_concurrent=3, delay_ms=0, max_retries=3, retry_base_delay=0)
    options.update(kwargs)
    return CrawlScheduler(extractor, **options)


@pytest.mark.asyncio()
async def test_results_are_index_aligned():
    extractor = FakeExtractor(delay=0.01)
    targets = urls(10)
    results = await make_scheduler(extractor).run(targets)
    assert [r.url for r in results] == targets
    assert all(r.success and r.attempts == 1 for r in results)
    assert results[4].data.text_content == "text of https://s.test/p4"


@pytest.mark.asyncio()
@pytest.mark.parametrize("limit", [1, 2, 4])
async def test_concurrency_bound(limit):
    extractor = FakeExtractor(delay=0.02)
    await make_scheduler(extractor, max_concurrent=limit).run(urls(12))
    assert extractor.peak == limit


@pytest.mark.asyncio()
async def test_fewer_urls_than_workers():
    extractor = FakeExtractor(delay=0.01)
    results = await make_scheduler(extractor, max_concurrent=5).run(urls(2))
    assert len(results) == 2
    assert extractor.peak <= 2


@pytest.mark.asyncio()
async def test_empty_input():
    assert await make_scheduler(FakeExtractor()).run([]) == []


@pytest.mark.asyncio()
async def test_transient_failure_is_retried():
    target = "https://s.test/flaky"
    extractor = FakeExtractor(fail_times={target: 2})
    [result] = await make_scheduler(extractor).run([target])
    assert result.success
    assert result.attempts == 3
    assert extractor.calls[target] == 3


@pytest.mark.asyncio()
async def test_always_failing_url_uses_all_attempts():
    target = "https://s.test/down"
    extractor = FakeExtractor(errors={target: PageFetchError(target, "HTTP 503", status=503)})
    [result] = await make_scheduler(extractor, max_retries=4).run([target])
    assert not result.success
    assert result.attempts == 4
    assert result.error_type == "PageFetchError"
    assert "HTTP 503" in result.error
    assert extractor.calls[target] == 4


@pytest.mark.asyncio()
async def test_permanent_failure_is_not_retried():
    target = "https://s.test/gone"
    extractor = FakeExtractor(errors={target: PageFetchError(target, "HTTP 404", status=404)})
    [result] = await make_scheduler(extractor).run([target])
    assert not result.success
    assert result.attempts == 1
    assert extractor.calls[target] == 1


@pytest.mark.asyncio()
async def test_unexpected_exception_is_contained():
    bad = "https://s.test/bad"
    extractor = FakeExtractor(errors={bad: KeyError("boom")})
    targets = ["https://s.test/a", bad, "https://s.test/b"]
    results = await make_scheduler(extractor, max_retries=1).run(targets)
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error_type == "KeyError"


@pytest.mark.asyncio()
async def test_failures_do_not_affect_other_urls():
    targets = urls(9)
    failing = {u: PageFetchError(u, "HTTP 500", status=500) for u in targets[::3]}
    extractor = FakeExtractor(delay=0.005, errors=failing)
    results = await make_scheduler(extractor, max_retries=2).run(targets)
    assert [r.url for r in results] == targets
    for result in results:
        assert result.success is (result.url not in failing)


@pytest.mark.asyncio()
async def test_retry_backoff_is_exponential(monkeypatch):
    sleeps: list[float] = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        sleeps.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("site_ingest.crawler.scheduler.asyncio.sleep", fake_sleep)
    target = "https://s.test/flaky"
    extractor = FakeExtractor(fail_times={target: 3})
    [result] = await make_scheduler(extractor, max_retries=4, retry_base_delay=0.5).run([target])
    assert result.success
    assert sleeps == [0.5, 1.0, 2.0]


@pytest.mark.asyncio()
async def test_progress_callback_sync_and_async():
    seen: list[tuple[int, int, str]] = []

    def on_progress(current, total, result):
        seen.append((current, total, result.url))

    targets = urls(5)
    await make_scheduler(FakeExtractor()).run(targets, on_progress=on_progress)
    assert [c for c, _, _ in seen] == [1, 2, 3, 4, 5]
    assert {t for _, t, _ in seen} == {5}
    assert sorted(u for _, _, u in seen) == sorted(targets)

    async_seen: list[int] = []

    async def on_progress_async(current, total, result):
        async_seen.append(current)

    await make_scheduler(FakeExtractor()).run(targets, on_progress=on_progress_async)
    assert async_seen == [1, 2, 3, 4, 5]


@pytest.mark.asyncio()
async def test_failing_progress_callback_does_not_stop_run():
    def on_progress(current, total, result):
        raise ValueError("callback bug")

    results = await make_scheduler(FakeExtractor()).run(urls(3), on_progress=on_progress)
    assert all(r.success for r in results)


@pytest.mark.asyncio()
async def test_stream_yields_progress_per_url():
    targets = urls(6)
    events = [event async for event in make_scheduler(FakeExtractor(delay=0.005)).stream(targets)]
    assert sorted(e.current for e in events) == [1, 2, 3, 4, 5, 6]
    assert all(e.total == 6 for e in events)
    assert sorted(e.result.url for e in events) == sorted(targets)


@pytest.mark.asyncio()
async def test_stream_early_exit_cancels_work():
    extractor = FakeExtractor(delay=0.01)
    scheduler = make_scheduler(extractor, max_concurrent=1)
    stream = scheduler.stream(urls(20))
    async for event in stream:
        assert event.current == 1
        break
    await stream.aclose()
    await asyncio.sleep(0.05)
    assert sum(extractor.calls.values()) < 20


@pytest.mark.asyncio()
async def test_delay_between_pages(monkeypatch):
    sleeps: list[float] = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        sleeps.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("site_ingest.crawler.scheduler.asyncio.sleep", fake_sleep)
    await make_scheduler(FakeExtractor(), max_concurrent=1, delay_ms=250).run(urls(3))
    # no pause after the last URL
    assert sleeps == [0.25, 0.25]


def test_invalid_parameters():
    with pytest.raises(ValueError):
        CrawlScheduler(FakeExtractor(), max_concurrent=0)
    with pytest.raises(ValueError):
        CrawlScheduler(FakeExtractor(), max_retries=0)


def test_from_config():
    config = IngestConfig(max_concurrent=7, delay_ms=10, max_retries=2, retry_base_delay=0.1)
    scheduler = CrawlScheduler.from_config(FakeExtractor(), config)
    assert (scheduler.max_concurrent, scheduler.delay_ms, scheduler.max_retries) == (7, 10, 2)
    assert scheduler.retry_base_delay == 0.1


@pytest.mark.asyncio()
async def test_functional_shortcut():
    results = await scrape_multiple_pages_with_retry(
        urls(4), FakeExtractor(), max_concurrent=2, delay_ms=0, retry_base_delay=0
    )
    assert len(results) == 4 and all(r.success for r in results)
