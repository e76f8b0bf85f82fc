# File: tests/conftest.py
from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
import pytest_asyncio
from aiohttp import web

from site_ingest.config import IngestConfig
from site_ingest.crawler.models import PageData
from site_ingest.logger import init_logging


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI tests rebind the logger to CliRunner streams; restore it afterwards."""
    yield
    init_logging()


@pytest_asyncio.fixture
async def serve_app(unused_tcp_port_factory) -> AsyncIterator[Callable[[web.Application], Awaitable[str]]]:
    """
    Return a coroutine that starts an aiohttp app on a free port and yields
    its base URL; every started app is cleaned up after the test.
    """
    runners = []

    async def _serve(app: web.Application) -> str:
        port = unused_tcp_port_factory()
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "localhost", port)
        await site.start()
        runners.append(runner)
        return f"http://localhost:{port}"

    try:
        yield _serve
    finally:
        for runner in runners:
            await runner.cleanup()


@pytest.fixture()
def fast_config() -> IngestConfig:
    """
    Return an IngestConfig with all waits disabled for quick tests.
    """
    return IngestConfig(
        max_pages=50,
        max_concurrent=3,
        delay_ms=0,
        max_retries=3,
        retry_base_delay=0,
        http_timeout=2.0,
        http_retries=0,
        user_agent="TestAgent/1.0",
    )


@pytest.fixture()
def sample_page() -> PageData:
    """
    Provide a simple PageData instance.
    """
    return PageData(
        url="https://example.com/about",
        text_content="About us\n\nWe build   things.",
        title="About  Example",
        og_image="https://example.com/img/about.png",
        description="Who we are",
    )
