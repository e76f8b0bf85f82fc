# File: site_ingest/engine.py
"""site_ingest.engine: Оркестрация одного запуска загрузки сайта в базу знаний.

Поток: sitemap (поиск при необходимости) → рекурсивный разбор → сортировка и
лимит ``max_pages`` → параллельное извлечение страниц → форматирование →
загрузка в индекс → запись о странице. Запись аудита обновляется при старте,
после подсчёта страниц и по завершении.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from site_ingest.collaborators import (
    DocumentIndexer,
    IngestRun,
    InMemoryPageStore,
    LoggingRunAuditor,
    PageStore,
    RunAuditor,
    RunStatus,
    ScrapedPageRecord,
    utcnow,
)
from site_ingest.config import IngestConfig
from site_ingest.crawler.browser import BrowserPool
from site_ingest.crawler.extractor import Extractor, PageExtractor
from site_ingest.crawler.fetcher import Fetcher
from site_ingest.crawler.locator import SitemapLocator
from site_ingest.crawler.models import ScrapeResult, SitemapEntry
from site_ingest.crawler.scheduler import CrawlScheduler, ProgressCallback
from site_ingest.crawler.sitemap import SitemapParser
from site_ingest.errors import (
    EmptySitemap,
    SitemapNotFound,
    SitemapUnreachable,
    UploadError,
)
from site_ingest.formatter import document_name, format_document
from site_ingest.logger import logger

__all__ = [
    "IngestReport",
    "IngestionEngine",
    "check_sitemap",
    "find_sitemap",
    "resolve_entries",
    "select_entries",
    "start_ingest",
]

MSG_SITEMAP_NOT_FOUND = "sitemap could not be found"
MSG_SITEMAP_UNREADABLE = "sitemap could not be read"
MSG_SITEMAP_EMPTY = "no URLs found in sitemap"
MSG_RUN_CANCELLED = "run cancelled"


def select_entries(entries: Sequence[SitemapEntry], max_pages: int) -> List[SitemapEntry]:
    """Сортирует записи по дате (новые первыми, без даты в конце) и берёт первые max_pages.

    Порядок записей без даты (и с одинаковой датой) совпадает с порядком в sitemap.
    """
    indexed = list(enumerate(entries))
    indexed.sort(
        key=lambda pair: (
            pair[1].last_modified is None,
            -pair[1].last_modified.timestamp() if pair[1].last_modified else 0.0,
            pair[0],
        )
    )
    return [entry for _, entry in indexed[: max(max_pages, 0)]]


def _failure_message(exc: BaseException) -> str:
    if isinstance(exc, SitemapNotFound):
        return MSG_SITEMAP_NOT_FOUND
    if isinstance(exc, SitemapUnreachable):
        return MSG_SITEMAP_UNREADABLE
    if isinstance(exc, EmptySitemap):
        return MSG_SITEMAP_EMPTY
    return str(exc) or type(exc).__name__


async def find_sitemap(config: IngestConfig, site_url: str) -> Optional[str]:
    """Ищет sitemap сайта; None, если ничего не найдено."""
    async with Fetcher(config) as fetcher:
        return await SitemapLocator(fetcher).find_sitemap_url(site_url)


async def resolve_entries(config: IngestConfig, sitemap_url: str) -> List[SitemapEntry]:
    """Разворачивает дерево sitemap; SitemapUnreachable, если корень недоступен."""
    async with Fetcher(config) as fetcher:
        parser = SitemapParser(fetcher, max_depth=config.sitemap_max_depth)
        return await parser.parse_sitemap_recursive(sitemap_url)


async def check_sitemap(config: IngestConfig, sitemap_url: str, sample_size: int = 5) -> Dict[str, Any]:
    """Проверяет sitemap без загрузки страниц: число URL и несколько примеров."""
    try:
        entries = await resolve_entries(config, sitemap_url)
    except SitemapUnreachable as exc:
        logger.warning("Sitemap check failed: %s", exc)
        return {"valid": False, "error": MSG_SITEMAP_UNREADABLE}
    return {
        "valid": True,
        "url_count": len(entries),
        "sample_urls": [
            {
                "url": e.url,
                "date": e.last_modified.isoformat() if e.last_modified else None,
            }
            for e in entries[:sample_size]
        ],
    }


@dataclass
class IngestReport:
    """Итог запуска: запись аудита, результаты по каждому URL и проиндексированные страницы."""

    run: IngestRun
    results: List[ScrapeResult] = field(default_factory=list)
    pages: List[ScrapedPageRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": self.run.to_dict(),
            "results": [
                {
                    "url": r.url,
                    "success": r.success,
                    "title": r.data.title if r.data else None,
                    "error": r.error,
                    "error_type": r.error_type,
                    "attempts": r.attempts,
                }
                for r in self.results
            ],
            "pages": [p.to_dict() for p in self.pages],
        }

    def json(self, *, pretty: bool = False) -> str:
        """JSON-представление отчёта."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


class IngestionEngine:
    """Фасад для CLI и вызывающего кода: один объект на конфиг и набор внешних систем."""

    def __init__(
        self,
        config: IngestConfig,
        *,
        indexer: DocumentIndexer,
        store: Optional[PageStore] = None,
        auditor: Optional[RunAuditor] = None,
        extractor: Optional[Extractor] = None,
    ) -> None:
        self.config = config
        self.indexer = indexer
        self.store = store if store is not None else InMemoryPageStore()
        self.auditor = auditor if auditor is not None else LoggingRunAuditor()
        self.extractor = extractor

    # ------------------------------------------------------------------ #
    # Sitemap helpers                                                    #
    # ------------------------------------------------------------------ #

    async def find_sitemap(self, site_url: str) -> Optional[str]:
        return await find_sitemap(self.config, site_url)

    async def resolve_entries(self, sitemap_url: str) -> List[SitemapEntry]:
        return await resolve_entries(self.config, sitemap_url)

    async def check_sitemap(self, sitemap_url: str, sample_size: int = 5) -> Dict[str, Any]:
        return await check_sitemap(self.config, sitemap_url, sample_size)

    # ------------------------------------------------------------------ #
    # Full run                                                           #
    # ------------------------------------------------------------------ #

    async def run(
        self,
        sitemap_url: Optional[str] = None,
        *,
        site_url: Optional[str] = None,
        max_pages: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestReport:
        """Выполняет полный запуск и возвращает IngestReport.

        Бросает SitemapNotFound / SitemapUnreachable / EmptySitemap (запуск
        помечается как failed); ошибки отдельных страниц попадают в счётчики.
        """
        sitemap_url = sitemap_url or (str(self.config.sitemap_url) if self.config.sitemap_url else None)
        site_url = site_url or (str(self.config.site_url) if self.config.site_url else None)
        if not sitemap_url and not site_url:
            raise ValueError("either sitemap_url or site_url is required")
        limit = max_pages if max_pages is not None else self.config.max_pages

        run = IngestRun(sitemap_url=sitemap_url)
        await self.auditor.update(run)
        logger.info("Ingestion run %s started (%s)", run.run_id, sitemap_url or site_url)

        try:
            if not sitemap_url:
                sitemap_url = await self.find_sitemap(site_url)
                if sitemap_url is None:
                    raise SitemapNotFound(site_url)
                run.sitemap_url = sitemap_url

            entries = await self.resolve_entries(sitemap_url)
            if not entries:
                raise EmptySitemap(sitemap_url)

            selected = select_entries(entries, limit)
            run.total_pages = len(selected)
            await self.auditor.update(run)
            logger.info("Selected %d of %d URLs (max_pages=%d)", len(selected), len(entries), limit)

            results = await self._scrape([e.url for e in selected], on_progress)
            pages = await self._index(results, {e.url: e for e in selected}, run)
        except asyncio.CancelledError:
            run.status = RunStatus.FAILED
            run.error = MSG_RUN_CANCELLED
            run.completed_at = utcnow()
            await self.auditor.update(run)
            logger.warning("Ingestion run %s cancelled", run.run_id)
            raise
        except Exception as exc:
            run.status = RunStatus.FAILED
            run.error = _failure_message(exc)
            run.completed_at = utcnow()
            await self.auditor.update(run)
            logger.error("Ingestion run %s failed: %s", run.run_id, exc)
            raise

        run.status = RunStatus.COMPLETED
        run.completed_at = utcnow()
        await self.auditor.update(run)
        logger.info(
            "Ingestion run %s completed: %d indexed, %d errors",
            run.run_id, run.success_count, run.error_count,
        )
        return IngestReport(run=run, results=results, pages=pages)

    async def _scrape(
        self, urls: List[str], on_progress: Optional[ProgressCallback]
    ) -> List[ScrapeResult]:
        if self.extractor is not None:
            scheduler = CrawlScheduler.from_config(self.extractor, self.config)
            return await scheduler.run(urls, on_progress=on_progress)

        async with BrowserPool.from_config(self.config) as pool:
            await pool.start()
            extractor = PageExtractor.from_config(pool, self.config)
            scheduler = CrawlScheduler.from_config(extractor, self.config)
            return await scheduler.run(urls, on_progress=on_progress)

    async def _index(
        self,
        results: List[ScrapeResult],
        entries: Dict[str, SitemapEntry],
        run: IngestRun,
    ) -> List[ScrapedPageRecord]:
        pages: List[ScrapedPageRecord] = []
        for result in results:
            if not result.success or result.data is None:
                run.error_count += 1
                continue
            page = result.data
            try:
                document = await self.indexer.upload(
                    document_name(page), format_document(page), source_url=result.url
                )
                entry = entries.get(result.url)
                record = ScrapedPageRecord(
                    url=result.url,
                    title=page.title,
                    document_id=document.document_id,
                    display_name=document.display_name,
                    og_image=page.og_image,
                    last_scraped_at=utcnow(),
                    sitemap_last_modified=entry.last_modified if entry else None,
                )
                await self.store.save(record)
            except UploadError as exc:
                logger.warning("Upload rejected for %s: %s", result.url, exc.reason)
                run.error_count += 1
                continue
            except Exception as exc:
                logger.warning("Indexing failed for %s: %s", result.url, exc)
                run.error_count += 1
                continue
            pages.append(record)
            run.success_count += 1
        return pages


async def start_ingest(
    config: IngestConfig,
    indexer: DocumentIndexer,
    *,
    store: Optional[PageStore] = None,
    auditor: Optional[RunAuditor] = None,
    sitemap_url: Optional[str] = None,
    site_url: Optional[str] = None,
    max_pages: Optional[int] = None,
) -> IngestReport:
    """Запускает IngestionEngine с заданными внешними системами и возвращает отчёт."""
    engine = IngestionEngine(config, indexer=indexer, store=store, auditor=auditor)
    return await engine.run(sitemap_url, site_url=site_url, max_pages=max_pages)
