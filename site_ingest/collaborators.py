# File: site_ingest/collaborators.py
"""site_ingest.collaborators: Интерфейсы внешних систем и их локальные реализации.

Конвейер ничего не хранит сам: документы уходят в индекс (:class:`DocumentIndexer`),
записи о страницах уходят в :class:`PageStore`, статус запуска в :class:`RunAuditor`.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from site_ingest.errors import UploadError
from site_ingest.logger import logger

__all__ = [
    "RunStatus",
    "IngestRun",
    "IndexedDocument",
    "ScrapedPageRecord",
    "DocumentIndexer",
    "PageStore",
    "RunAuditor",
    "FileSystemIndexer",
    "InMemoryPageStore",
    "JsonLinesPageStore",
    "InMemoryRunAuditor",
    "LoggingRunAuditor",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class IngestRun:
    """Запись аудита одного запуска."""

    sitemap_url: Optional[str] = None
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: RunStatus = RunStatus.RUNNING
    total_pages: int = 0
    success_count: int = 0
    error_count: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["status"] = self.status.value
        data["started_at"] = _isoformat(self.started_at)
        data["completed_at"] = _isoformat(self.completed_at)
        return data


@dataclass(frozen=True)
class IndexedDocument:
    """Ответ индекса на загрузку документа."""

    document_id: str
    display_name: str


@dataclass
class ScrapedPageRecord:
    """Запись о странице, успешно попавшей в индекс."""

    url: str
    title: Optional[str]
    document_id: str
    display_name: str
    og_image: Optional[str] = None
    last_scraped_at: datetime = field(default_factory=utcnow)
    sitemap_last_modified: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["last_scraped_at"] = _isoformat(self.last_scraped_at)
        data["sitemap_last_modified"] = _isoformat(self.sitemap_last_modified)
        return data


class DocumentIndexer(Protocol):
    async def upload(self, display_name: str, content: str, *, source_url: str) -> IndexedDocument:
        """Сохраняет документ; при отказе бросает UploadError."""
        ...


class PageStore(Protocol):
    async def save(self, record: ScrapedPageRecord) -> None: ...


class RunAuditor(Protocol):
    async def update(self, run: IngestRun) -> None: ...


class FileSystemIndexer:
    """Индекс-папка: каждый документ пишется в ``<document_id>.txt``."""

    def __init__(self, output_dir: Union[str, Path]) -> None:
        self.output_dir = Path(output_dir)

    async def upload(self, display_name: str, content: str, *, source_url: str) -> IndexedDocument:
        document_id = hashlib.sha1(f"{source_url}\n{content}".encode("utf-8")).hexdigest()[:16]
        path = self.output_dir / f"{document_id}.txt"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise UploadError(source_url, str(exc)) from exc
        logger.debug("Indexed %s as %s (%s)", source_url, document_id, display_name)
        return IndexedDocument(document_id=document_id, display_name=display_name)


class InMemoryPageStore:
    def __init__(self) -> None:
        self.records: List[ScrapedPageRecord] = []

    async def save(self, record: ScrapedPageRecord) -> None:
        self.records.append(record)


class JsonLinesPageStore:
    """Дописывает записи в файл JSON Lines."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    async def save(self, record: ScrapedPageRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")


class InMemoryRunAuditor:
    """Хранит снимки записи запуска после каждого обновления."""

    def __init__(self) -> None:
        self.snapshots: List[IngestRun] = []

    async def update(self, run: IngestRun) -> None:
        self.snapshots.append(dataclasses.replace(run))

    @property
    def latest(self) -> Optional[IngestRun]:
        return self.snapshots[-1] if self.snapshots else None


class LoggingRunAuditor:
    async def update(self, run: IngestRun) -> None:
        logger.info(
            "Run %s: %s (total=%d, ok=%d, errors=%d)%s",
            run.run_id, run.status.value, run.total_pages, run.success_count, run.error_count,
            f": {run.error}" if run.error else "",
        )
