# === FILE: site_ingest/config.py ===
"""
Модуль для загрузки и валидации конфигурации SiteIngest.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

__all__ = ["IngestConfig", "load_config", "DEFAULT_CONFIG_PATH"]

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SiteIngestBot/1.0)"


class IngestConfig(BaseModel):
    """Конфигурация одного запуска загрузки сайта в базу знаний."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    site_url: Optional[HttpUrl] = Field(None, description="Корневой URL сайта (для поиска sitemap).")
    sitemap_url: Optional[HttpUrl] = Field(None, description="URL sitemap.xml, если известен.")
    max_pages: int = Field(50, ge=1, description="Жесткий лимит по числу страниц.")

    max_concurrent: int = Field(3, ge=1, description="Число одновременно открытых вкладок.")
    delay_ms: int = Field(1000, ge=0, description="Пауза воркера после каждой страницы (мс).")
    max_retries: int = Field(3, ge=1, description="Всего попыток на одну страницу.")
    retry_base_delay: float = Field(2.0, ge=0, description="База экспоненциальной паузы (секунд).")

    navigation_timeout: float = Field(60.0, gt=0, description="Таймаут навигации браузера (секунд).")
    settle_timeout: float = Field(10.0, ge=0, description="Ожидание networkidle после загрузки (секунд).")
    headless: bool = Field(True, description="Запускать Chromium без окна.")

    http_timeout: float = Field(10.0, gt=0, description="Таймаут HTTP-запроса sitemap/robots (секунд).")
    http_retries: int = Field(2, ge=0, description="Повторы HTTP-запроса при 5xx/429.")
    sitemap_max_depth: int = Field(3, ge=0, description="Максимальная вложенность sitemap index.")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Заголовок User-Agent.")

    @field_validator("site_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> IngestConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект IngestConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(DEFAULT_CONFIG_PATH))
        path_obj = DEFAULT_CONFIG_PATH
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return IngestConfig(**data)
