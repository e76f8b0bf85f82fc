# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError
from site_ingest.config import IngestConfig, load_config


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,suffix,expect_exc",
    [
        ("site_url: http://example.com/\nmax_pages: 10", ".yaml", None),
        (json.dumps({"site_url": "http://example.com", "max_pages": 10}), ".json", None),
        ("max_pages: 0", ".yaml", ValidationError),
        ("unknown_key: 1", ".yaml", ValidationError),
        ("- a\n- b", ".yaml", TypeError),
        ("key: [unclosed", ".yaml", ValueError),
        ("{not json", ".json", ValueError),
        ("max_pages = 3", ".toml", ValueError),
    ],
)
def test_load_config_variants(tmp_path, content, suffix, expect_exc):
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            load_config(cfg_path)
    else:
        cfg = load_config(cfg_path)
        assert isinstance(cfg, IngestConfig)
        assert str(cfg.site_url).rstrip("/") == "http://example.com"
        assert cfg.max_pages == 10


def test_defaults():
    cfg = IngestConfig()
    assert cfg.max_pages == 50
    assert cfg.max_concurrent == 3
    assert cfg.delay_ms == 1000
    assert cfg.max_retries == 3
    assert cfg.retry_base_delay == 2.0
    assert cfg.navigation_timeout == 60.0
    assert cfg.sitemap_max_depth == 3
    assert cfg.site_url is None and cfg.sitemap_url is None


def test_config_is_frozen():
    cfg = IngestConfig()
    with pytest.raises(ValidationError):
        cfg.max_pages = 5
    assert cfg.model_copy(update={"max_pages": 5}).max_pages == 5


def test_load_config_default_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_config(None)


def test_load_config_default_present(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("max_concurrent: 5\n", encoding="utf-8")
    cfg = load_config(None)
    assert cfg.max_concurrent == 5


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")
