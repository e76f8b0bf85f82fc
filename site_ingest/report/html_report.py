# File: site_ingest/report/html_report.py
"""site_ingest.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from site_ingest.engine import IngestReport

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def render_html(
    report: IngestReport,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт из шаблона и сохраняет его по указанному пути.

    Args:
        report: объект IngestReport.
        template_dir: директория с шаблоном ``report.html.j2``;
            при ``None`` используется встроенный шаблон пакета.
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir is not None else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    data = report.to_dict()
    context: dict[str, Any] = {
        "run": data["run"],
        "results": data["results"],
        "pages": data["pages"],
        "failed": [r for r in data["results"] if not r["success"]],
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
