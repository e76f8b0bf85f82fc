# File: site_ingest/report/__init__.py
"""site_ingest.report: JSON и HTML отчёты о запуске, используемые CLI и тестами."""

from site_ingest.report.html_report import render_html
from site_ingest.report.json_report import render_json

__all__ = ["render_json", "render_html"]
