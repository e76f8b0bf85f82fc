# site_ingest/report/json_report.py

"""
Генерация JSON-отчёта о запуске SiteIngest.

Сериализация объекта IngestReport в файл.
"""
import json
from pathlib import Path

from site_ingest.engine import IngestReport


def render_json(report: IngestReport, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет отчёт report в формате JSON по указанному пути.

    :param report: объект IngestReport с результатами запуска
    :param output_path: путь к JSON-файлу
    :param pretty: отступ 2 пробела
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_ingest.report.json_report import render_json
    report_path = render_json(report, 'reports/run.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
