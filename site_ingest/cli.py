# === FILE: site_ingest/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SiteIngest через командную строку.

Команды:
  find-sitemap SITE_URL      Найти sitemap сайта (robots.txt + стандартные пути)
  check-sitemap SITEMAP_URL  Проверить sitemap: число URL и несколько примеров
  ingest [SITEMAP_URL]       Загрузить страницы сайта в базу знаний
  config                     Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --limit INT         Макс. число страниц (override max_pages)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только stderr, если не указан)
  --log-format FORMAT Формат логирования

Команда ingest опции:
  --site-url URL      Сайт, для которого нужно найти sitemap
  --output-dir DIR    Папка для документов (default: knowledge)
  --pages-file PATH   JSON Lines с записями о страницах (default: <output-dir>/pages.jsonl)
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблоном report.html.j2
  --pretty            Преформатировать JSON-вывод (отступ 2)
  --timeout SEC       Таймаут всего запуска (секунд)

Пример:
  site-ingest --limit 20 ingest https://example.com/sitemap.xml --output-dir kb --json run.json
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from site_ingest import __version__
from site_ingest.collaborators import FileSystemIndexer, JsonLinesPageStore, LoggingRunAuditor
from site_ingest.config import DEFAULT_CONFIG_PATH, IngestConfig, load_config
from site_ingest.engine import check_sitemap, find_sitemap, start_ingest
from site_ingest.logger import init_logging
from site_ingest.report.html_report import render_html
from site_ingest.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteIngest, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON (default: configs/default.yaml, если есть).'
)
@click.option(
    '--limit', '-l', 'limit',
    type=click.IntRange(min=1),
    default=None,
    help='Макс. число страниц (override max_pages)'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, limit, log_level, log_file, log_format):
    """Группа команд SiteIngest CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
        verbose_libraries=log_level == 'DEBUG',
    )
    try:
        if config_path is None and not DEFAULT_CONFIG_PATH.exists():
            cfg = IngestConfig()
        else:
            cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    if limit is not None:
        cfg = cfg.model_copy(update={'max_pages': limit})
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('find-sitemap', context_settings=CONTEXT_SETTINGS)
@click.argument('site_url')
@click.pass_context
def find_sitemap_cmd(ctx, site_url):
    """Найти sitemap сайта SITE_URL."""
    cfg = ctx.obj['config']
    try:
        sitemap_url = asyncio.run(find_sitemap(cfg, site_url))
    except Exception as e:
        print_error(f'Ошибка при поиске sitemap: {e}')
    if sitemap_url is None:
        print_error(f'Sitemap для {site_url} не найден')
    click.echo(sitemap_url)


@cli.command('check-sitemap', context_settings=CONTEXT_SETTINGS)
@click.argument('sitemap_url')
@click.option('--sample', 'sample_size', type=click.IntRange(min=0), default=5, show_default=True,
              help='Сколько URL показать в примере')
@click.pass_context
def check_sitemap_cmd(ctx, sitemap_url, sample_size):
    """Проверить sitemap SITEMAP_URL без загрузки страниц."""
    cfg = ctx.obj['config']
    try:
        summary = asyncio.run(check_sitemap(cfg, sitemap_url, sample_size))
    except Exception as e:
        print_error(f'Ошибка при проверке sitemap: {e}')
    click.echo(json.dumps(summary, ensure_ascii=False, indent=2))
    if not summary.get('valid'):
        sys.exit(1)


@cli.command('ingest', context_settings=CONTEXT_SETTINGS)
@click.argument('sitemap_url', required=False)
@click.option('--site-url', 'site_url', default=None, help='Сайт, для которого нужно найти sitemap')
@click.option(
    '--output-dir', '-o', 'output_dir',
    default='knowledge', show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help='Папка для документов'
)
@click.option(
    '--pages-file', 'pages_file',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='JSON Lines с записями о страницах (default: <output-dir>/pages.jsonl)'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблоном (встроенный, если не указана)'
)
@click.option(
    '--pretty', is_flag=True,
    help='Преформатировать JSON-вывод (отступ 2)'
)
@click.option(
    '--timeout', 'run_timeout',
    type=float,
    default=None,
    help='Таймаут всего запуска (секунд)'
)
@click.pass_context
def ingest(ctx, sitemap_url, site_url, output_dir, pages_file, json_output, html_output,
           template_dir, pretty, run_timeout):
    """Загрузить страницы сайта в базу знаний."""
    cfg = ctx.obj['config']
    if not sitemap_url and not site_url and not cfg.sitemap_url and not cfg.site_url:
        print_error('Укажите SITEMAP_URL, --site-url или site_url/sitemap_url в конфиге')

    indexer = FileSystemIndexer(output_dir)
    store = JsonLinesPageStore(pages_file or output_dir / 'pages.jsonl')
    run = start_ingest(
        cfg, indexer,
        store=store,
        auditor=LoggingRunAuditor(),
        sitemap_url=sitemap_url,
        site_url=site_url,
    )
    try:
        if run_timeout:
            report = asyncio.run(asyncio.wait_for(run, timeout=run_timeout))
        else:
            report = asyncio.run(run)
    except asyncio.TimeoutError:
        print_error(f'Загрузка не завершена за {run_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при загрузке: {e}')

    # Без --json/--html отчёт печатается в stdout
    if not json_output and not html_output:
        click.echo(report.json(pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(report, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(report, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
