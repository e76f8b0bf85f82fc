# setup.py
from setuptools import setup, find_packages

setup(
    name="site_ingest",
    version="0.1.0",
    description="Загрузка сайта в базу знаний по sitemap: SiteIngest",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"site_ingest.report": ["templates/*.j2"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "lxml>=5.0",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
        "playwright>=1.40",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "site-ingest=site_ingest.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
