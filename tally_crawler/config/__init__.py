"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import DEFAULT_MANIFEST_URL, DEFAULT_PAGE_URL_TEMPLATE, CrawlConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CrawlConfig",
    "DEFAULT_MANIFEST_URL",
    "DEFAULT_PAGE_URL_TEMPLATE",
]
