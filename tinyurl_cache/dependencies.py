"""
Startup wiring for the cache layer.

Application code calls build_cache() once at startup and hands the
returned instance to whatever needs it (CRUD handlers, workers, tests
injecting their own). Nothing here caches the instance globally.
"""

from typing import Optional

from tinyurl_cache.cache.factory import CacheFactory
from tinyurl_cache.cache.strategies import CacheStrategy
from tinyurl_cache.config import Settings, settings
from tinyurl_cache.logging_config import configure_logging


def build_cache(config: Optional[Settings] = None) -> CacheStrategy:
    """
    Configure logging and create the cache backend named in settings.

    Args:
        config: Settings to use, the environment-loaded ones by default

    Returns:
        CacheStrategy instance based on settings
    """
    config = config or settings
    configure_logging(config.log_level)
    return CacheFactory.from_settings(config)
