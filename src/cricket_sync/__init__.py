"""Cricket feed ingestion and reconciliation engine.

Pulls match lists and scorecards from the Wisden cricket feed, classifies
matches by competitive importance, normalizes per-innings statistics and
keeps a PostgreSQL store in sync for form and net-run-rate analytics.
"""

from .version import __version__, __author__, __email__
from .config import AppSettings, get_settings

__all__ = [
    "__version__",
    "__author__",
    "__email__",
    "AppSettings",
    "get_settings",
    # Key subpackages
    "classify",
    "io_clients",
    "models",
    "pipelines",
    "store",
    "transformers",
    "utils",
]
