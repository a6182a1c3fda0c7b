"""Version information for cricket-sync."""

__version__ = "0.3.0"
__author__ = "cricket-sync maintainers"
__email__ = "dev@cricket-sync.local"
