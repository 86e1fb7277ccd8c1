"""mail-index - bulk indexing of maildir email corpora.

This package parses individually stored email files into structured
records and ships them in batches to a ZincSearch-compatible bulk API.
"""

__version__ = "0.1.0"

from mail_index.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
