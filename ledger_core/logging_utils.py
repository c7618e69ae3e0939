from __future__ import annotations

import logging
from typing import Optional

from ledger_core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install a root handler once; later calls only adjust the level."""
    global _configured
    level_name = (level or get_settings().log_level).upper()
    if not _configured:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
        _configured = True
    logging.getLogger().setLevel(level_name)
