from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

Records = List[Dict[str, Any]]


class Storage(Protocol):
    def load(self) -> Records: ...

    def save(self, records: Records) -> None: ...


class JsonFileStorage:
    """The broker collection as one JSON document, fully overwritten on every save."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Records:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Could not read saved brokers from %s; starting empty", self.path, exc_info=True)
            return []
        if not isinstance(data, list):
            logger.warning("Saved brokers in %s are not a list; starting empty", self.path)
            return []
        return data

    def save(self, records: Records) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # unique temp file per save
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp.write(json.dumps(records, ensure_ascii=False))
        try:
            os.replace(tmp.name, self.path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise


class MemoryStorage:
    def __init__(self, records: Optional[Records] = None):
        self.records: Records = list(records or [])
        self.saves = 0

    def load(self) -> Records:
        return json.loads(json.dumps(self.records))

    def save(self, records: Records) -> None:
        self.records = json.loads(json.dumps(records))
        self.saves += 1
