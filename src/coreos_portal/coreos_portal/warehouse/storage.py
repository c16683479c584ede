from __future__ import annotations

import json
import logging
import re
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import NotFoundError
from .model import ExpandedRow

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"^[0-9a-f]{32}$")
_UPLOAD_SUFFIX = ".xlsx"
_EXPANDED_SUFFIX = ".expanded.json"


class UploadStore:
    """Temporary uploads on local disk, addressed by an opaque token.

    Each token owns `<token>.xlsx` and, once expanded, `<token>.expanded.json`.
    """

    def __init__(self, root: Path, *, ttl_hours: float, clock: Callable[[], datetime] = now_local):
        self._root = Path(root)
        self._ttl = timedelta(hours=float(ttl_hours))
        self._clock = clock

    @property
    def root(self) -> Path:
        return self._root

    def _check(self, token: str) -> str:
        token = (token or "").strip().lower()
        if not _TOKEN_RE.match(token):
            raise NotFoundError("Temporary file not found. Please upload the file again.")
        return token

    def upload_path(self, token: str) -> Path:
        path = self._root / f"{self._check(token)}{_UPLOAD_SUFFIX}"
        if not path.is_file():
            raise NotFoundError("Temporary file not found. Please upload the file again.")
        return path

    def save_upload(self, data: bytes) -> str:
        self._root.mkdir(parents=True, exist_ok=True)
        token = uuid.uuid4().hex
        (self._root / f"{token}{_UPLOAD_SUFFIX}").write_bytes(data)
        return token

    def discard(self, token: str) -> None:
        token = self._check(token)
        for suffix in (_UPLOAD_SUFFIX, _EXPANDED_SUFFIX):
            (self._root / f"{token}{suffix}").unlink(missing_ok=True)

    def save_expansion(self, token: str, rows: list[ExpandedRow]) -> None:
        path = self._root / f"{self._check(token)}{_EXPANDED_SUFFIX}"
        path.write_text(json.dumps([r.to_dict() for r in rows], default=str), encoding="utf-8")

    def load_expansion(self, token: str) -> Optional[list[ExpandedRow]]:
        path = self._root / f"{self._check(token)}{_EXPANDED_SUFFIX}"
        if not path.is_file():
            return None
        items = json.loads(path.read_text(encoding="utf-8"))
        return [ExpandedRow(container=int(i["container"]), part=i["part"], quantity=i["quantity"]) for i in items]

    def purge_stale(self) -> int:
        """Delete uploads and expansion results older than the TTL; returns files removed."""

        if not self._root.is_dir():
            return 0

        cutoff = (self._clock() - self._ttl).timestamp()
        removed = 0
        for path in self._root.iterdir():
            if not path.is_file():
                continue
            if not (path.name.endswith(_UPLOAD_SUFFIX) or path.name.endswith(_EXPANDED_SUFFIX)):
                continue
            if path.stat().st_mtime < cutoff:
                path.unlink(missing_ok=True)
                removed += 1

        if removed:
            logger.info("Purged %d stale upload file(s) from %s", removed, self._root)
        return removed
