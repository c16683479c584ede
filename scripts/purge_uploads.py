"""Delete container-expander uploads older than UPLOAD_TTL_HOURS.

Meant for cron, e.g. hourly: `python scripts/purge_uploads.py`.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.coreos_portal.coreos_portal.core.constants import DEFAULT_UPLOAD_TTL_HOURS
from src.coreos_portal.coreos_portal.warehouse.storage import UploadStore


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO))

    root = Path(getattr(settings, "UPLOAD_DIR", "uploads")) / "container_expander"
    ttl_hours = float(getattr(settings, "UPLOAD_TTL_HOURS", DEFAULT_UPLOAD_TTL_HOURS))
    removed = UploadStore(root, ttl_hours=ttl_hours).purge_stale()
    print(f"OK: Removed {removed} stale upload file(s) from {root}")


if __name__ == "__main__":
    main()
