import logging
import os
import traceback
from typing import List, Optional

import psutil

from shareden.shares.models import AppSettings, FilesystemUsage, Share
from shareden.shares.quota import QuotaManager, find_mountpoint

logger = logging.getLogger(__name__)


def _existing_ancestor(path: str) -> Optional[str]:
    """``path`` itself or its deepest parent that exists."""
    current = os.path.abspath(path or "/")
    while not os.path.exists(current):
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent
    return current


def get_filesystem_usage(settings: AppSettings) -> FilesystemUsage:
    """
    Size and fill level of the filesystem that will hold new shares.

    Looks at the mountpoint backing ``settings.default_parent_path``. This is
    polled next to the share list and must never break it, so every failure
    is logged and the affected fields are left as "N/A".
    """
    usage = FilesystemUsage()
    try:
        path = _existing_ancestor(settings.default_parent_path)
        if path is None:
            return usage

        part = find_mountpoint(path)
        if part is not None:
            usage.filesystem = part.device
            usage.mountpoint = part.mountpoint
        else:
            usage.mountpoint = path

        disk = psutil.disk_usage(path)
        usage.size = str(disk.total // 1024)
        usage.available = str(disk.free // 1024)
        usage.used = str(disk.used // 1024)
        usage.used_percent = f"{disk.percent:.0f}%"
    except Exception as e:
        logger.error(f"Error reading filesystem usage for {settings.default_parent_path}: {e}\n{traceback.format_exc()}")
    return usage


def attach_usage(shares: List[Share], quota_manager: Optional[QuotaManager] = None) -> List[Share]:
    """Fill in ``used`` on every share the quota tool reports on. Best effort."""
    quota_manager = quota_manager or QuotaManager()
    try:
        used = quota_manager.used_by_share(shares)
    except Exception as e:
        logger.warning(f"Could not read share usage: {e}")
        return shares

    for share in shares:
        share.used = used.get(share.id)
    return shares
