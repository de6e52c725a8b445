"""
Per-directory quotas through XFS project quotas.

Every share with a quota becomes an XFS project named ``share_<id>``. The
project is registered in /etc/projects (id -> directory) and /etc/projid
(name -> id), initialised with ``xfs_quota -x -c 'project -s'`` and limited
with a hard block limit. xfs_quota reports in kilobytes, which is also the
unit the rest of the engine works in.
"""
import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional

import psutil

from shareden.config.settings import config
from shareden.shares.errors import QuotaError
from shareden.shares.models import Share
from shareden.shares.sizes import quota_to_kilobytes
from shareden.shares.utils import write_atomic

logger = logging.getLogger(__name__)


def project_name(share: Share) -> str:
    return f"share_{share.id}"


def find_mountpoint(path: str):
    """The mounted partition holding ``path`` (deepest matching mountpoint)."""
    path = os.path.realpath(path)
    best = None
    for part in psutil.disk_partitions(all=True):
        mountpoint = part.mountpoint
        if path == mountpoint or path.startswith(mountpoint.rstrip("/") + "/"):
            if best is None or len(mountpoint) > len(best.mountpoint):
                best = part
    return best


class QuotaManager:
    def __init__(self, projects_file: Optional[str] = None, projid_file: Optional[str] = None):
        self.projects_file = projects_file or config.projects_file
        self.projid_file = projid_file or config.projid_file

    def is_available(self) -> bool:
        return shutil.which("xfs_quota") is not None

    def set_quota(self, share: Share):
        """Limit ``share.path`` to ``share.quota``."""
        if not share.quota:
            self.clear_quota(share)
            return
        if not self.is_available():
            raise QuotaError("Cannot set quota: xfs_quota is not installed.")

        mountpoint = self._mountpoint_for(share.path)
        name = project_name(share)
        project_id = self._project_id(name)

        self._upsert_line(self.projects_file, f"{project_id}:", f"{project_id}:{share.path}")
        self._upsert_line(self.projid_file, f"{name}:", f"{name}:{project_id}")

        self._xfs_quota(f"project -s {name}", mountpoint)
        self._xfs_quota(f"limit -p bhard={quota_to_kilobytes(share.quota)}k {name}", mountpoint)
        logger.info(f"Set quota {share.quota} on {share.path} (project {name}, id {project_id})")

    def clear_quota(self, share: Share):
        """Lift the limit on ``share`` and forget its project. No-op if it never had one."""
        name = project_name(share)
        project_id = self._lookup_project_id(name)
        if project_id is None:
            return

        if self.is_available():
            try:
                mountpoint = self._mountpoint_for(share.path)
                self._xfs_quota(f"limit -p bhard=0 {name}", mountpoint)
            except QuotaError as e:
                logger.warning(f"Could not lift quota for {name}: {e}")

        self._remove_lines(self.projects_file, f"{project_id}:")
        self._remove_lines(self.projid_file, f"{name}:")
        logger.info(f"Cleared quota on {share.path} (project {name})")

    def report(self, mountpoint: str) -> Dict[str, str]:
        """Used kilobytes per project name on ``mountpoint``, as xfs_quota prints them."""
        output = self._xfs_quota("report -p -N", mountpoint)
        usage = {}
        for line in output.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[1].isdigit():
                usage[parts[0]] = parts[1]
        return usage

    def used_by_share(self, shares: List[Share]) -> Dict[str, str]:
        """Used kilobytes keyed by share id, for every share xfs_quota knows about."""
        if not self.is_available():
            return {}

        by_mountpoint: Dict[str, List[Share]] = {}
        for share in shares:
            part = find_mountpoint(share.path)
            if part is not None:
                by_mountpoint.setdefault(part.mountpoint, []).append(share)

        used = {}
        for mountpoint, members in by_mountpoint.items():
            report = self.report(mountpoint)
            for share in members:
                if project_name(share) in report:
                    used[share.id] = report[project_name(share)]
        return used

    def _mountpoint_for(self, path: str) -> str:
        part = find_mountpoint(path)
        if part is None:
            raise QuotaError(f"No mounted filesystem found for {path}.")
        if part.fstype != "xfs":
            raise QuotaError(f"{path} is on {part.fstype}, project quotas need xfs.")
        return part.mountpoint

    def _xfs_quota(self, command: str, mountpoint: str) -> str:
        try:
            result = subprocess.run(
                ["xfs_quota", "-x", "-c", command, mountpoint],
                check=True, capture_output=True, text=True, timeout=config.command_timeout
            )
        except FileNotFoundError:
            raise QuotaError("xfs_quota is not installed.")
        except subprocess.TimeoutExpired:
            raise QuotaError(f"xfs_quota '{command}' did not finish within {config.command_timeout}s.")
        except subprocess.CalledProcessError as e:
            raise QuotaError(f"xfs_quota '{command}' failed: {(e.stderr or '').strip() or e}")
        return result.stdout

    def _read_lines(self, filepath: str) -> List[str]:
        try:
            with open(filepath) as f:
                return f.readlines()
        except FileNotFoundError:
            return []

    def _lookup_project_id(self, name: str) -> Optional[int]:
        for line in self._read_lines(self.projid_file):
            entry_name, _, entry_id = line.strip().partition(":")
            if entry_name == name and entry_id.isdigit():
                return int(entry_id)
        return None

    def _project_id(self, name: str) -> int:
        """Existing id of project ``name``, or the next free one."""
        existing = self._lookup_project_id(name)
        if existing is not None:
            return existing
        taken = [config.project_id_base - 1]
        for line in self._read_lines(self.projid_file):
            _, _, entry_id = line.strip().partition(":")
            if entry_id.isdigit():
                taken.append(int(entry_id))
        return max(taken) + 1

    def _upsert_line(self, filepath: str, prefix: str, new_line: str):
        """Add or replace the line starting with ``prefix`` in ``filepath``."""
        lines = [l for l in self._read_lines(filepath) if not l.startswith(prefix)]
        lines.append(new_line + "\n")
        self._write_lines(filepath, lines)

    def _remove_lines(self, filepath: str, prefix: str):
        lines = self._read_lines(filepath)
        kept = [l for l in lines if not l.startswith(prefix)]
        if len(kept) != len(lines):
            self._write_lines(filepath, kept)

    def _write_lines(self, filepath: str, lines: List[str]):
        try:
            write_atomic(filepath, "".join(lines))
        except OSError as e:
            raise QuotaError(f"Failed to update {filepath}: {e.strerror or e}") from e
