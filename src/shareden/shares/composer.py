"""
Wiring of the share record directory into the main Samba configuration.

Samba cannot include a whole directory, so the composer keeps an aggregate
include file, ``<base>/shares.inc``, listing one ``include =`` line per
record, and a single ``include = <base>/shares.inc`` directive in the
``[global]`` section of ``smb.conf``. Commenting that directive out
disables every managed share at once while leaving the records in place.

Nothing here reloads Samba: changes become live through
``SMBManager.commit_and_reload``.
"""
import logging
import os
import re
from typing import List, Optional

from shareden.config.settings import config
from shareden.shares.errors import ShareIOError
from shareden.shares.records import ShareRecordStore
from shareden.shares.utils import read_text, write_atomic

logger = logging.getLogger(__name__)

INCLUDE_FILENAME = "shares.inc"

# Matches our directive whether active or commented out, for any base path
_DIRECTIVE_RE = re.compile(
    r"^(?P<indent>\s*)(?P<comment>[#;]\s*)?include\s*=\s*(?P<target>\S*/" + re.escape(INCLUDE_FILENAME) + r")\s*$",
    re.IGNORECASE,
)
_SECTION_RE = re.compile(r"^\s*\[(?P<name>[^\]]+)\]\s*$")

BASE_CONFIG = """[global]
    workgroup = WORKGROUP
    server string = Shareden Server
    security = user
    map to guest = Bad User
"""


class ShareComposer:
    def __init__(self, store: ShareRecordStore, smb_conf_path: Optional[str] = None):
        self.store = store
        self.smb_conf_path = smb_conf_path or config.smb_conf_path

    @property
    def include_path(self) -> str:
        return os.path.join(self.store.base_path, INCLUDE_FILENAME)

    @property
    def directive(self) -> str:
        return f"include = {self.include_path}"

    def create_config_directories(self, *extra_directories: str):
        """Make sure the record directory (and any extra ones) exist. Safe to call at any time."""
        for directory in (self.store.base_path,) + extra_directories:
            if not directory:
                continue
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise ShareIOError(f"Failed to create directory {directory}: {e.strerror or e}") from e

    def render_include(self) -> str:
        lines = ["# Managed by shareden. Rebuilt whenever a share is added or removed."]
        for entry in self.store.record_files():
            lines.append(f"include = {os.path.join(self.store.base_path, entry)}")
        return "\n".join(lines) + "\n"

    def rebuild(self):
        """Regenerate the aggregate include file from the records on disk."""
        try:
            write_atomic(self.include_path, self.render_include())
        except OSError as e:
            raise ShareIOError(f"Failed to write {self.include_path}: {e.strerror or e}") from e
        logger.info(f"Rebuilt {self.include_path} with {len(self.store.record_files())} share(s)")

    def is_enabled(self) -> bool:
        content = read_text(self.smb_conf_path)
        if content is None:
            return False
        for line in content.splitlines():
            match = _DIRECTIVE_RE.match(line)
            if match and not match.group("comment") and match.group("target") == self.include_path:
                return True
        return False

    def enable(self):
        """Insert the include directive into smb.conf. Running it twice changes nothing."""
        self.create_config_directories()
        self.rebuild()
        content = read_text(self.smb_conf_path)
        if content is None:
            logger.info(f"{self.smb_conf_path} not found, creating a base configuration")
            content = BASE_CONFIG

        lines = self._set_directive(content.splitlines(), active=True)
        self._write_smb_conf(lines)
        logger.info(f"Enabled share include in {self.smb_conf_path}")

    def disable(self):
        """Comment the include directive out, leaving every record in place."""
        content = read_text(self.smb_conf_path)
        if content is None:
            return
        lines = self._set_directive(content.splitlines(), active=False)
        self._write_smb_conf(lines)
        logger.info(f"Disabled share include in {self.smb_conf_path}")

    def _set_directive(self, lines: List[str], active: bool) -> List[str]:
        result = []
        found = False
        for line in lines:
            match = _DIRECTIVE_RE.match(line)
            if not match:
                result.append(line)
                continue
            if found:
                # Drop duplicates left behind by earlier base paths
                continue
            found = True
            if active:
                result.append(f"{match.group('indent')}{self.directive}")
            else:
                result.append(f"{match.group('indent')};{self.directive}")

        if found or not active:
            return result

        # No directive yet: append it to the end of [global]
        global_start = None
        global_end = len(result)
        for i, line in enumerate(result):
            section = _SECTION_RE.match(line)
            if not section:
                continue
            if global_start is not None:
                global_end = i
                break
            if section.group("name").strip().lower() == "global":
                global_start = i

        if global_start is None:
            return ["[global]", f"    {self.directive}", ""] + result

        insert_at = global_end
        while insert_at > global_start + 1 and not result[insert_at - 1].strip():
            insert_at -= 1
        return result[:insert_at] + [f"    {self.directive}"] + result[insert_at:]

    def _write_smb_conf(self, lines: List[str]):
        directory = os.path.dirname(self.smb_conf_path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            write_atomic(self.smb_conf_path, "\n".join(lines) + "\n")
        except OSError as e:
            raise ShareIOError(f"Failed to write {self.smb_conf_path}: {e.strerror or e}") from e
