"""
One Samba configuration record per share.

Every share lives in ``<base>/<name>.conf``, a self contained Samba section
that ``smbd`` can include directly. Values that Samba has no parameter for
(the share id and its quota) are kept in ``# shareden:`` comments, and
anything the operator typed as advanced settings follows the
``# shareden:advanced`` marker verbatim::

    # shareden:id = 6f1c...
    # shareden:quota = 10G
    [media]
        path = /srv/media
        comment = Family media
        guest ok = no
        read only = no
        browseable = yes
        # shareden:advanced
    valid users = @family
"""
import logging
import os
import uuid
from typing import Dict, List, Optional

from shareden.shares.errors import ShareIOError, ShareNotFoundError, ShareValidationError
from shareden.shares.models import Share, ShareCreate
from shareden.shares.sizes import normalize_quota
from shareden.shares.utils import write_atomic

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".conf"
META_PREFIX = "# shareden:"
ADVANCED_MARKER = "# shareden:advanced"

RESERVED_NAMES = ("global", "homes", "printers")
ILLEGAL_NAME_CHARS = "[]/\\"

# Stable ids for records written by hand, without an id comment
_ID_NAMESPACE = uuid.UUID("5b0c9a4e-6a43-4e57-9d3c-2f5de1f0a7a1")


def _str_to_bool(val: str) -> bool:
    return val.lower() in ('yes', 'true', '1', 'on')


def _bool_to_str(val: bool) -> str:
    return 'yes' if val else 'no'


def render_record(share: Share) -> str:
    lines = [
        f"{META_PREFIX}id = {share.id}",
        f"{META_PREFIX}quota = {share.quota}",
        f"[{share.name}]",
        f"    path = {share.path}",
        f"    comment = {share.comment}",
        f"    guest ok = {_bool_to_str(share.guest_ok)}",
        f"    read only = {_bool_to_str(share.read_only)}",
        f"    browseable = {_bool_to_str(share.browsable)}",
        f"    {ADVANCED_MARKER}",
    ]
    if share.advanced_settings:
        lines.append(share.advanced_settings)
    return "\n".join(lines) + "\n"


def parse_record(text: str, source: str = "<record>") -> Share:
    """Parse a record written by ``render_record`` (or by hand).

    Parameters the share model has no field for are kept as advanced
    settings so nothing in a hand-edited record is lost on the next save.
    """
    meta: Dict[str, str] = {}
    params: Dict[str, str] = {}
    extra: List[str] = []
    advanced: List[str] = []
    name = None
    in_advanced = False

    for line in text.splitlines():
        if in_advanced:
            advanced.append(line)
            continue

        stripped = line.strip()
        if stripped == ADVANCED_MARKER:
            in_advanced = True
            continue
        if stripped.startswith(META_PREFIX):
            key, _, value = stripped[len(META_PREFIX):].partition("=")
            meta[key.strip()] = value.strip()
            continue
        if not stripped or stripped[0] in "#;":
            continue
        if stripped.startswith("[") and stripped.endswith("]"):
            if name is not None:
                raise ValueError(f"{source}: more than one section")
            name = stripped[1:-1].strip()
            continue

        key, sep, value = stripped.partition("=")
        if not sep:
            raise ValueError(f"{source}: cannot parse line '{stripped}'")
        key = " ".join(key.lower().split())
        if key in ("path", "comment", "guest ok", "public", "read only", "writable",
                   "writeable", "write ok", "browseable", "browsable"):
            params[key] = value.strip()
        else:
            extra.append(stripped)

    if not name:
        raise ValueError(f"{source}: no share section found")

    read_only = True
    if "read only" in params:
        read_only = _str_to_bool(params["read only"])
    else:
        for key in ("writable", "writeable", "write ok"):
            if key in params:
                read_only = not _str_to_bool(params[key])

    advanced_settings = "\n".join(extra + advanced).rstrip()

    return Share(
        id=meta.get("id") or uuid.uuid5(_ID_NAMESPACE, name).hex,
        name=name,
        path=params.get("path", ""),
        comment=params.get("comment", ""),
        guest_ok=_str_to_bool(params.get("guest ok", params.get("public", "no"))),
        read_only=read_only,
        browsable=_str_to_bool(params.get("browseable", params.get("browsable", "yes"))),
        quota=meta.get("quota", ""),
        advanced_settings=advanced_settings,
    )


class ShareRecordStore:
    def __init__(self, base_path: str):
        self.base_path = base_path

    def record_path(self, name: str) -> str:
        return os.path.join(self.base_path, f"{name}{RECORD_SUFFIX}")

    def record_files(self) -> List[str]:
        """Names of the record files currently in the base directory."""
        if not os.path.isdir(self.base_path):
            return []
        return sorted(
            entry for entry in os.listdir(self.base_path)
            if entry.endswith(RECORD_SUFFIX) and not entry.startswith(".")
        )

    def list(self) -> List[Share]:
        """All readable records. A record that cannot be parsed is logged and skipped."""
        shares = []
        for entry in self.record_files():
            path = os.path.join(self.base_path, entry)
            try:
                with open(path, "r") as f:
                    shares.append(parse_record(f.read(), source=path))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable share record {path}: {e}")
        return shares

    def get(self, share_id: str) -> Share:
        for share in self.list():
            if share.id == share_id:
                return share
        raise ShareNotFoundError(share_id)

    def add(self, share: ShareCreate) -> List[Share]:
        """Persist a new share under a freshly generated id. Returns every share."""
        fields = self.validate(share)
        record = Share(id=uuid.uuid4().hex, **fields)
        self._write(record)
        logger.info(f"Created share record '{record.name}' ({record.id})")
        return self.list()

    def update(self, share: Share) -> List[Share]:
        """Rewrite an existing share in place. The id cannot change."""
        existing = self.get(share.id)
        fields = self.validate(share, exclude_id=share.id)
        record = Share(id=existing.id, **fields)
        self._write(record)
        if self.record_path(existing.name) != self.record_path(record.name):
            self._delete(existing.name)
        logger.info(f"Updated share record '{record.name}' ({record.id})")
        return self.list()

    def remove(self, share_id: str) -> List[Share]:
        existing = self.get(share_id)
        self._delete(existing.name)
        logger.info(f"Removed share record '{existing.name}' ({share_id})")
        return self.list()

    def validate(self, share: ShareCreate, exclude_id: Optional[str] = None) -> Dict:
        """Check a share against the store and return its normalised fields.

        Raises ShareValidationError with one message per offending field.
        """
        errors: Dict[str, str] = {}
        name = share.name.strip()
        path = share.path.strip()
        comment = share.comment.strip()
        advanced = share.advanced_settings.lstrip("\n").rstrip()

        name_error = self._check_name(name, exclude_id)
        if name_error:
            errors["name"] = name_error

        if not path:
            errors["path"] = "Path is required."
        elif not path.startswith("/"):
            errors["path"] = 'Path must start with "/".'
        elif "\n" in path:
            errors["path"] = "Path may not contain line breaks."

        if "\n" in comment:
            errors["comment"] = "Comment may not contain line breaks."

        for line in advanced.splitlines():
            if line.strip().startswith("["):
                errors["advanced_settings"] = "Advanced settings may not start a new section."
                break

        quota = ""
        try:
            quota = normalize_quota(share.quota)
        except ShareValidationError as e:
            errors.update(e.errors)

        if errors:
            raise ShareValidationError(errors)

        return dict(
            name=name,
            path=path,
            comment=comment,
            guest_ok=share.guest_ok,
            read_only=share.read_only,
            browsable=share.browsable,
            quota=quota,
            advanced_settings=advanced,
        )

    def _check_name(self, name: str, exclude_id: Optional[str]) -> Optional[str]:
        if not name:
            return "Name is required."
        if name.startswith(".") or "\n" in name or any(c in name for c in ILLEGAL_NAME_CHARS):
            return "Name may not start with '.' or contain '[', ']', '/', '\\' or line breaks."
        if name.lower() in RESERVED_NAMES:
            return f"'{name}' is reserved by Samba."
        for other in self.list():
            if other.id != exclude_id and other.name.lower() == name.lower():
                return f"Share '{name}' already exists."
        return None

    def _write(self, share: Share):
        path = self.record_path(share.name)
        try:
            write_atomic(path, render_record(share))
        except OSError as e:
            raise ShareIOError(f"Failed to write share record {path}: {e.strerror or e}") from e

    def _delete(self, name: str):
        path = self.record_path(name)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ShareIOError(f"Failed to delete share record {path}: {e.strerror or e}") from e

