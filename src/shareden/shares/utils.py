import os
import tempfile
from typing import Optional


def read_text(path: str) -> Optional[str]:
    """Contents of ``path``, or None when it does not exist."""
    try:
        with open(path, "r") as f:
            return f.read()
    except FileNotFoundError:
        return None


def write_atomic(path: str, content: str, mode: int = 0o644):
    """Replace ``path`` with ``content`` so readers see either the old or the new file."""
    directory = os.path.dirname(path) or "."
    fd, tmp_path = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def restore_file(path: str, content: Optional[str]):
    """Put ``path`` back to a snapshot taken with ``read_text``."""
    if content is None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
    else:
        write_atomic(path, content)
