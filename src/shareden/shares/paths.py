from typing import Dict, Optional

from shareden.shares.models import AppSettings

SEPARATOR = "/"

# Settings fields holding directories that must be absolute and unslashed
PATH_FIELDS = ("share_config_base_path", "default_parent_path")


def validate_path(value: Optional[str]) -> Optional[str]:
    """Return why ``value`` is not an acceptable directory setting, or None."""
    if not value or not value.startswith(SEPARATOR):
        return 'Path must start with "/".'
    if len(value) > 1 and value.endswith(SEPARATOR):
        return 'Path should not end with "/".'
    return None


def validate_settings_paths(settings: AppSettings) -> Dict[str, str]:
    errors = {}
    for field in PATH_FIELDS:
        message = validate_path(getattr(settings, field))
        if message:
            errors[field] = message
    return errors


def suggest_share_path(default_parent_path: str, default_mountpoint_name: str) -> str:
    """Path offered for a new share: the mountpoint name under the default parent."""
    parts = []
    if default_parent_path:
        parts.append(default_parent_path.rstrip(SEPARATOR))
    if default_mountpoint_name:
        parts.append(default_mountpoint_name.strip(SEPARATOR))
    return SEPARATOR.join(parts) or SEPARATOR
