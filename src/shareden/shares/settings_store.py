import logging
import os
from typing import Optional

import yaml
from pydantic import ValidationError

from shareden.config.settings import config
from shareden.shares.errors import ShareIOError, ShareValidationError
from shareden.shares.models import AppSettings
from shareden.shares.utils import write_atomic

logger = logging.getLogger(__name__)


def default_settings() -> AppSettings:
    return AppSettings(
        share_config_base_path=config.share_config_base_path,
        default_parent_path=config.default_parent_path,
        default_mountpoint_name=config.default_mountpoint_name,
        theme=config.theme,
    )


class SettingsStore:
    """AppSettings kept as a small YAML document."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.settings_path

    def load(self) -> AppSettings:
        """Saved settings, falling back to the environment defaults for anything missing."""
        if not os.path.exists(self.path):
            return default_settings()

        try:
            with open(self.path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not read settings from {self.path}, using defaults: {e}")
            return default_settings()

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed settings file {self.path}")
            return default_settings()

        merged = default_settings().model_dump()
        merged.update({k: v for k, v in data.items() if k in merged and v is not None})
        try:
            return AppSettings(**merged)
        except ValidationError as e:
            logger.warning(f"Invalid settings in {self.path}, using defaults: {e}")
            return default_settings()

    def save(self, settings: AppSettings):
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            write_atomic(self.path, yaml.safe_dump(settings.model_dump(mode="json"), default_flow_style=False))
        except OSError as e:
            raise ShareIOError(f"Failed to save settings to {self.path}: {e.strerror or e}") from e
        logger.info(f"Saved settings to {self.path}")


def parse_settings(data: dict) -> AppSettings:
    """Build AppSettings from untrusted input, reporting problems per field."""
    try:
        return AppSettings(**data)
    except ValidationError as e:
        errors = {}
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "settings"
            errors[field] = error["msg"]
        raise ShareValidationError(errors)
