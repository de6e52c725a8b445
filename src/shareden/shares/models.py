from typing import Literal, Optional
from pydantic import BaseModel

class ShareCreate(BaseModel):
    name: str
    path: str
    comment: str = ""
    guest_ok: bool = False
    read_only: bool = False
    browsable: bool = True
    quota: str = ""
    advanced_settings: str = ""

class Share(ShareCreate):
    id: str
    # Filled in by the usage reporter, never persisted
    used: Optional[str] = None

class AppSettings(BaseModel):
    share_config_base_path: str
    default_parent_path: str
    default_mountpoint_name: str = ""
    theme: Literal["dark", "light"] = "dark"

class FilesystemUsage(BaseModel):
    filesystem: str = "N/A"
    mountpoint: str = "N/A"
    size: str = "N/A"
    available: str = "N/A"
    used: str = "N/A"
    used_percent: str = "N/A"
