from typing import List, Optional

from pydantic import BaseModel

from shareden.shares.models import AppSettings, FilesystemUsage, Share


class BaseResponse(BaseModel):
    status: str = "success"
    message: Optional[str] = None


class SuccessResponse(BaseResponse):
    pass


class VersionInfo(BaseModel):
    version: str


class ConfigStatus(BaseModel):
    configured: bool
    base_path: str
    samba_installed: bool
    service_status: str


class ShareListResponse(BaseResponse):
    data: List[Share]


class ConfigStatusResponse(BaseResponse):
    data: ConfigStatus


class SettingsResponse(BaseResponse):
    data: AppSettings


class FilesystemUsageResponse(BaseResponse):
    data: FilesystemUsage


class SuggestedPathResponse(BaseResponse):
    data: str


class VersionResponse(BaseResponse):
    data: VersionInfo
