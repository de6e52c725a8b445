from fastapi import APIRouter

from shareden.api.dtos import FilesystemUsageResponse, SettingsResponse, SuccessResponse
from shareden.api.errors import to_http_exception
from shareden.shares.engine import get_engine
from shareden.shares.models import AppSettings

router = APIRouter(prefix="/settings", tags=["Settings"])

@router.get("", response_model=SettingsResponse)
def get_settings_endpoint():
    try:
        return SettingsResponse(data=get_engine().get_settings())
    except Exception as e:
        raise to_http_exception(e, "loading settings")

@router.put("", response_model=SuccessResponse)
def save_settings_endpoint(settings: AppSettings):
    """Save settings. Moving the share base path provisions it and reloads samba."""
    try:
        get_engine().save_settings(settings)
        return SuccessResponse(message="Settings saved.")
    except Exception as e:
        raise to_http_exception(e, "saving settings")

@router.get("/usage", response_model=FilesystemUsageResponse)
def get_usage_endpoint():
    # get_filesystem_usage never raises, unknown values come back as "N/A"
    return FilesystemUsageResponse(data=get_engine().get_filesystem_usage())

@router.post("/usage", response_model=FilesystemUsageResponse)
def preview_usage_endpoint(settings: AppSettings):
    """Usage for settings that have not been saved yet."""
    return FilesystemUsageResponse(data=get_engine().get_filesystem_usage(settings))
