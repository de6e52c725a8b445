from typing import Optional

from fastapi import APIRouter
from fastapi.logger import logger

from shareden.api.dtos import (
    ConfigStatus,
    ConfigStatusResponse,
    ShareListResponse,
    SuccessResponse,
    SuggestedPathResponse,
)
from shareden.api.errors import to_http_exception
from shareden.shares.engine import get_engine
from shareden.shares.models import Share, ShareCreate
from shareden.shares.sizes import sort_shares

router = APIRouter(prefix="/shares", tags=["Shares"])

@router.get("/status", response_model=ConfigStatusResponse)
def get_config_status_endpoint():
    """Whether smb.conf includes the managed shares."""
    try:
        engine = get_engine()
        status = ConfigStatus(
            configured=engine.check_configured(),
            base_path=engine.get_settings().share_config_base_path,
            samba_installed=engine.smb.check_installed(),
            service_status=engine.smb.get_status(),
        )
        return ConfigStatusResponse(data=status)
    except Exception as e:
        raise to_http_exception(e, "checking samba configuration")

@router.get("", response_model=ShareListResponse)
def list_shares_endpoint(sort: Optional[str] = None, descending: bool = False):
    try:
        shares = get_engine().get_shares()
        if sort:
            shares = sort_shares(shares, sort, descending)
        return ShareListResponse(data=shares)
    except Exception as e:
        raise to_http_exception(e, "listing shares")

@router.post("", response_model=ShareListResponse, status_code=201)
def create_share_endpoint(share: ShareCreate):
    try:
        shares = get_engine().add_share(share)
        return ShareListResponse(message=f"Share {share.name} created.", data=shares)
    except Exception as e:
        raise to_http_exception(e, f"creating share {share.name}")

@router.put("/{share_id}", response_model=ShareListResponse)
def update_share_endpoint(share_id: str, share: ShareCreate):
    try:
        shares = get_engine().update_share(Share(id=share_id, **share.model_dump()))
        return ShareListResponse(message=f"Share {share.name} updated.", data=shares)
    except Exception as e:
        raise to_http_exception(e, f"updating share {share_id}")

@router.delete("/{share_id}", response_model=ShareListResponse)
def delete_share_endpoint(share_id: str):
    try:
        shares = get_engine().delete_share(share_id)
        return ShareListResponse(message=f"Share {share_id} deleted.", data=shares)
    except Exception as e:
        raise to_http_exception(e, f"deleting share {share_id}")

@router.get("/suggested-path", response_model=SuggestedPathResponse)
def suggested_path_endpoint():
    """Path to pre-fill when creating a new share."""
    try:
        return SuggestedPathResponse(data=get_engine().suggest_share_path())
    except Exception as e:
        raise to_http_exception(e, "suggesting a share path")

@router.post("/config/directories", response_model=SuccessResponse)
def create_config_directories_endpoint():
    try:
        get_engine().create_config_directories()
        return SuccessResponse(message="Configuration directories created.")
    except Exception as e:
        raise to_http_exception(e, "creating configuration directories")

@router.post("/config/enable", response_model=SuccessResponse)
def enable_config_endpoint():
    """Provision, wire the share records into smb.conf and reload samba."""
    try:
        engine = get_engine()
        engine.create_config_directories()
        engine.enable_config(commit=True)
        logger.info("Share configuration enabled")
        return SuccessResponse(message="Share configuration enabled.")
    except Exception as e:
        raise to_http_exception(e, "enabling share configuration")

@router.post("/config/disable", response_model=SuccessResponse)
def disable_config_endpoint():
    try:
        engine = get_engine()
        engine.disable_config(commit=True)
        logger.info("Share configuration disabled")
        return SuccessResponse(message="Share configuration disabled.")
    except Exception as e:
        raise to_http_exception(e, "disabling share configuration")

@router.post("/config/reload", response_model=SuccessResponse)
def reload_config_endpoint():
    try:
        get_engine().commit_and_reload()
        return SuccessResponse(message="Samba configuration reloaded.")
    except Exception as e:
        raise to_http_exception(e, "reloading samba configuration")
