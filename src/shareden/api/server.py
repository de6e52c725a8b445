import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shareden.api.routers import info, settings, shares
from shareden.config.settings import config
from shareden.version import get_version

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Shareden API",
    description="Samba shares kept as one configuration record each, with optional XFS quotas.",
    version=get_version(),
)

# Web UI origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(info.router)
app.include_router(settings.router)
app.include_router(shares.router)


@app.on_event("startup")
def log_share_configuration():
    from shareden.shares.engine import get_engine
    engine = get_engine()
    try:
        base_path = engine.get_settings().share_config_base_path
        state = "included" if engine.check_configured() else "NOT included"
        logger.info(f"Share records in {base_path} are {state} by {engine.smb.smb_conf_path}")
    except Exception as e:
        logger.warning(f"Could not read share configuration state: {e}")
