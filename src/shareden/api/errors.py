import traceback

from fastapi import HTTPException
from fastapi.logger import logger

from shareden.shares.errors import (
    CommitError,
    ShareError,
    ShareNotFoundError,
    ShareValidationError,
)


def to_http_exception(e: Exception, action: str) -> HTTPException:
    """Map an engine failure onto the status code the UI expects."""
    if isinstance(e, ShareValidationError):
        return HTTPException(status_code=400, detail={"message": e.message, "errors": e.errors})
    if isinstance(e, ShareNotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, CommitError):
        logger.error(f"Error {action}: {e}")
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, ShareError):
        logger.error(f"Error {action}: {e}\n{traceback.format_exc()}")
        return HTTPException(status_code=500, detail=e.message)
    logger.error(f"Error {action}: {e}\n{traceback.format_exc()}")
    return HTTPException(status_code=500, detail=str(e))
