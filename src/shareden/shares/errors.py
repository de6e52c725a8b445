from typing import Dict, Optional


class ShareError(Exception):
    """Base class for every failure the share engine reports to its callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ShareValidationError(ShareError):
    """Input rejected before anything was written.

    ``errors`` maps the offending field to a human readable message so that
    callers can report problems next to the field that caused them.
    """

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(message)


class ShareNotFoundError(ShareError):
    def __init__(self, share_id: str):
        super().__init__(f"Share '{share_id}' does not exist.")
        self.share_id = share_id


class ShareIOError(ShareError):
    pass


class QuotaError(ShareError):
    pass


class CommitError(ShareError):
    """The composed configuration could not be made live."""


class ConfigValidationError(CommitError):
    """testparm rejected the composed configuration. ``output`` is its raw report."""

    def __init__(self, output: str):
        super().__init__(output.strip() or "Samba configuration validation failed.")
        self.output = output


class ReloadError(CommitError):
    pass
