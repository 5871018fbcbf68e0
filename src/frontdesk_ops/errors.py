"""Exception taxonomy shared across the front desk core.

A missing member is not an error: lookups return ``None`` for that case.
Everything else that can go wrong while talking to a backend is one of the
types below, so outer surfaces can translate failures without string
matching.
"""


class FrontDeskError(Exception):
    """Base class for all front desk errors."""


class ConfigurationMissing(FrontDeskError):
    """A required credential or path is not configured.

    The affected backend is reported DISCONNECTED and is not retried until
    the configuration changes.
    """

    def __init__(self, setting: str, message: str | None = None):
        self.setting = setting
        super().__init__(message or f"{setting} is not configured")


class RemoteUnavailable(FrontDeskError):
    """The remote directory could not be reached (network error or timeout)."""


class AuthenticationRejected(FrontDeskError):
    """The remote directory rejected our credentials (HTTP 401/403)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteRequestError(FrontDeskError):
    """The remote directory answered with a non-auth client error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class StoreWriteFailure(FrontDeskError):
    """A write to the local store failed. Callers decide whether to retry."""


class SyncFailure(FrontDeskError):
    """Pushing a local record to the cloud store failed."""

    def __init__(self, table_name: str, record_id: int, message: str):
        self.table_name = table_name
        self.record_id = record_id
        super().__init__(f"{table_name}#{record_id}: {message}")
