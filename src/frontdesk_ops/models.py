"""Pydantic models for the front desk core.

Defines the data contracts shared across the cache, the remote directory
client, the health monitor and the sync ledger:

- ``Member``: identity record cached from the remote directory.
- ``Credential``: the single active credential held in memory.
- ``ConnectionState`` / ``StatusChange``: per-backend health and its events.
- ``SyncRecord``: one row of the cloud sync ledger.
- ``CheckIn``, ``Incident``, ``Announcement``, ``KnowledgeBaseEntry``:
  append-only local records.

Models are frozen (immutable); updates go through ``model_copy``.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, SecretStr


class MembershipStatus(str, Enum):
    """Membership standing as reported by the remote directory."""

    ACTIVE = "active"
    EXPIRED = "expired"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> MembershipStatus:
        """Map a free-form status string onto the enum (unknown -> UNKNOWN)."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Member(BaseModel):
    """Identity record.

    Attributes:
        id: Local surrogate key (None until stored).
        external_id: Key assigned by the remote directory. None means the
            row was created locally and has not been reconciled yet.
        first_name: Given name.
        last_name: Family name.
        email: Primary email address.
        phone: Primary phone number.
        membership_status: Current standing.
        membership_expiry: Expiry date, if the directory reports one.
        last_synced_at: When the row was last written from a full snapshot.
    """

    id: int | None = None
    external_id: str | None = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    membership_status: MembershipStatus = MembershipStatus.UNKNOWN
    membership_expiry: date | None = None
    last_synced_at: datetime | None = None

    model_config = {"frozen": True}

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UpsertResult(BaseModel):
    """Outcome of ``LocalCache.upsert_member``."""

    id: int
    created: bool

    model_config = {"frozen": True}


class AuthStrategy(str, Enum):
    """Credential acquisition methods, in no particular order."""

    API_KEY = "api_key"
    OAUTH_CLIENT_CREDENTIALS = "oauth_client_credentials"
    BEARER = "bearer"


class Credential(BaseModel):
    """In-memory credential for the remote directory.

    Attributes:
        strategy: Strategy that produced this credential.
        secret: Key or token sent in the Authorization header.
        expires_at: Timezone-aware expiry instant.
    """

    strategy: AuthStrategy
    secret: SecretStr
    expires_at: datetime

    model_config = {"frozen": True}

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at

    def authorization(self) -> str:
        """Return the Authorization header value for this credential."""
        value = self.secret.get_secret_value()
        if self.strategy == AuthStrategy.API_KEY:
            return value
        if value.startswith("Bearer "):
            return value
        return f"Bearer {value}"


class BackendId(str, Enum):
    """Independently monitored backends."""

    REMOTE_DIRECTORY = "remote_directory"
    LOCAL_CACHE = "local_cache"
    SCANNER_EXPORT = "scanner_export"
    TIME_CLOCK_STORE = "time_clock_store"


class ConnectionStatus(str, Enum):
    UNKNOWN = "unknown"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionState(BaseModel):
    """Health of one backend.

    Attributes:
        backend_id: Which backend this describes.
        status: Current status.
        last_transition_at: When ``status`` last changed (None while UNKNOWN).
        detail: Short human-readable reason for the last probe outcome.
    """

    backend_id: BackendId
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    last_transition_at: datetime | None = None
    detail: str | None = None

    model_config = {"frozen": True}


class StatusChange(BaseModel):
    """Event published when a backend's settled status changes."""

    backend_id: BackendId
    old_status: ConnectionStatus
    new_status: ConnectionStatus
    timestamp: datetime

    model_config = {"frozen": True}


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


class SyncRecord(BaseModel):
    """One cloud sync ledger entry, unique per (table_name, record_id)."""

    table_name: str
    record_id: int
    sync_status: SyncStatus = SyncStatus.PENDING
    last_attempt_at: datetime | None = None
    error_message: str | None = None
    # bumped by every local write; outcomes only apply to the generation pushed
    generation: int = 0

    model_config = {"frozen": True}


class CheckIn(BaseModel):
    id: int | None = None
    member_id: str | None = None
    member_name: str = "Unknown Member"
    purpose: str | None = None
    notes: str | None = None
    timestamp: datetime | None = None

    model_config = {"frozen": True}


class Incident(BaseModel):
    """Front desk incident report."""

    id: int | None = None
    description: str
    reported_by: str | None = None
    location: str | None = None
    incident_type: str | None = None
    incident_date: str | None = None
    incident_time: str | None = None
    action_taken: str | None = None
    status: str = "open"
    created_at: datetime | None = None

    model_config = {"frozen": True}


class Announcement(BaseModel):
    id: int | None = None
    title: str
    content: str
    priority: str = "normal"
    expiry_date: date | None = None
    created_at: datetime | None = None

    model_config = {"frozen": True}


class KnowledgeBaseEntry(BaseModel):
    id: int | None = None
    title: str
    content: str
    category: str | None = None
    created_at: datetime | None = None

    model_config = {"frozen": True}
