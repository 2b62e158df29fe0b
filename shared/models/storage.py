from enum import Enum

from pydantic import BaseModel


class StorageStatus(str, Enum):
    OK = "ok"
    QUOTA_EXCEEDED = "quota_exceeded"
    ERROR = "error"


class StorageResult(BaseModel):
    """Outcome of a key-value write.

    Attributes:
        status: ok, quota_exceeded or error.
        reason: Human-readable cause for non-ok results.
    """

    status: StorageStatus
    reason: str | None = None

    @classmethod
    def ok(cls) -> "StorageResult":
        return cls(status=StorageStatus.OK)

    @classmethod
    def quota_exceeded(cls, reason: str | None = None) -> "StorageResult":
        return cls(status=StorageStatus.QUOTA_EXCEEDED, reason=reason or "Storage quota exceeded.")

    @classmethod
    def error(cls, reason: str) -> "StorageResult":
        return cls(status=StorageStatus.ERROR, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.status == StorageStatus.OK
