# db/results.py
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class StoreStatus(str, Enum):
    ok = "ok"
    not_found = "not_found"
    storage_error = "storage_error"


@dataclass
class StoreResult(Generic[T]):
    """
    Outcome of a repository call.

    A lookup that simply finds nothing is `not_found`; a broken or missing
    database is `storage_error`. Callers decide which of the two they
    degrade on.
    """

    status: StoreStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StoreResult[T]":
        return cls(StoreStatus.ok, value=value)

    @classmethod
    def missing(cls) -> "StoreResult[T]":
        return cls(StoreStatus.not_found)

    @classmethod
    def failed(cls, error: str) -> "StoreResult[T]":
        return cls(StoreStatus.storage_error, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status == StoreStatus.ok

    @property
    def is_not_found(self) -> bool:
        return self.status == StoreStatus.not_found

    @property
    def is_error(self) -> bool:
        return self.status == StoreStatus.storage_error
