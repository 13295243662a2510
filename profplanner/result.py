"""
Result wrapper for engine operations whose failure is an expected outcome
(an update that targets a lesson which no longer exists, for example).

Programmer errors such as duplicate ids are raised as exceptions instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ResultStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either a value (SUCCESS) or an error with a message (FAILURE).

    Examples:
        >>> result = Result.success([1, 2])
        >>> result.unwrap()
        [1, 2]
        >>> Result.failure("missing").unwrap_or([])
        []
    """

    status: ResultStatus
    value: Optional[T] = None
    error: Optional[Exception] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == ResultStatus.FAILURE

    @classmethod
    def success(cls, value: T, message: Optional[str] = None) -> "Result[T]":
        return cls(status=ResultStatus.SUCCESS, value=value, message=message)

    @classmethod
    def failure(cls, message: str, error: Optional[Exception] = None) -> "Result[T]":
        return cls(status=ResultStatus.FAILURE, message=message, error=error)

    def unwrap(self) -> T:
        """
        Return the value, or re-raise the stored error of a failure.
        A failure without a stored error raises ValueError.
        """
        if self.is_failure:
            if self.error is not None:
                raise self.error
            raise ValueError(f"Cannot unwrap failure result: {self.message}")
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self.value if self.is_success else default  # type: ignore[return-value]
