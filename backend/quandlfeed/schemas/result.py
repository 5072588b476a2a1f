from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Outcome of a provider call: a payload on success, a message on failure."""

    model_config = ConfigDict(frozen=True)

    succeeded: bool
    payload: T | None = None
    message: str | None = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "OperationResult[T]":
        if not self.succeeded and self.payload is not None:
            raise ValueError("A failed result cannot carry a payload.")
        if self.succeeded and self.message is not None:
            raise ValueError("A successful result cannot carry a failure message.")
        return self

    @classmethod
    def success(cls, payload: T) -> "OperationResult[T]":
        return cls(succeeded=True, payload=payload)

    @classmethod
    def failure(cls, message: str) -> "OperationResult[T]":
        return cls(succeeded=False, message=message)
