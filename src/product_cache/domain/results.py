"""Result values delivered to cache completion callbacks."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """A completed operation and its value."""

    value: T


@dataclass(frozen=True)
class Failure:
    """A failed operation and the error that caused it."""

    error: Exception


Result = Success[T] | Failure
