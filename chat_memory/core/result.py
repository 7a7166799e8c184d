"""Explicit success/failure outcome returned by session services."""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, ParamSpec, TypeVar

import structlog

from chat_memory.core.exceptions import AppException, StoreError

logger = structlog.get_logger()

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Tagged outcome of a service operation.

    Exactly one of ``value``/``error`` is meaningful: ``error`` is ``None`` on
    success. Expected failures (not found, forbidden, store errors, conflicts)
    travel inside the result instead of being raised across the service
    boundary; ``unwrap`` re-raises them at the edge that wants an exception.
    """

    value: T | None = None
    error: AppException | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppException) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        """True when the operation succeeded."""
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def as_result(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[Result[T]]]:
    """Wrap an async service method so expected failures become ``Result``.

    A bound ``_timeout`` attribute on the instance (seconds or ``None``) caps
    the whole operation; exceeding it is reported as a store failure.
    Cancellation and unexpected exceptions propagate unchanged.
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        timeout = getattr(args[0], "_timeout", None) if args else None
        try:
            async with asyncio.timeout(timeout):
                value = await func(*args, **kwargs)
        except TimeoutError:
            logger.warning("Session operation timed out", operation=func.__name__)
            return Result.failure(StoreError("Record store request timed out"))
        except AppException as exc:
            logger.warning(
                "Session operation failed",
                operation=func.__name__,
                code=exc.code,
                error=exc.message,
            )
            return Result.failure(exc)
        return Result.success(value)

    return wrapper
