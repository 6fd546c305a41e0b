"""Timeout and error typing for calls into external services."""

from __future__ import annotations

import contextvars
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, TypeVar

from docrag.errors import DocRAGError

T = TypeVar("T")

_BOUNDARY_POOL = ThreadPoolExecutor(max_workers=8, thread_name_prefix="docrag-boundary")


@dataclass(frozen=True)
class BoundaryTimeouts:
    """Per-service call timeouts in seconds; ``None`` waits indefinitely."""

    object_store: float | None = 30.0
    embedding: float | None = 60.0
    generation: float | None = 120.0


def call_boundary(
    func: Callable[..., T],
    *args: object,
    timeout: float | None,
    error_cls: type[DocRAGError],
    operation: str,
) -> T:
    """Invoke ``func`` and normalise its failure into ``error_cls``.

    Typed ``DocRAGError`` failures pass through unchanged. With a timeout the
    call runs on a worker thread; expiry raises ``error_cls``. The worker is
    not interrupted, so a slow call may still complete in the background.
    """

    try:
        if timeout is None:
            return func(*args)
        context = contextvars.copy_context()
        future = _BOUNDARY_POOL.submit(context.run, func, *args)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise error_cls(f"{operation} timed out after {timeout:g}s") from exc
    except DocRAGError:
        raise
    except Exception as exc:
        raise error_cls(f"{operation} failed: {exc}") from exc
