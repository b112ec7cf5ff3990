"""Langfuse tracing for the routing pipeline.

When LANGFUSE_PUBLIC_KEY is not set, `observe` is a pass-through decorator
so classifier, dispatcher and skills can be decorated unconditionally.
"""

import inspect
import logging
from collections.abc import Callable
from functools import wraps

from src.core.config import settings

logger = logging.getLogger(__name__)

# Suppress Langfuse SDK's repeated WARNING about missing keys
logging.getLogger("langfuse").setLevel(logging.ERROR)


def tracing_enabled() -> bool:
    return bool(settings.langfuse_public_key)


if tracing_enabled():
    from langfuse import observe
else:

    def observe(name: str = "", **kwargs) -> Callable:  # type: ignore[misc]
        """No-op decorator when Langfuse is not configured."""

        def decorator(fn: Callable) -> Callable:
            if inspect.iscoroutinefunction(fn):

                @wraps(fn)
                async def async_wrapper(*args, **kw):
                    return await fn(*args, **kw)

                return async_wrapper

            @wraps(fn)
            def sync_wrapper(*args, **kw):
                return fn(*args, **kw)

            return sync_wrapper

        return decorator


__all__ = ["observe", "tracing_enabled"]
