import functools
import gzip
import inspect
import logging
import logging.handlers
import os
import shutil
import sys
from gzip import GzipFile
from typing import Callable

from .config import settings

logger = logging.getLogger("typhon")
logger.setLevel(settings.log_level.upper())
formatter = logging.Formatter(
    "%(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
)


def rotator(source, dest):
    with open(source, "rb") as f_in:
        with gzip.open(dest + ".gz", "wb") as f_out:
            assert isinstance(f_out, GzipFile)
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


if settings.logs_dir is not None:
    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_handler = logging.handlers.TimedRotatingFileHandler(
        settings.logs_dir / "typhon.log", when="midnight"
    )
    log_file_handler.setFormatter(formatter)
    log_file_handler.rotator = rotator
    logger.addHandler(log_file_handler)

log_stream_handler = logging.StreamHandler(sys.stdout)
log_stream_handler.setFormatter(formatter)
logger.addHandler(log_stream_handler)


def log_exception[**P, R](
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that logs and swallows any exception raised by the wrapped callable.

    Works for plain and coroutine functions. Bound arguments are rendered as
    ``name=value`` pairs, and ``prefix`` may reference them with ``{name}``
    placeholders.

    Args:
        prefix: Optional prefix to prepend to the error message
        default_return: Value returned in place of the failed call's result

    Usage:
        @log_exception("Deferred[{name}]")
        def run(name, *args):
            ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        sig = inspect.signature(func)
        func_name = func.__qualname__

        def describe_call(args: tuple, kwargs: dict) -> tuple[dict, str]:
            try:
                bound = sig.bind(*args, **kwargs)
                bound.apply_defaults()
            except TypeError as e:
                logger.warning(
                    f"Failed to bind arguments for function {func_name}: {e}",
                    stacklevel=4,  # describe_call -> report -> wrapper -> caller
                )
                rendered = ", ".join(
                    part
                    for part in (
                        f"args={args!r}" if args else "",
                        f"kwargs={kwargs!r}" if kwargs else "",
                    )
                    if part
                )
                return {}, f"[{rendered}] " if rendered else ""

            rendered = ", ".join(f"{k}={v!r}" for k, v in bound.arguments.items())
            return bound.arguments, f"[{rendered}] " if rendered else ""

        def render_prefix(bound_args: dict) -> str:
            if not prefix:
                return ""
            if "{" not in prefix or "}" not in prefix:
                return f"{prefix}: "
            try:
                return f"{prefix.format_map(bound_args)}: "
            except (KeyError, ValueError, IndexError) as e:
                logger.warning(
                    f"Failed to format prefix '{prefix}' with arguments: {e}",
                    stacklevel=4,  # render_prefix -> report -> wrapper -> caller
                )
                return f"{prefix}: "

        def report(e: Exception, args: tuple, kwargs: dict) -> None:
            bound_args, args_str = describe_call(args, kwargs)
            logger.error(
                f"{args_str}{render_prefix(bound_args)}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,  # report -> wrapper -> caller
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e, args, kwargs)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e, args, kwargs)
                return default_return  # type: ignore[return-value]

        return sync_wrapper  # type: ignore[return-value]

    return decorator
