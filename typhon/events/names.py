"""Event name resolution.

Turns the ``name`` argument accepted by registration and trigger methods into
individual single-name calls. Three forms are understood:

- ``"change"``: one literal event name
- ``"change blur"``: whitespace separated names, handled left to right
- ``{"change": on_change, "blur": on_blur}``: a name -> handler mapping
"""

import re
from typing import Any, Callable, Mapping, Optional, TypeVar

from .types import EventName

T = TypeVar("T")

# iteratee(memo, name, callback, options) -> memo
Iteratee = Callable[[T, str, Any, dict], T]

EVENT_SPLITTER = re.compile(r"\s+")


def resolve_names(
    iteratee: Iteratee[T],
    memo: T,
    name: EventName,
    callback: Any = None,
    options: Optional[dict] = None,
) -> T:
    """Dispatch ``iteratee`` once per event name found in ``name``.

    The memo returned by each call is passed to the next one, so callers can
    rebuild a store or accumulate results across names. An empty or ``None``
    name performs no calls and returns ``memo`` untouched.

    For the mapping form, an outer ``callback`` becomes the shared context of
    every entry when ``options`` carries an unset ``context`` key, which is how
    ``on({"a": f, "b": g}, owner)`` binds both handlers to ``owner``.
    """
    if options is None:
        options = {}

    if isinstance(name, Mapping):
        if callback is not None and "context" in options and options["context"] is None:
            options["context"] = callback
        for key in list(name.keys()):
            memo = resolve_names(iteratee, memo, key, name[key], options)
    elif isinstance(name, str) and EVENT_SPLITTER.search(name):
        for single in EVENT_SPLITTER.split(name):
            if single:
                memo = iteratee(memo, single, callback, options)
    elif name:
        memo = iteratee(memo, name, callback, options)

    return memo
