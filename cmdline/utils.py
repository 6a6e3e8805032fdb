"""
cmdline utilities (internal helpers, carefully exposed)

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided", kept apart from None so that
    declarations can tell "no default" from an explicit value.
- coalesce(value, default=None)
  • Replace Unset with a concrete default; every other value (None, "", 0) is kept.
- rename(callable, name) / @rename("name")
  • Give generated callables a stable __name__/__qualname__.
- mirror("attr")
  • Read-only property factory exposing the private field self._attr.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce("", "fallback")
    ''
"""
import builtins
import functools
from collections.abc import Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type for a value that was not provided.

    Characteristics
    - Boolean-false, but distinct from None and "".
    - repr(Unset) -> "Unset".
    - Singleton per process and sealed against subclassing.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in annotations (e.g., str | UnsetType).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is the Unset sentinel, in which case return default.

    Falsey values such as None, "" or 0 are preserved; only Unset is replaced.
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Shallow read-only view of a container: frozenset for sets, a mapping proxy
    for mappings, everything else unchanged (strings and tuples already are).
    """
    if isinstance(object, Set) and not isinstance(object, frozenset):
        return frozenset(object)
    elif isinstance(object, Mapping) and not isinstance(object, MappingProxyType):
        return MappingProxyType(dict(object))
    return object


def mirror(name, /):
    """
    Define a read-only property that exposes the backing attribute "_{name}".

    Containers are handed out as frozen views so the public API cannot be used
    to mutate a declaration after construction.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


Unset = UnsetType()
"""
Sentinel for "not provided".

Use it as a parameter default when "" or None is a meaningful user value, then
materialize a concrete value with coalesce(value, default).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
