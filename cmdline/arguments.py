r"""
cmdline argument declarations.

Overview
- Declarations
  • Flag: named, presence-only switch (e.g., -v/--version). Carries no value.
  • Option: named, single-valued option (e.g., -c/--colour red).
  • Cardinal: positional value, bound by order of appearance rather than by a
    name token. Cardinals are required unless they carry a default.
  • arg(...): factory mirroring the classic two-constructor style: without
    choices it builds a Flag, with choices (possibly empty) an Option.

- Every declaration has
  • name: canonical key, at least two characters ("version", "number-a").
  • letter: short form, empty or exactly one character ("v").
  • descr: free text, shown in usage output only.
  • kind: Kind.FLAG, Kind.OPTION or Kind.CARDINAL.
  • choices: allow-list of string values; empty means any value is accepted.
  • default: string or None; a default makes the declaration optional.
  • required: mutually exclusive with a default.

Validation (on construction, fail-fast)
- DeclarationError: name shorter than two characters, letter longer than one,
  a default outside a non-empty allow-list, a required declaration with a
  default, duplicated choices given as a non-set iterable.
- TypeError: metadata of the wrong type (non-string name/letter/descr/choice/default).

Declarations are immutable after construction: metadata lives in private
fields and is published through read-only properties (see utils.mirror).

Quick example:
    >>> from cmdline.arguments import Flag, Option, Cardinal
    >>> Flag("version", "v", "Display version information")
    >>> Option("colour", "c", "Colour", {"red", "green", "blue"}, "red")
    >>> Cardinal("file", "File to read")
"""
import re
from collections.abc import Iterable, Set
from enum import Enum

from rich.text import Text

from .faults import DeclarationError, FaultCode
from .utils import *


class Kind(Enum):
    """
    How a declaration is matched and whether it takes a value.
    """
    FLAG = "flag"
    OPTION = "option"
    CARDINAL = "cardinal"


class ArgumentType(type):
    """
    Metaclass giving declarations read-only properties and stable representations.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      backed by the private field "_<name>".
    - Provide __repr__/__rich_repr__ for diagnostics and rich.pretty.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties are shown; otherwise
      __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation, e.g. option(name='colour', letter='c', ...).
            """
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join("%s=%r" % pair for pair in self.__rich_repr__())
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the metadata shared by every declaration.

    - name: a string of at least two characters.
    - letter: a string of at most one character (empty means "no short form").
    - descr: a string or a rich Text.

    Mutates nothing; raises TypeError for wrong types and DeclarationError for
    wrong shapes.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif len(name) < 2:
        raise DeclarationError(
            f"{cls.__typename__} name {name!r} needs at least two characters",
            code=FaultCode.MALFORMED_DECLARATION,
            name=name,
        )

    if not isinstance(letter := metadata["letter"], str):
        raise TypeError(f"{cls.__typename__} 'letter' must be a string")
    elif len(letter) > 1:
        raise DeclarationError(
            f"{cls.__typename__} {name!r} letter {letter!r} can be at most one character",
            code=FaultCode.MALFORMED_DECLARATION,
            name=name,
        )

    if not isinstance(metadata["descr"], str | Text):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate and normalize metadata for value-bearing declarations
    (Option and Cardinal).

    - choices: an iterable of strings (a bare string is rejected). Sets are
      frozen; other iterables must not contain duplicates and are normalized to
      a tuple so usage output keeps the declared order.
    - default: Unset or a string, and a member of choices when choices is
      non-empty.
    - required: cannot be combined with a default.

    Side effects
    - Mutates the provided metadata dict in place ('choices').
    """
    name = metadata["name"]

    if isinstance(choices := metadata["choices"], str) or not isinstance(choices, Iterable):
        raise TypeError(f"{cls.__typename__} 'choices' must be an iterable of strings")
    if isinstance(choices, Set):
        choices = frozenset(choices)
    else:
        sanitized = []
        for choice in choices:
            if choice in sanitized:
                raise DeclarationError(
                    f"{cls.__typename__} {name!r} choices cannot contain duplicates",
                    code=FaultCode.MALFORMED_DECLARATION,
                    name=name,
                )
            sanitized.append(choice)
        choices = tuple(sanitized)
    if not all(isinstance(choice, str) for choice in choices):
        raise TypeError(f"{cls.__typename__} 'choices' must be an iterable of strings")
    metadata["choices"] = choices

    if not isinstance(default := metadata["default"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'default' must be a string")
    if default is not Unset:
        if metadata["required"]:
            raise DeclarationError(
                f"{cls.__typename__} {name!r} cannot be required and have a default",
                code=FaultCode.CONFLICTING_DEFAULT,
                name=name,
            )
        if choices and default not in choices:
            raise DeclarationError(
                f"{cls.__typename__} {name!r} default {default!r} isn't one of the options",
                code=FaultCode.CONFLICTING_DEFAULT,
                name=name,
            )


class Argument(metaclass=ArgumentType):
    """
    Common behaviour of every declaration. Not instantiated directly; use Flag,
    Option, Cardinal or arg().
    """

    __introspectable__ = (
        "name",
        "letter",
        "descr",
        "kind",
        "choices",
        "default",
        "required",
    )

    def _assign(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        return self

    def is_valid_value(self, value, /):
        """
        True when value is acceptable for this declaration: always when there
        is no allow-list, otherwise only for members of it.
        """
        if not self.choices:
            return True
        return value in self.choices

    @property
    def named(self):
        """
        True for declarations matched by a name or letter token (flags and options).
        """
        return self.kind is not Kind.CARDINAL

    @property
    def valued(self):
        """
        True for declarations that bind a value (options and cardinals).
        """
        return self.kind is not Kind.FLAG


class Flag(Argument):
    """
    Named, presence-only declaration.

    Its resolved value is the empty string, meaning "present". A required flag
    must appear on the command line; presence is then its only signal.
    """

    __displayable__ = (
        "name",
        "letter",
        "descr",
        "required",
    )

    def __init__(self, name, letter="", descr="", /, *, required=False):
        metadata = {
            "name": name,
            "letter": letter,
            "descr": descr,
            "kind": Kind.FLAG,
            "choices": (),
            "default": None,
            "required": bool(required),
        }
        _sanitize_metadata(type(self), metadata)
        self._assign(metadata)


class Option(Argument):
    """
    Named, single-valued declaration.

    The token following the option's name or letter is taken as its value,
    verbatim, and checked against the allow-list.

    Parameters
    - name, letter, descr: see module docs.
    - choices: allowed values; empty accepts anything.
    - default: string used when the option is not given; Unset means none.
    - required: the option must be given (incompatible with a default).
    """

    __displayable__ = (
        "name",
        "letter",
        "descr",
        "choices",
        "default",
        "required",
    )

    def __init__(self, name, letter="", descr="", choices=(), default=Unset, /, *, required=False):
        metadata = {
            "name": name,
            "letter": letter,
            "descr": descr,
            "kind": Kind.OPTION,
            "choices": choices,
            "default": default,
            "required": bool(required),
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_parametric_metadata(type(self), metadata)
        self._assign(metadata)


class Cardinal(Argument):
    """
    Positional declaration, bound by order of appearance.

    Cardinals never have a letter. They are required unless a default is given
    or required=False is passed explicitly.
    """

    __displayable__ = (
        "name",
        "descr",
        "choices",
        "default",
        "required",
    )

    def __init__(self, name, descr="", choices=(), default=Unset, /, *, required=Unset):
        metadata = {
            "name": name,
            "letter": "",
            "descr": descr,
            "kind": Kind.CARDINAL,
            "choices": choices,
            "default": default,
            "required": bool(coalesce(required, default is Unset)),
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_parametric_metadata(type(self), metadata)
        self._assign(metadata)


def arg(name, letter, descr, choices=Unset, default=Unset, /, *, required=False):
    """
    Build a Flag or an Option in the classic style.

    - arg("version", "v", "Display version information") -> Flag
    - arg("colour", "c", "Colour", {"red", "green"}) -> Option
    - arg("number", "n", "Number of things", ()) -> Option accepting any value

    A default without choices builds an Option accepting any value.
    """
    if choices is Unset and default is Unset:
        return Flag(name, letter, descr, required=required)
    return Option(name, letter, descr, coalesce(choices, ()), default, required=required)


__all__ = (
    # Enumerations
    "Kind",

    # Classes (declarations)
    "Argument",
    "Flag",
    "Option",
    "Cardinal",

    # Factories
    "arg",
)

# Keep the metaclass out of star-imports and autocompletion.
del ArgumentType
