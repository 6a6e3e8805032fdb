"""
cmdline faults (errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault, grouped by domain.
- Declaration errors: raised while declarations and the registry are built.
  They are programming mistakes of the embedding application and always
  propagate to the caller.
- Parse errors: bad user input. Args.parse() catches them, renders them through
  trigger() and reports failure with a boolean; they never cross that boundary.
- Accessor errors: reading an unknown/unset name or converting a value that is
  not a number/boolean.
- trigger(): central entry point that merges runtime options into a fault and
  lets it surface itself.

Rendering
- With colorful=False (default) a parse error renders as the single plain line
      Parsing command line failed, details: <message>
- With colorful=True the same line is styled; with fancy=True it is wrapped in a
  Panel whose title carries the program name, the fault code and a title, and a
  hint line is added under the message.
- Hosts can restyle through a __styles__ mapping in __main__, rename the program
  through __prog__, and relabel codes through __codes__.
"""
import os.path
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)

PREFIX = "Parsing command line failed, details:"


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - parse errors (11xxx)
      • MALFORMED_TOKEN, UNKNOWN_ARGUMENT, MISSING_VALUE, INVALID_CHOICE,
        MISSING_REQUIRED
    - accessor errors (12xxx)
      • UNKNOWN_NAME, UNSET_VALUE, CONVERSION_FAILURE
    - declaration errors (13xxx)
      • MALFORMED_DECLARATION, CONFLICTING_DEFAULT, DUPLICATE_NAME,
        DUPLICATE_LETTER
    """
    # --- parse errors (11xxx) ---
    MALFORMED_TOKEN             = 11111
    UNKNOWN_ARGUMENT            = 11112
    MISSING_VALUE               = 11117
    INVALID_CHOICE              = 11124
    MISSING_REQUIRED            = 11125

    # --- accessor errors (12xxx) ---
    UNKNOWN_NAME                = 12101
    UNSET_VALUE                 = 12102
    CONVERSION_FAILURE          = 12111

    # --- declaration errors (13xxx) ---
    MALFORMED_DECLARATION       = 13101
    CONFLICTING_DEFAULT         = 13102
    DUPLICATE_NAME              = 13111
    DUPLICATE_LETTER            = 13112

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class Fault:
    """
    Mixin carrying a message and a read-only bag of options (code, title, hint,
    and whatever context the raiser attaches, e.g. token or argument).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    def __str__(self):
        return coalesce(self.message, "")

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class CommandException(Fault, Exception):
    """
    Base type of every parse error.

    Recognized runtime options (merged by trigger())
    - console: rich Console to print to, or None to stay silent.
    - colorful / fancy: rendering switches.
    - prog: program name used in the fancy header.
    """

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # pinky title

            # body
            "error-prefix": "bold #FF4DA6",
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)

        def styler(style):
            return styles[style] if colorful else ""

        line = Text.assemble((PREFIX, styler("error-prefix")), " ", (str(self), styler("error-message")))

        if not self.options.get("fancy", False):
            return line

        prog = getattr(main, "__prog__", coalesce(self.options.get("prog", Unset), os.path.basename(sys.argv[0] if sys.argv else "")))
        header = Text.assemble(
            "[ ",
            (prog, styler("prog-name")),
            " - ",
            (self.code.normalize() if self.code else "", styler("code")),
            " | ",
            (self.options.get("title", "parse error").title(), styler("error-title")),
            " ]"
        )
        renders = [line]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble((" → ", styler("hint-arrow")), (hint, styler("hint"))))
        return Panel(Group(*renders), title=header, title_align="left")

    def __trigger__(self) -> None:
        target = self.options.get("console", console)
        if target is None:
            return
        target.print(self, soft_wrap=not self.options.get("fancy", False))


class ParseError(CommandException): ...
class MalformedTokenError(ParseError): ...
class UnknownArgumentError(ParseError): ...
class MissingValueError(ParseError): ...
class InvalidChoiceError(ParseError): ...
class MissingRequiredError(ParseError): ...


class DeclarationError(Fault, ValueError):
    """
    A declaration (or a set of declarations) is malformed.

    Raised at construction time and never caught by the library: the registry
    cannot be built from a broken declaration set.
    """


class DuplicateNameError(DeclarationError): ...
class DuplicateLetterError(DeclarationError): ...


class UnknownNameError(Fault, LookupError):
    """
    An accessor was asked for a name that no declaration carries.
    """


class UnsetValueError(Fault, LookupError):
    """
    An accessor was asked for a declared value that the last parse did not set
    (and that has no default). Check is_set() first.
    """


class ConversionError(Fault, ValueError):
    """
    A stored string could not be converted by a typed accessor.
    """


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into a copy of the fault via __replace__(**options)
      before __trigger__ is called; the original fault is left untouched.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "ParseError",
    "MalformedTokenError",
    "UnknownArgumentError",
    "MissingValueError",
    "InvalidChoiceError",
    "MissingRequiredError",
    "DeclarationError",
    "DuplicateNameError",
    "DuplicateLetterError",
    "UnknownNameError",
    "UnsetValueError",
    "ConversionError",
    "trigger",
)
