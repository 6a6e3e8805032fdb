"""
cmdline registry and parser: hold declarations, parse a command line, read results.

What this module provides
- Args: built once from an ordered collection of declarations (Flag, Option,
  Cardinal). It validates the set, builds immutable lookup tables, then parses
  any number of command lines against them and exposes the resolved values
  through typed accessors.

Parsing in short
- "--name" refers to a declaration by name, "-x" by letter (a letter lookup is
  tried before a name lookup, so "--c" and "-colour" also resolve).
- A flag is marked present; an option claims the following token as its value,
  verbatim, even if that token starts with a dash.
- Any token that does not resolve is bound to the next unfilled positional
  (cardinal); when none is left, parsing fails.
- After the walk, every required declaration must have a value.
- Values are stored as strings and converted on read (get_as_int, ...).

Failure model
- Declaration errors (bad names, duplicates, conflicting defaults) raise out of
  the constructor: the registry cannot be built.
- Parse errors never raise: the first one is rendered as
      Parsing command line failed, details: <message>
  through the configured console (or handed to a fallback) and parse() returns
  False. The resolved values are then left at their defaults.

Quick start
    from cmdline import Args, Flag, Option, Cardinal

    args = Args([
        Flag("version", "v", "Display version information"),
        Option("colour", "c", "Colour", {"red", "green", "blue"}, "red"),
        Cardinal("file", "File to paint"),
    ])

    if not args.parse():
        args.print_usage()
        raise SystemExit(1)

    print(args.get("colour"), args.get("file"))
"""
import io
import logging
import math
import os.path
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .arguments import Argument, Kind
from .faults import *
from .faults import console as _console
from .utils import *

logger = logging.getLogger(__name__)


class Args:
    """
    Registry of declarations and parser of command lines.

    Parameters
    - arguments: Iterable[Argument]
      Declarations in the order they should be listed; cardinals are filled in
      this order.
    - prog: Unset | str
      Program name used by usage output; defaults to basename(sys.argv[0]).
    - console: Unset | rich.console.Console | None
      Where parse failures are printed. Unset uses a console on standard error,
      None keeps parse() silent.
    - colorful / fancy: bool
      Render faults and usage with colors / inside panels.

    Raises
    - TypeError: an item is not a declaration.
    - DuplicateNameError / DuplicateLetterError: two declarations collide.

    Thread safety
    - Declarations and lookup tables are immutable and can be shared; the
      resolved values are per-instance state, so concurrent parses need
      separate instances.
    """

    def __init__(self, arguments, /, *, prog=Unset, console=Unset, colorful=False, fancy=False):
        if isinstance(arguments, Argument) or not isinstance(arguments, Iterable):
            raise TypeError("Args() argument must be an iterable of declarations")
        if not isinstance(prog, str | Unset):
            raise TypeError("Args() 'prog' must be a string")

        names = {}
        letters = {}
        cardinals = []
        defaults = {}

        for argument in arguments:
            if not isinstance(argument, Argument):
                raise TypeError("Args() argument must be an iterable of declarations, got %r" % type(argument).__name__)
            if argument.name in names:
                raise DuplicateNameError(
                    "argument name %r is declared more than once" % argument.name,
                    code=FaultCode.DUPLICATE_NAME,
                    name=argument.name,
                )
            names[argument.name] = argument

            if argument.letter:
                if argument.letter in letters:
                    raise DuplicateLetterError(
                        "argument letter %r is used by both %r and %r" % (
                            argument.letter, letters[argument.letter], argument.name
                        ),
                        code=FaultCode.DUPLICATE_LETTER,
                        name=argument.name,
                    )
                letters[argument.letter] = argument.name

            if argument.kind is Kind.CARDINAL:
                cardinals.append(argument)

            if argument.default is not None:
                defaults[argument.name] = argument.default

        self._arguments = MappingProxyType(names)
        self._letters = MappingProxyType(letters)
        self._cardinals = tuple(cardinals)
        self._defaults = MappingProxyType(defaults)
        self._values = dict(defaults)

        self._prog = prog
        self._console = console
        self._fallback = Unset
        self.colorful = bool(colorful)
        self.fancy = bool(fancy)

    @property
    def prog(self):
        """
        Program name shown in usage output and fancy fault headers.
        """
        return coalesce(self._prog, os.path.basename(sys.argv[0] if sys.argv else "") or "prog")

    @property
    def arguments(self):
        """
        Read-only mapping of declaration name to declaration, in declared order.
        """
        return self._arguments

    @property
    def cardinals(self):
        """
        Positional declarations in the order they are filled.
        """
        return self._cardinals

    @property
    def values(self):
        """
        Read-only snapshot of the values resolved by the last parse.
        """
        return MappingProxyType(dict(self._values))

    def fallback(self, fallback, /):
        """
        Register a callable that receives parse faults instead of printing them.

        Usable as a decorator:
            @args.fallback
            def on_fault(fault): ...

        Passing None restores printing.
        """
        if fallback is not None and not callable(fallback):
            raise TypeError("fallback() argument must be callable or None")
        self._fallback = Unset if fallback is None else fallback
        return fallback

    def trigger(self, fault, /, **options):
        """
        Surface a parse fault with this registry's rendering options.
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        options = {
            "console": coalesce(self._console, _console),
            "colorful": self.colorful,
            "fancy": self.fancy,
            "prog": self.prog,
        } | options
        if self._fallback:
            self._fallback(fault.__replace__(**options))
        else:
            trigger(fault, **options)

    def _lookup(self, name):
        """
        Resolve a dash-stripped token to a named declaration (flag or option).

        The letter table is consulted first, then the name table; cardinals are
        never matched by name. Returns Unset when nothing matches.
        """
        name = self._letters.get(name, name)
        argument = self._arguments.get(name, Unset)
        if argument is Unset or not argument.named:
            return Unset
        return argument

    def _resolve_token(self, token):
        """
        Classify one raw token.

        returns
        - the declaration a "--name" / "-x" token refers to, or
        - Unset when the token is bare or does not refer to a flag/option; the
          caller then tries to bind it positionally.

        raises
        - MalformedTokenError for the empty token.
        """
        if not token:
            raise MalformedTokenError(
                "argument needs at least one character",
                title="malformed argument",
                code=FaultCode.MALFORMED_TOKEN,
                hint="remove the empty argument or quote a real value",
                token=token,
            )

        if token.startswith("--"):
            return self._lookup(token[2:])
        if token.startswith("-"):
            return self._lookup(token[1:])
        return Unset

    def _parseargs(self, tokens):
        """
        Walk the token list once and return the resolved values.

        The index advances by one for flags and positional values, and by two
        for options, whose value is always the next token. Raises the first
        ParseError met.
        """
        values = dict(self._defaults)
        cursor = 0  # next unfilled cardinal
        index = 0

        while index < len(tokens):
            token = tokens[index]
            argument = self._resolve_token(token)

            if argument is Unset:
                if cursor >= len(self._cardinals):
                    raise UnknownArgumentError(
                        "couldn't find %s in specified list of arguments" % token,
                        title="unknown argument",
                        code=FaultCode.UNKNOWN_ARGUMENT,
                        hint="check the spelling or run with --help to list the arguments",
                        token=token,
                        index=index,
                    )
                argument = self._cardinals[cursor]
                if not argument.is_valid_value(token):
                    raise InvalidChoiceError(
                        "value %s for argument %s isn't one of the options" % (token, argument.name),
                        title="invalid choice",
                        code=FaultCode.INVALID_CHOICE,
                        hint="pick one of: %s" % ", ".join(_ordered(argument.choices)),
                        token=token,
                        index=index,
                        argument=argument,
                    )
                logger.debug("bound %r to positional %r", token, argument.name)
                values[argument.name] = token
                cursor += 1
                index += 1
                continue

            if argument.kind is Kind.FLAG:
                logger.debug("flag %r set by %r", argument.name, token)
                values[argument.name] = ""
                index += 1
                continue

            # valued option: unconditionally claim the next index
            if index + 1 >= len(tokens):
                raise MissingValueError(
                    "argument %s given without a value" % token,
                    title="missing value",
                    code=FaultCode.MISSING_VALUE,
                    hint="pass a value after it (for example: %s <value>)" % token,
                    token=token,
                    index=index,
                    argument=argument,
                )
            value = tokens[index + 1]
            if not argument.is_valid_value(value):
                raise InvalidChoiceError(
                    "value %s for argument %s isn't one of the options" % (value, token),
                    title="invalid choice",
                    code=FaultCode.INVALID_CHOICE,
                    hint="pick one of: %s" % ", ".join(_ordered(argument.choices)),
                    token=token,
                    index=index + 1,
                    argument=argument,
                )
            logger.debug("option %r set to %r by %r", argument.name, value, token)
            values[argument.name] = value
            index += 2

        for argument in self._arguments.values():
            if argument.required and argument.name not in values:
                raise MissingRequiredError(
                    "%s is required but was not set" % argument.name,
                    title="missing required argument",
                    code=FaultCode.MISSING_REQUIRED,
                    hint="add %s to the command line" % _spelling(argument),
                    argument=argument,
                )

        return values

    def parse(self, *parameters):
        """
        Parse a command line against the declarations.

        Forms
        - parse(): read sys.argv, dropping the program name.
        - parse(tokens): tokens is a shell-like string (split with shlex.split)
          or an iterable of strings, used as-is.
        - parse(argc, argv): the conventional pair; argv[0] (the program name)
          is dropped and only the first argc entries are read.

        Returns
        - True on success. On failure the fault is rendered (or handed to the
          fallback) and False is returned.

        Every call starts from the defaults, so a call fully replaces the state
        left by the previous one; a failed call leaves only the defaults.

        Raises
        - TypeError: for arguments that are not one of the forms above. Bad user
          input never raises.
        """
        match len(parameters):
            case 0:
                tokens = sys.argv[1:]
            case 1:
                prompt, = parameters
                if isinstance(prompt, str):
                    tokens = prompt
                elif isinstance(prompt, Iterable):
                    tokens = list(prompt)
                    if not all(isinstance(token, str) for token in tokens):
                        raise TypeError("parse() argument must be a string or an iterable of strings")
                else:
                    raise TypeError("parse() argument must be a string or an iterable of strings")
            case 2:
                argc, argv = parameters
                if not isinstance(argc, int) or isinstance(argc, bool) or argc < 0:
                    raise TypeError("parse() first argument must be a non-negative integer")
                tokens = list(argv)[1:argc]
                if not all(isinstance(token, str) for token in tokens):
                    raise TypeError("parse() second argument must be a sequence of strings")
            case _:
                raise TypeError("parse takes 0 to 2 arguments but %d were given" % len(parameters))

        self._values = dict(self._defaults)
        try:
            if isinstance(tokens, str):
                tokens = _split(tokens)
            values = self._parseargs(tokens)
        except ParseError as fault:
            logger.debug("parse of %r failed: %s", tokens, fault)
            self.trigger(fault)
            return False

        self._values = values
        return True

    def _require(self, name):
        if not isinstance(name, str):
            raise TypeError("argument name must be a string")
        if name not in self._arguments:
            raise UnknownNameError(
                "no argument named %r was declared" % name,
                code=FaultCode.UNKNOWN_NAME,
                name=name,
            )

    def is_set(self, name, /):
        """
        True when the last parse resolved a value for name (defaults included).
        """
        self._require(name)
        return name in self._values

    def __contains__(self, name):
        return isinstance(name, str) and name in self._values

    def get(self, name, default=Unset, /):
        """
        Return the raw string value of name.

        Flags resolve to "" when present. When name has no value, default is
        returned if given, otherwise UnsetValueError is raised.
        """
        self._require(name)
        try:
            return self._values[name]
        except KeyError:
            if default is not Unset:
                return default
            raise UnsetValueError(
                "argument %r is not set; check is_set() first" % name,
                code=FaultCode.UNSET_VALUE,
                name=name,
            ) from None

    def _convert(self, name, converter, label):
        value = self.get(name)
        try:
            return converter(value)
        except (ValueError, OverflowError):
            raise ConversionError(
                "value %r of argument %r is not %s" % (value, name, label),
                code=FaultCode.CONVERSION_FAILURE,
                name=name,
                value=value,
            ) from None

    def get_as_int(self, name, /):
        """
        Return the value of name as an int (base 10, surrounding whitespace allowed).
        """
        return self._convert(name, int, "an integer")

    def get_as_float(self, name, /):
        """
        Return the value of name as a float.

        "inf" and "nan" spellings are accepted; a finite literal too large for a
        float (e.g. "1e999") is a ConversionError.
        """
        return self._convert(name, _number, "a number")

    def get_as_bool(self, name, /):
        """
        Return the value of name as a bool: "true"/"1" or "false"/"0", case-insensitive.
        """
        return self._convert(name, _boolean, "a boolean")

    def _render_usage(self, prog):
        """
        Build the usage screen as a rich renderable.

        Palette keys
        - usage-label, program-name, group-label, argument-description
        - option-name, flag-name, cardinal-name, metavar, choice, required-mark

        Customization
        - Define a mapping named __styles__ in __main__ to override any entry.
        - When colorful is False, styling is suppressed.
        """
        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "group-label": "bold #FFFFFF",
            "argument-description": "#9CA3AF",
            "option-name": "bold #00E6FF",
            "flag-name": "bold #22C55E",
            "cardinal-name": "bold #36C5F0",
            "metavar": "bold #FFD600",
            "choice": "bold #FF4D94",
            "required-mark": "#EF4444",
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self.colorful else ""

        def names(argument):
            style = styler("flag-name" if argument.kind is Kind.FLAG else "option-name")
            spellings = ["-" + argument.letter] if argument.letter else []
            spellings.append("--" + argument.name)
            return Text(", ").join(Text(spelling, style) for spelling in spellings)

        def metavar(argument):
            if argument.choices:
                return Text.assemble(
                    "{",
                    Text(",").join(Text(choice, styler("choice")) for choice in _ordered(argument.choices)),
                    "}",
                )
            return Text.assemble("<", (argument.name, styler("metavar")), ">")

        def synopsis(argument):
            if argument.kind is Kind.CARDINAL:
                part = metavar(argument)
            else:
                part = Text(_spelling(argument), styler("flag-name" if argument.kind is Kind.FLAG else "option-name"))
                if argument.kind is Kind.OPTION:
                    part = Text.assemble(part, " ", metavar(argument))
            return part if argument.required else Text.assemble("[", part, "]")

        usage = Text.assemble(("usage", styler("usage-label")), ": ", (prog, styler("program-name")))
        for argument in self._arguments.values():
            usage.append(" ")
            usage.append(synopsis(argument))

        renders = [usage]

        sections = (
            ("flags", Kind.FLAG),
            ("options", Kind.OPTION),
            ("positionals", Kind.CARDINAL),
        )
        for label, kind in sections:
            members = [argument for argument in self._arguments.values() if argument.kind is kind]
            if not members:
                continue
            table = Table.grid(padding=(0, 2))
            table.add_column(no_wrap=True)
            table.add_column()
            for argument in members:
                left = metavar(argument) if kind is Kind.CARDINAL else names(argument)
                if kind is Kind.OPTION:
                    left = Text.assemble(left, " ", metavar(argument))
                right = Text(style=styler("argument-description")).append(argument.descr)
                if argument.required:
                    right.append(" (required)", styler("required-mark"))
                elif argument.default is not None:
                    right.append(" (default: %s)" % argument.default)
                table.add_row(Text.assemble("  ", left), right)
            renders.append(Text(""))
            renders.append(Text(label + ":", styler("group-label")))
            renders.append(table)

        if self.fancy:
            return Panel(Group(*renders), title=Text(prog, styler("panel-title")), title_align="left")
        return Group(*renders)

    def usage(self, prog=Unset, /, *, width=80):
        """
        Return the usage screen as a string.

        A pure function of the declarations: resolved values play no part.
        """
        if not isinstance(prog, str | Unset):
            raise TypeError("usage() argument must be a string")
        console = Console(
            file=io.StringIO(),
            width=width,
            color_system="truecolor" if self.colorful else None,
            force_terminal=self.colorful,
            highlight=False,
        )
        console.print(self._render_usage(coalesce(prog, self.prog)))
        return console.file.getvalue()

    def print_usage(self, prog=Unset, /):
        """
        Print the usage screen to the fault console (standard output when
        faults are silenced).
        """
        if (console := coalesce(self._console, _console)) is None:
            console = Console()
        console.print(self._render_usage(coalesce(prog, self.prog)))

    def __repr__(self):
        return "Args(%s)" % ", ".join(map(repr, self._arguments.values()))

    def __rich_repr__(self):
        for argument in self._arguments.values():
            yield argument


def _spelling(argument):
    """
    Shortest command-line spelling of a declaration: "-x", "--name" or "<name>".
    """
    if argument.kind is Kind.CARDINAL:
        return "<%s>" % argument.name
    if argument.letter:
        return "-" + argument.letter
    return "--" + argument.name


def _split(prompt):
    try:
        return shlex.split(prompt)
    except ValueError as error:
        raise MalformedTokenError(
            "argument line can't be split: %s" % error,
            title="malformed token",
            code=FaultCode.MALFORMED_TOKEN,
            hint="close every quote and escape stray backslashes",
            token=prompt,
        ) from None


def _ordered(choices):
    return sorted(choices) if isinstance(choices, frozenset) else choices


def _number(value):
    result = float(value)
    if math.isinf(result) and value.strip().lstrip("+-").lower() not in ("inf", "infinity"):
        raise OverflowError(value)
    return result


def _boolean(value):
    match value.strip().lower():
        case "true" | "1":
            return True
        case "false" | "0":
            return False
        case _:
            raise ValueError(value)


__all__ = (
    # Public API surface for consumers of cmdline.args.
    "Args",
)
