"""
Fault tests (codes, hierarchy, rendering, trigger).

Scope
- Validate the error hierarchy separating declaration, parse and accessor faults.
- Validate __replace__ copies and trigger() dispatch.
- Validate plain, colorful and fancy rendering of parse faults.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase
from unittest.mock import patch

from rich.console import Console

from cmdline import faults
from cmdline.faults import (
    FaultCode,
    CommandException,
    ParseError,
    UnknownArgumentError,
    MissingRequiredError,
    DeclarationError,
    DuplicateNameError,
    UnknownNameError,
    UnsetValueError,
    ConversionError,
    trigger,
)


def _capture():
    return Console(file=io.StringIO(), width=200, color_system=None)


class TestHierarchy(TestCase):
    """The three fault families never overlap."""

    def testParseErrorsAreCommandExceptions(self):
        self.assertTrue(issubclass(UnknownArgumentError, ParseError))
        self.assertTrue(issubclass(ParseError, CommandException))
        self.assertFalse(issubclass(ParseError, ValueError))

    def testDeclarationErrorsAreNotParseErrors(self):
        self.assertTrue(issubclass(DuplicateNameError, DeclarationError))
        self.assertTrue(issubclass(DeclarationError, ValueError))
        self.assertFalse(issubclass(DeclarationError, CommandException))

    def testAccessorErrors(self):
        self.assertTrue(issubclass(UnknownNameError, LookupError))
        self.assertTrue(issubclass(UnsetValueError, LookupError))
        self.assertTrue(issubclass(ConversionError, ValueError))
        self.assertFalse(issubclass(ConversionError, ParseError))

    def testMessageAndOptions(self):
        fault = MissingRequiredError("p1 is required but was not set", code=FaultCode.MISSING_REQUIRED)
        self.assertEqual(str(fault), "p1 is required but was not set")
        self.assertEqual(fault.args, ("p1 is required but was not set",))
        self.assertIs(fault.code, FaultCode.MISSING_REQUIRED)
        with self.assertRaises(TypeError):
            fault.options["code"] = None


class TestReplace(TestCase):
    """__replace__ returns a merged copy."""

    def testReplaceMergesOptions(self):
        fault = UnknownArgumentError("couldn't find -x", code=FaultCode.UNKNOWN_ARGUMENT, token="-x")
        copy = fault.__replace__(colorful=True)
        self.assertIsNot(copy, fault)
        self.assertIsInstance(copy, UnknownArgumentError)
        self.assertEqual(copy.options["token"], "-x")
        self.assertTrue(copy.options["colorful"])
        self.assertNotIn("colorful", fault.options)

    def testReplaceRejectsPositionals(self):
        with self.assertRaises(AssertionError):
            UnknownArgumentError("x").__replace__("y")


class TestRendering(TestCase):
    """Parse faults render as one diagnostic line."""

    def testPlainLine(self):
        console = _capture()
        trigger(UnknownArgumentError("couldn't find -x in specified list of arguments"), console=console)
        self.assertEqual(
            console.file.getvalue(),
            "Parsing command line failed, details: couldn't find -x in specified list of arguments\n"
        )

    def testLongMessageIsNotWrapped(self):
        console = Console(file=io.StringIO(), width=20, color_system=None)
        trigger(UnknownArgumentError("couldn't find --something-long in specified list of arguments"), console=console)
        self.assertEqual(console.file.getvalue().count("\n"), 1)

    def testSilentConsole(self):
        trigger(UnknownArgumentError("quiet"), console=None)

    def testDefaultConsole(self):
        console = _capture()
        with patch.object(faults, "console", console):
            trigger(UnknownArgumentError("couldn't find -x in specified list of arguments"))
        self.assertIn("Parsing command line failed, details:", console.file.getvalue())

    def testColorfulLineKeepsText(self):
        console = Console(file=io.StringIO(), width=200, color_system="truecolor", force_terminal=True)
        trigger(UnknownArgumentError("couldn't find -x"), console=console, colorful=True)
        output = console.file.getvalue()
        self.assertIn("\x1b[", output)
        self.assertIn("couldn't find -x", output)

    def testFancyPanel(self):
        console = _capture()
        trigger(
            UnknownArgumentError("couldn't find -x", code=FaultCode.UNKNOWN_ARGUMENT, title="unknown argument", hint="check the spelling"),
            console=console,
            fancy=True,
            prog="tool",
        )
        output = console.file.getvalue()
        self.assertIn("tool", output)
        self.assertIn("11112", output)
        self.assertIn("Unknown Argument", output)
        self.assertIn("check the spelling", output)

    def testTriggerRequiresProtocol(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("not a fault"))


class TestFaultCode(TestCase):
    """Codes are stable and host-normalizable."""

    def testDomains(self):
        self.assertEqual(FaultCode.MISSING_REQUIRED.value // 1000, 11)
        self.assertEqual(FaultCode.UNSET_VALUE.value // 1000, 12)
        self.assertEqual(FaultCode.DUPLICATE_NAME.value // 1000, 13)

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.INVALID_CHOICE.normalize(), "11124")

    def testNormalizeUsesHostMapping(self):
        main = __import__("__main__")
        with patch.object(main, "__codes__", {FaultCode.INVALID_CHOICE: "E-CHOICE"}, create=True):
            self.assertEqual(FaultCode.INVALID_CHOICE.normalize(), "E-CHOICE")


if __name__ == "__main__":
    unittest.main()
