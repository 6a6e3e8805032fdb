"""
Tests for the Unset sentinel and helpers.

Scope
- Singleton identity, falsy semantics and representation of Unset.
- Copy/deepcopy/pickle preserve identity.
- Finality (UnsetType cannot be subclassed).
- coalesce(), rename() and mirror() behavior.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from cmdline.utils import *


class UnsetTest(TestCase):
    """Test suite for the `UnsetType` singleton."""

    def testSingleton(self) -> None:
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsy(self) -> None:
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertNotEqual(Unset, "")

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testCopyPreservesIdentity(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFinal(self) -> None:
        with self.assertRaises(TypeError):
            type("Sub", (UnsetType,), {})

    def testUnion(self) -> None:
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertFalse(isinstance(3, str | Unset))


class HelpersTest(TestCase):
    """Behavioral tests for coalesce, rename and mirror."""

    def testCoalesce(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertEqual(coalesce("", "fallback"), "")
        self.assertIsNone(coalesce(None, "fallback"))

    def testRenameFunctionForm(self) -> None:
        def work():
            pass

        self.assertIs(rename(work, "do_work"), work)
        self.assertEqual(work.__name__, "do_work")
        self.assertEqual(work.__qualname__, "do_work")

    def testRenameDecoratorForm(self) -> None:
        @rename("do_work")
        def work():
            pass

        self.assertEqual(work.__name__, "do_work")

    def testRenameArity(self) -> None:
        with self.assertRaises(TypeError):
            rename()
        with self.assertRaises(TypeError):
            rename(len, "x", "y")

    def testMirrorFreezesContainers(self) -> None:
        class Holder:
            items = mirror("items")
            table = mirror("table")
            label = mirror("label")

            def __init__(self):
                self._items = {"a", "b"}
                self._table = {"k": "v"}
                self._label = "text"

        holder = Holder()
        self.assertEqual(holder.items, frozenset({"a", "b"}))
        self.assertIsInstance(holder.items, frozenset)
        with self.assertRaises(TypeError):
            holder.table["k"] = "w"
        self.assertEqual(holder.label, "text")
        with self.assertRaises(AttributeError):
            holder.label = "other"


if __name__ == "__main__":
    unittest.main()
