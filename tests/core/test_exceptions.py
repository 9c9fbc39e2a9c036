#!/usr/bin/env python3
"""Test suite for filter exceptions"""

import unittest
from pyppp.core.exceptions import (
    PPPError, DimensionMismatch, InsufficientGeometry, SingularSystem, NoFixableAmbiguity
)


class TestExceptionHierarchy(unittest.TestCase):
    """Test exception classes"""

    def test_base_class(self):
        for cls in (DimensionMismatch, InsufficientGeometry, SingularSystem, NoFixableAmbiguity):
            self.assertTrue(issubclass(cls, PPPError))

    def test_builtin_bases(self):
        self.assertTrue(issubclass(DimensionMismatch, ValueError))
        self.assertTrue(issubclass(SingularSystem, ArithmeticError))

    def test_insufficient_geometry_fields(self):
        err = InsufficientGeometry("too few", num_satellites=3, required=4)
        self.assertEqual(err.num_satellites, 3)
        self.assertEqual(err.required, 4)
        self.assertEqual(str(err), "too few")


class TestWithContext(unittest.TestCase):
    """Test context tagging of re-raised errors"""

    def test_message_prefix(self):
        err = SingularSystem("not positive definite")
        tagged = err.with_context("PPP_FLOAT.KalmanCore", 7)
        self.assertIsInstance(tagged, SingularSystem)
        self.assertEqual(tagged.component, "PPP_FLOAT.KalmanCore")
        self.assertEqual(tagged.epoch, 7)
        self.assertEqual(str(tagged), "PPP_FLOAT.KalmanCore:epoch 7: not positive definite")

    def test_original_untouched(self):
        err = InsufficientGeometry("too few", num_satellites=2, required=4)
        tagged = err.with_context("EquationAssembler", 0)
        self.assertIsNone(err.component)
        self.assertEqual(str(err), "too few")
        self.assertEqual(tagged.num_satellites, 2)

    def test_raise_from(self):
        err = DimensionMismatch("bad shape")
        with self.assertRaises(DimensionMismatch) as ctx:
            try:
                raise err
            except PPPError as exc:
                raise exc.with_context("KalmanCore", 3) from exc
        self.assertIs(ctx.exception.__cause__, err)
        self.assertEqual(ctx.exception.args, ("KalmanCore:epoch 3: bad shape",))


if __name__ == '__main__':
    unittest.main()
