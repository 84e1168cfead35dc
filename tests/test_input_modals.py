import unittest
import sys
import os

# Add the src directory to the path to import mpmanager modules
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from mpmanager.modals.base_modals import BaseModal
from mpmanager.modals.input_modals import _sanitize_input
from mpmanager.modals.launch_modals import _optional_int


class TestInputHelpers(unittest.TestCase):
    def test_sanitize_input(self):
        self.assertEqual(_sanitize_input("snap-1.0"), ("snap-1.0", False))
        self.assertEqual(_sanitize_input("  before upgrade "), ("beforeupgrade", True))
        self.assertEqual(_sanitize_input(""), ("", True))
        with self.assertRaises(ValueError):
            _sanitize_input("a" * 65)

    def test_optional_int(self):
        self.assertIsNone(_optional_int("  ", "CPUs"))
        self.assertEqual(_optional_int(" 4 ", "CPUs"), 4)
        with self.assertRaises(ValueError) as cm:
            _optional_int("lots", "Memory")
        self.assertIn("Memory", str(cm.exception))

    def test_validate_name(self):
        self.assertIsNone(BaseModal.validate_name("web-1"))
        self.assertIsNotNone(BaseModal.validate_name(""))
        self.assertIsNotNone(BaseModal.validate_name("1web"))


if __name__ == "__main__":
    unittest.main()
