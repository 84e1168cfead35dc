import unittest
import sys
import os

# Add the src directory to the path to import mpmanager modules
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from mpmanager.constants import ListColumn
from mpmanager.parsing import VMInfo
from mpmanager.sorting import column_is_numeric, sort_vms


def make_vms(*pairs):
    return [VMInfo(name=name, snapshots=snapshots) for name, snapshots in pairs]


class TestSortVms(unittest.TestCase):
    def setUp(self):
        self.vms = make_vms(("vm1", "2"), ("vm2", "10"), ("vm3", "1"))

    def names(self, vms):
        return [vm.name for vm in vms]

    def test_numeric_ascending(self):
        """Counts compare as integers, not strings."""
        result = sort_vms(self.vms, ListColumn.SNAPSHOTS, ascending=True)
        self.assertEqual(self.names(result), ["vm3", "vm1", "vm2"])

    def test_numeric_descending(self):
        result = sort_vms(self.vms, ListColumn.SNAPSHOTS, ascending=False)
        self.assertEqual(self.names(result), ["vm2", "vm1", "vm3"])

    def test_ties_break_by_name_in_both_directions(self):
        vms = make_vms(("b", "1"), ("a", "1"), ("c", "0"))
        self.assertEqual(self.names(sort_vms(vms, ListColumn.SNAPSHOTS, True)), ["c", "a", "b"])
        self.assertEqual(self.names(sort_vms(vms, ListColumn.SNAPSHOTS, False)), ["a", "b", "c"])

    def test_input_is_not_modified(self):
        original = list(self.vms)
        sort_vms(self.vms, ListColumn.SNAPSHOTS, ascending=False)
        self.assertEqual(self.vms, original)

    def test_result_is_permutation(self):
        result = sort_vms(self.vms, ListColumn.NAME)
        self.assertEqual(sorted(self.names(result)), sorted(self.names(self.vms)))

    def test_text_column(self):
        vms = [
            VMInfo(name="a", state="Stopped"),
            VMInfo(name="b", state="Running"),
            VMInfo(name="c", state="Deleted"),
        ]
        result = sort_vms(vms, ListColumn.STATE)
        self.assertEqual([vm.state for vm in result], ["Deleted", "Running", "Stopped"])

    def test_text_comparison_is_case_sensitive(self):
        vms = [VMInfo(name="beta"), VMInfo(name="Alpha"), VMInfo(name="alpha")]
        self.assertEqual(self.names(sort_vms(vms, ListColumn.NAME)), ["Alpha", "alpha", "beta"])

    def test_names_ending_in_digits_sort_as_text(self):
        vms = [VMInfo(name="web1"), VMInfo(name="db2"), VMInfo(name="app3")]
        self.assertFalse(column_is_numeric(vms, ListColumn.NAME))
        self.assertEqual(self.names(sort_vms(vms, ListColumn.NAME)), ["app3", "db2", "web1"])

        vms = [VMInfo(name="vm10"), VMInfo(name="vm2"), VMInfo(name="vm-10"), VMInfo(name="vm-2")]
        self.assertEqual(self.names(sort_vms(vms, ListColumn.NAME)), ["vm-10", "vm-2", "vm10", "vm2"])

    def test_missing_numeric_values_rank_lowest(self):
        vms = make_vms(("a", "3"), ("b", ""), ("c", "1"))
        self.assertEqual(self.names(sort_vms(vms, ListColumn.SNAPSHOTS)), ["b", "c", "a"])


class TestColumnIsNumeric(unittest.TestCase):
    def test_numeric_detection(self):
        self.assertTrue(column_is_numeric(make_vms(("a", "1"), ("b", "12")), ListColumn.SNAPSHOTS))
        self.assertFalse(column_is_numeric(make_vms(("a", "1"), ("b", "x")), ListColumn.SNAPSHOTS))
        self.assertFalse(column_is_numeric(make_vms(("a", ""), ("b", "")), ListColumn.SNAPSHOTS))

    def test_decorated_integers(self):
        vms = [VMInfo(name="a", cpus="2"), VMInfo(name="b", cpus=" 10 ")]
        self.assertTrue(column_is_numeric(vms, ListColumn.CPUS))
        vms = [VMInfo(name="a", memory="1.5GiB")]
        self.assertFalse(column_is_numeric(vms, ListColumn.MEMORY))
        vms = [VMInfo(name="a", disk="10G"), VMInfo(name="b", disk="5G")]
        self.assertEqual([vm.name for vm in sort_vms(vms, ListColumn.DISK)], ["b", "a"])


if __name__ == "__main__":
    unittest.main()
