import unittest
import sys
import os

# Add the src directory to the path to import mpmanager modules
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from mpmanager.parsing import (
    MountInfo,
    SnapshotInfo,
    VMInfo,
    merge_vm_info,
    parse_networks,
    parse_snapshot_line,
    parse_snapshots,
    parse_vm_info,
    parse_vm_list,
)

SNAPSHOT_OUTPUT = """Instance    Snapshot    Parent    Comment
vm1         snap1       --        before package update
vm1         snap2       snap1     --
vm1         snap3       snap2     final snapshot"""

LIST_OUTPUT = """Name                    State             IPv4             Image
primary                 Running           10.93.1.5        Ubuntu 24.04 LTS
                                          172.17.0.1
builder                 Stopped           --               Ubuntu 22.04 LTS
old                     Deleted           --               Not Available"""

INFO_OUTPUT = """Name:           primary
State:          Running
Snapshots:      2
IPv4:           10.93.1.5
                172.17.0.1
Release:        Ubuntu 24.04.1 LTS
Image hash:     0e25ca6ee9f0 (Ubuntu 24.04 LTS)
CPU(s):         2
Load:           0.00 0.01 0.00
Disk usage:     2.1GiB out of 4.8GiB
Memory usage:   166.5MiB out of 961.9MiB
Mounts:         /home/user/src => /home/ubuntu/src
                    UID map: 1000:default
                    GID map: 1000:default
                /home/user/data => /data
                    UID map: 1000:default
                    GID map: 1000:default

Name:           builder
State:          Stopped
Snapshots:      10
IPv4:           --
Release:        --
Image hash:     a3aea891c930 (Ubuntu 22.04 LTS)
CPU(s):         --
Load:           --
Disk usage:     --
Memory usage:   --
Mounts:         --
"""


class TestSnapshotParsing(unittest.TestCase):
    def test_multi_word_comments_are_preserved(self):
        """Comments keep every word, '--' becomes empty."""
        snapshots = parse_snapshots(SNAPSHOT_OUTPUT)
        self.assertEqual(len(snapshots), 3)
        self.assertEqual(snapshots[0].comment, "before package update")
        self.assertEqual(snapshots[1].comment, "")
        self.assertEqual(snapshots[2].comment, "final snapshot")

    def test_parent_placeholder_is_normalized(self):
        snapshots = parse_snapshots(SNAPSHOT_OUTPUT)
        self.assertEqual(snapshots[0].parent, "")
        self.assertEqual(snapshots[1].parent, "snap1")
        self.assertEqual(snapshots[2].snapshot_id, "vm1.snap3")

    def test_line_requires_minimum_fields(self):
        snapshot, ok = parse_snapshot_line("invalid")
        self.assertFalse(ok)
        self.assertIsNone(snapshot)

        snapshot, ok = parse_snapshot_line("vm1 snap1 --")
        self.assertFalse(ok)

    def test_single_line_keeps_inner_spacing(self):
        snapshot, ok = parse_snapshot_line("vm1   snap1   --   two  spaces -- inside")
        self.assertTrue(ok)
        self.assertEqual(snapshot, SnapshotInfo("vm1", "snap1", "", "two  spaces -- inside"))

    def test_parsing_is_repeatable(self):
        self.assertEqual(parse_snapshots(SNAPSHOT_OUTPUT), parse_snapshots(SNAPSHOT_OUTPUT))

    def test_malformed_lines_are_skipped(self):
        output = SNAPSHOT_OUTPUT + "\nbroken line\n\nvm2 s1 -- ok"
        with self.assertLogs("mpmanager.parsing", level="WARNING"):
            snapshots = parse_snapshots(output)
        self.assertEqual([s.instance for s in snapshots], ["vm1", "vm1", "vm1", "vm2"])

    def test_no_snapshots_message(self):
        self.assertEqual(parse_snapshots("No snapshots found."), [])


class TestVmListParsing(unittest.TestCase):
    def test_parse_vm_list(self):
        vms = parse_vm_list(LIST_OUTPUT)
        self.assertEqual([vm.name for vm in vms], ["primary", "builder", "old"])
        self.assertEqual(vms[0].state, "Running")
        self.assertEqual(vms[0].ipv4, "10.93.1.5, 172.17.0.1")
        self.assertEqual(vms[0].release, "Ubuntu 24.04 LTS")
        self.assertEqual(vms[1].ipv4, "")
        self.assertEqual(vms[2].release, "Not Available")

    def test_empty_list(self):
        self.assertEqual(parse_vm_list(""), [])
        self.assertEqual(parse_vm_list("No instances found."), [])


class TestVmInfoParsing(unittest.TestCase):
    def test_parse_vm_info(self):
        vms = parse_vm_info(INFO_OUTPUT)
        self.assertEqual(len(vms), 2)
        primary, builder = vms
        self.assertEqual(primary.name, "primary")
        self.assertEqual(primary.snapshots, "2")
        self.assertEqual(primary.cpus, "2")
        self.assertEqual(primary.ipv4, "10.93.1.5, 172.17.0.1")
        self.assertEqual(primary.disk, "2.1GiB out of 4.8GiB")
        self.assertEqual(primary.memory, "166.5MiB out of 961.9MiB")
        self.assertEqual(
            primary.mounts,
            (MountInfo("/home/user/src", "/home/ubuntu/src"), MountInfo("/home/user/data", "/data")),
        )
        self.assertEqual(primary.extra["Image hash"], "0e25ca6ee9f0 (Ubuntu 24.04 LTS)")
        self.assertEqual(builder.cpus, "")
        self.assertEqual(builder.mounts, ())
        self.assertEqual(builder.snapshots, "10")

    def test_merge_keeps_listing_order(self):
        listed = parse_vm_list(LIST_OUTPUT)
        merged = merge_vm_info(listed, parse_vm_info(INFO_OUTPUT))
        self.assertEqual([vm.name for vm in merged], ["primary", "builder", "old"])
        self.assertEqual(merged[0].release, "Ubuntu 24.04.1 LTS")
        # No info for "old": the listed record is kept
        self.assertIs(merged[2], listed[2])
        # Release missing from info falls back to the listing
        self.assertEqual(merged[1].release, "Ubuntu 22.04 LTS")

    def test_column_value(self):
        vm = VMInfo(name="a", state="Running", snapshots="3", cpus="1")
        self.assertEqual(vm.column_value(2), "3")
        self.assertEqual(vm.column_value(4), "1")
        self.assertEqual(vm.column_value(99), "a")
        self.assertEqual(len(vm.as_row()), 8)


class TestNetworksParsing(unittest.TestCase):
    def test_parse_networks(self):
        output = '{"list": [{"name": "eth0", "type": "ethernet", "description": "Ethernet adapter"}]}'
        networks = parse_networks(output)
        self.assertEqual(len(networks), 1)
        self.assertEqual(networks[0].name, "eth0")
        self.assertEqual(networks[0].type, "ethernet")

    def test_parse_networks_invalid(self):
        with self.assertRaises(ValueError):
            parse_networks("not json")
        with self.assertRaises(ValueError):
            parse_networks("[]")


if __name__ == "__main__":
    unittest.main()
