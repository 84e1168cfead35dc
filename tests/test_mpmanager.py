import unittest
from unittest.mock import patch
import sys
import os

from textual.widgets import DataTable

# Add the src directory to the path to import mpmanager modules
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from mpmanager.config import DEFAULT_CONFIG
from mpmanager.constants import ListColumn, View, VmStatus
from mpmanager.gateway import MultipassError
from mpmanager.modals.log_modal import LogModal
from mpmanager.mpmanager import MPManagerTUI, VmListResult
from mpmanager.parsing import VMInfo
from mpmanager.refresh import FetchCompleted, RefreshState, ViewChanged

LIST_OUTPUT = """Name                    State             IPv4             Image
web                     Running           10.0.0.2         Ubuntu 24.04 LTS
db                      Stopped           --               Ubuntu 22.04 LTS
cache                   Running           10.0.0.3         Ubuntu 24.04 LTS"""

INFO_OUTPUT = """Name:           web
State:          Running
Snapshots:      2
CPU(s):         2

Name:           db
State:          Stopped
Snapshots:      10
CPU(s):         --

Name:           cache
State:          Running
Snapshots:      1
CPU(s):         1"""


class FakeGateway:
    def __init__(self, fail_list=False):
        self.fail_list = fail_list
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)
        if args == ("list",):
            if self.fail_list:
                raise MultipassError(args, 1, "cannot connect to the multipass socket")
            return LIST_OUTPUT
        if args[0] == "info":
            return INFO_OUTPUT
        return ""


def make_config():
    config = DEFAULT_CONFIG.copy()
    # Keep the timer out of the way during tests
    config["REFRESH_INTERVAL"] = 3600
    return config


def row_names(app):
    table = app.query_one("#vm-table", DataTable)
    return [row.key.value for row in table.ordered_rows]


class TestMPManagerTUI(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        patcher = patch("mpmanager.mpmanager.check_multipass", return_value=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    async def wait_for_refresh(self, app, pilot):
        await app.workers.wait_for_complete()
        await pilot.pause()

    async def test_initial_refresh_fills_table(self):
        gateway = FakeGateway()
        app = MPManagerTUI(config=make_config(), gateway=gateway)
        async with app.run_test() as pilot:
            await self.wait_for_refresh(app, pilot)
            self.assertEqual(row_names(app), ["cache", "db", "web"])
            self.assertEqual(app.refresh_coordinator.state, RefreshState.IDLE)
            self.assertEqual(gateway.calls[0], ("list",))

    async def test_sort_by_snapshot_count(self):
        app = MPManagerTUI(config=make_config(), gateway=FakeGateway())
        async with app.run_test() as pilot:
            await self.wait_for_refresh(app, pilot)
            app.sort_column = ListColumn.SNAPSHOTS
            await pilot.pause()
            self.assertEqual(row_names(app), ["cache", "web", "db"])
            app.sort_ascending = False
            await pilot.pause()
            self.assertEqual(row_names(app), ["db", "web", "cache"])

    async def test_status_filter_and_selection(self):
        app = MPManagerTUI(config=make_config(), gateway=FakeGateway())
        async with app.run_test() as pilot:
            await self.wait_for_refresh(app, pilot)
            app.status_filter = VmStatus.RUNNING
            app.render_vm_table()
            self.assertEqual(row_names(app), ["cache", "web"])

            app.action_toggle_select_all()
            self.assertEqual(app.get_target_vm_names(), ["cache", "web"])
            app.action_toggle_select_all()
            self.assertEqual(app.selected_vm_names, set())

    async def test_fetch_error_keeps_previous_rows(self):
        gateway = FakeGateway()
        app = MPManagerTUI(config=make_config(), gateway=gateway)
        async with app.run_test() as pilot:
            await self.wait_for_refresh(app, pilot)
            gateway.fail_list = True
            with patch.object(app, "render_vm_table", wraps=app.render_vm_table) as render:
                app.request_refresh(background=False)
                await self.wait_for_refresh(app, pilot)
                # The status line is redrawn so the loading message goes away
                render.assert_called()
            self.assertEqual(len(row_names(app)), 3)
            self.assertEqual(app.refresh_coordinator.state, RefreshState.IDLE)

    async def test_closing_stacked_modal_reveals_the_one_below(self):
        app = MPManagerTUI(config=make_config(), gateway=FakeGateway())
        async with app.run_test() as pilot:
            await self.wait_for_refresh(app, pilot)
            app.push_view(LogModal("details"), View.INFO)
            await pilot.pause()
            app.push_view(LogModal("output"), View.LOG)
            await pilot.pause()
            self.assertEqual(app.refresh_coordinator.current_view, View.LOG)

            app.screen.dismiss(None)
            await pilot.pause()
            self.assertEqual(app.refresh_coordinator.current_view, View.INFO)

            app.screen.dismiss(None)
            await pilot.pause()
            self.assertEqual(app.refresh_coordinator.current_view, View.LIST)
            await self.wait_for_refresh(app, pilot)

    async def test_result_off_list_view_is_not_applied(self):
        app = MPManagerTUI(config=make_config(), gateway=FakeGateway())
        async with app.run_test() as pilot:
            await self.wait_for_refresh(app, pilot)
            # Simulate a fetch in flight while a dialog is open
            app.refresh_coordinator.state = RefreshState.FETCHING
            app.dispatch_refresh(ViewChanged(View.INFO))
            stale = VmListResult(vms=[VMInfo(name="ghost")])
            effects = app.dispatch_refresh(FetchCompleted(result=stale))
            self.assertTrue(effects.discarded)
            self.assertNotIn("ghost", row_names(app))


if __name__ == "__main__":
    unittest.main()
