"""
Main interface
"""
import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable

import yaml
from textual import on
from textual.app import App, ComposeResult
from textual.reactive import reactive
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Static
from textual.widgets.data_table import CellDoesNotExist
from textual.worker import Worker, WorkerState

from .cloud_init import cleanup_temp_dirs, get_all_cloud_init_template_options
from .config import get_log_path, load_config
from .constants import AppInfo, ErrorMessages, ListColumn, StaticText, View, VmAction, VmState, VmStatus
from .gateway import CommandRunner, MultipassGateway
from .modals.base_modals import ConfirmationDialog
from .modals.input_modals import InputModal, PathPairModal
from .modals.launch_modals import LaunchVMModal
from .modals.log_modal import LogModal
from .modals.mount_modals import MountModal
from .modals.snapshot_modals import CreateSnapshotModal, SnapshotModal
from .modals.vm_modals import DeleteVMModal, FilterModal
from .operations import BulkOperationError
from .parsing import VMInfo
from .refresh import FetchCompleted, RefreshCoordinator, RefreshEffects, RefreshRequested, TimerTick, ViewChanged
from .sorting import sort_vms
from .utils import check_multipass, setup_logging
from .vm_service import LaunchRequest, VMService


@dataclass
class VmListResult:
    vms: list[VMInfo] = field(default_factory=list)
    error: Exception | None = None


class WorkerManager:
    """A class to manage and track Textual workers."""

    def __init__(self, app: App):
        self.app = app
        self.workers: dict[str, Worker] = {}

    def run(
        self,
        callable: Callable[..., Any],
        *,
        name: str,
        group: str | None = None,
        exclusive: bool = True,
        thread: bool = True,
        description: str | None = None,
        exit_on_error: bool = True,
    ) -> Worker | None:
        """
        Runs and tracks a worker, preventing overlaps for workers with the same name.
        """
        if exclusive and self.is_running(name):
            logging.debug(f"Worker '{name}' is already running. Skipping new run.")
            return None

        worker = self.app.run_worker(
            callable,
            name=name,
            thread=thread,
            group=group or name,
            exclusive=exclusive,
            description=description or name,
            exit_on_error=exit_on_error,
        )

        self.workers[name] = worker
        return worker

    def _cleanup_finished_workers(self) -> None:
        """Removes finished workers from the tracking dictionary."""
        finished_worker_names = [
            name for name, worker in self.workers.items()
            if worker.state in (WorkerState.SUCCESS, WorkerState.CANCELLED, WorkerState.ERROR)
        ]
        for name in finished_worker_names:
            del self.workers[name]

    def is_running(self, name: str) -> bool:
        """Check if a worker with the given name is currently running."""
        self._cleanup_finished_workers()
        return name in self.workers

    def cancel(self, name: str) -> Worker | None:
        """Cancel a running worker by name. Returns the cancelled worker, or None."""
        worker = self.workers.pop(name, None)
        if worker is not None:
            worker.cancel()
        return worker

    def cancel_all(self) -> None:
        """Cancel all running workers."""
        for worker in list(self.workers.values()):
            worker.cancel()
        self.workers.clear()


class MPManagerTUI(App):
    """A Textual application to manage multipass VMs."""

    BINDINGS = [
        ("i", "info", "Info"),
        ("s", "start", "Start"),
        ("t", "stop", "Stop"),
        ("d", "delete", "Delete"),
        ("r", "recover", "Recover"),
        ("n", "launch", "Launch"),
        ("p", "snapshots", "Snapshots"),
        ("m", "mounts", "Mounts"),
        ("h", "shell", "Shell"),
        ("x", "exec", "Exec"),
        ("P", "purge", "Purge"),
        ("f", "filter_view", "Filter"),
        ("space", "toggle_select", "Select"),
        ("ctrl+a", "toggle_select_all", "Sel/Des All"),
        ("o", "cycle_sort", "Sort"),
        ("O", "reverse_sort", "Reverse"),
        ("ctrl+r", "refresh", "Refresh"),
        ("v", "view_log", "Log"),
        ("c", "config", "Config"),
        ("q", "quit", "Quit"),
    ]

    CSS_PATH = "mpmanager.css"

    sort_column = reactive(ListColumn.NAME)
    sort_ascending = reactive(True)
    search_text = reactive("")
    status_filter = reactive(VmStatus.DEFAULT)
    bulk_operation_in_progress = reactive(False)

    def __init__(self, config: dict | None = None, gateway: CommandRunner | None = None):
        super().__init__()
        self.config = config if config is not None else load_config()
        if gateway is None:
            gateway = MultipassGateway(
                binary=self.config.get("MULTIPASS_PATH", "multipass"),
                timeout=self.config.get("COMMAND_TIMEOUT"),
            )
        self.vm_service = VMService(gateway)
        self.worker_manager = WorkerManager(self)
        self.refresh_coordinator = RefreshCoordinator()
        self.vms: list[VMInfo] = []
        self.selected_vm_names: set[str] = set()
        self._refresh_timer = None
        # Views of the modals currently pushed, topmost last
        self._view_stack: list[View] = []

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        yield Header()
        yield DataTable(id="vm-table", cursor_type="row", zebra_stripes=True)
        yield Static("", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        self.title = f"{AppInfo.namecase} v{AppInfo.version}"
        table = self.query_one("#vm-table", DataTable)
        for index, title in enumerate(ListColumn.TITLES):
            table.add_column(title, key=str(index))

        if not check_multipass(self.config.get("MULTIPASS_PATH", "multipass")):
            self.show_error_message(ErrorMessages.MULTIPASS_NOT_FOUND)

        interval = self.config.get("REFRESH_INTERVAL", 5)
        self._refresh_timer = self.set_interval(interval, self.on_refresh_tick)
        self.dispatch_refresh(RefreshRequested(background=False))

    def on_unmount(self) -> None:
        """Called when the app is about to be unloaded."""
        if self._refresh_timer:
            self._refresh_timer.stop()
        self.worker_manager.cancel_all()

    def show_error_message(self, message: str):
        logging.error(message)
        self.notify(message, severity="error", timeout=10)

    def show_success_message(self, message: str):
        logging.info(message)
        self.notify(message, timeout=5)

    def show_quick_message(self, message: str):
        self.notify(message, timeout=2)

    def show_warning_message(self, message: str):
        logging.warning(message)
        self.notify(message, severity="warning", timeout=7)

    # Refresh handling

    def on_refresh_tick(self) -> None:
        self.dispatch_refresh(TimerTick())

    def dispatch_refresh(self, event) -> RefreshEffects:
        """Feeds one event to the refresh coordinator and carries out its effects."""
        effects = self.refresh_coordinator.handle(event)
        if effects.apply_result:
            self._apply_vm_list(effects.result)
        if effects.start_fetch is not None:
            self._start_vm_list_fetch(effects.start_fetch.background)
        return effects

    def _start_vm_list_fetch(self, background: bool) -> None:
        if not background:
            self.query_one("#status-bar", Static).update("Loading VM list...")
        self.worker_manager.run(
            lambda: self._vm_list_worker(background),
            name="list_vms",
            exclusive=False,
            exit_on_error=False,
        )

    def _vm_list_worker(self, background: bool) -> None:
        """Worker fetching the VM list; the result goes back to the UI thread."""
        try:
            result = VmListResult(vms=self.vm_service.list_vms())
        except Exception as e:  # pylint: disable=broad-exception-caught
            logging.error(f"VM list fetch failed: {e}")
            result = VmListResult(error=e)
        self.call_from_thread(self.dispatch_refresh, FetchCompleted(result=result, background=background))

    def _apply_vm_list(self, result: VmListResult | None) -> None:
        if result is None:
            return
        if result.error is not None:
            self.show_error_message(ErrorMessages.FETCH_FAILED.format(error=result.error))
            # Replaces the loading message, previous rows stay
            self.render_vm_table()
            return
        self.vms = result.vms
        known = {vm.name for vm in self.vms}
        self.selected_vm_names &= known
        self.render_vm_table()

    def request_refresh(self, background: bool = False) -> None:
        self.dispatch_refresh(RefreshRequested(background=background))

    # Table rendering

    def _matches_filter(self, vm: VMInfo) -> bool:
        if self.search_text and self.search_text.lower() not in vm.name.lower():
            return False
        if self.status_filter == VmStatus.RUNNING:
            return vm.state == VmState.RUNNING
        if self.status_filter == VmStatus.STOPPED:
            return vm.state == VmState.STOPPED
        if self.status_filter == VmStatus.DELETED:
            return vm.state == VmState.DELETED
        if self.status_filter == VmStatus.SELECTED:
            return vm.name in self.selected_vm_names
        return True

    def visible_vms(self) -> list[VMInfo]:
        shown = [vm for vm in self.vms if self._matches_filter(vm)]
        return sort_vms(shown, self.sort_column, self.sort_ascending)

    def render_vm_table(self) -> None:
        table = self.query_one("#vm-table", DataTable)
        current = self.get_cursor_vm_name()
        table.clear()
        rows = self.visible_vms()
        for vm in rows:
            cells = list(vm.as_row())
            if vm.name in self.selected_vm_names:
                cells[ListColumn.NAME] = f"* {vm.name}"
            table.add_row(*cells, key=vm.name)
        names = [vm.name for vm in rows]
        if current in names:
            table.move_cursor(row=names.index(current))

        direction = "asc" if self.sort_ascending else "desc"
        status = (
            f"{len(rows)}/{len(self.vms)} VMs | sort: {ListColumn.TITLES[self.sort_column]} {direction}"
        )
        if self.selected_vm_names:
            status += f" | selected: {len(self.selected_vm_names)}"
        if self.search_text or self.status_filter != VmStatus.DEFAULT:
            status += f" | filter: '{self.search_text}' {self.status_filter}"
        self.query_one("#status-bar", Static).update(status)

    def watch_sort_column(self) -> None:
        if self.is_mounted:
            self.render_vm_table()

    def watch_sort_ascending(self) -> None:
        if self.is_mounted:
            self.render_vm_table()

    def get_cursor_vm_name(self) -> str | None:
        table = self.query_one("#vm-table", DataTable)
        if table.row_count == 0:
            return None
        try:
            row_key = table.coordinate_to_cell_key(table.cursor_coordinate).row_key
        except CellDoesNotExist:
            return None
        return row_key.value

    def get_target_vm_names(self) -> list[str]:
        """Selected VMs, or the VM under the cursor when nothing is selected."""
        if self.selected_vm_names:
            return sorted(self.selected_vm_names)
        name = self.get_cursor_vm_name()
        return [name] if name else []

    def get_vm(self, name: str) -> VMInfo | None:
        for vm in self.vms:
            if vm.name == name:
                return vm
        return None

    @on(DataTable.HeaderSelected, "#vm-table")
    def on_header_selected(self, event: DataTable.HeaderSelected) -> None:
        if event.column_index == self.sort_column:
            self.sort_ascending = not self.sort_ascending
        else:
            self.sort_column = event.column_index
            self.sort_ascending = True

    @on(DataTable.RowSelected, "#vm-table")
    def on_vm_row_selected(self, event: DataTable.RowSelected) -> None:
        self.action_info()

    def action_cycle_sort(self) -> None:
        self.sort_column = (self.sort_column + 1) % len(ListColumn.TITLES)

    def action_reverse_sort(self) -> None:
        self.sort_ascending = not self.sort_ascending

    def action_toggle_select(self) -> None:
        name = self.get_cursor_vm_name()
        if not name:
            return
        if name in self.selected_vm_names:
            self.selected_vm_names.discard(name)
        else:
            self.selected_vm_names.add(name)
        self.render_vm_table()

    def action_toggle_select_all(self) -> None:
        """Selects or deselects all visible VMs."""
        visible = {vm.name for vm in self.visible_vms()}
        if visible and visible <= self.selected_vm_names:
            self.selected_vm_names -= visible
        else:
            self.selected_vm_names |= visible
        self.render_vm_table()

    def action_refresh(self) -> None:
        self.request_refresh(background=False)

    # Views

    def push_view(self, screen: Screen, view: View, callback: Callable[[Any], None] | None = None) -> None:
        """
        Pushes a modal and keeps the refresh coordinator informed of the visible view.
        Closing a modal reveals the one below it, or the list when none is left.
        """
        self._view_stack.append(view)
        self.dispatch_refresh(ViewChanged(view))

        def on_dismiss(result: Any) -> None:
            # Only the topmost modal can be dismissed
            if self._view_stack:
                self._view_stack.pop()
            revealed = self._view_stack[-1] if self._view_stack else View.LIST
            self.dispatch_refresh(ViewChanged(revealed))
            if callback is not None:
                callback(result)

        self.push_screen(screen, on_dismiss)

    def action_filter_view(self) -> None:
        """Filter the VM list."""
        def on_filter(result: dict | None) -> None:
            if result is None:
                return
            logging.info(f"Filter changed to status={result['status']}, search='{result['search']}'")
            self.status_filter = result["status"]
            self.search_text = result["search"]
            self.render_vm_table()

        self.push_view(FilterModal(self.search_text, self.status_filter), View.FILTER, on_filter)

    def action_view_log(self) -> None:
        """View the application log file."""
        log_path = get_log_path()
        try:
            with open(log_path, "r", encoding="utf-8") as f:
                log_content = f.read()
        except FileNotFoundError:
            log_content = f"Log file ({log_path}) not found."
        except OSError as e:
            log_content = f"Error reading log file: {e}"
        self.push_view(LogModal(log_content), View.LOG)

    def action_config(self) -> None:
        """Shows the active configuration."""
        content = yaml.safe_dump(self.config, default_flow_style=False, sort_keys=True)
        self.push_view(LogModal(content, title="Configuration", scroll_end=False), View.LOG)

    def action_info(self) -> None:
        name = self.get_cursor_vm_name()
        if not name:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return

        def info_worker():
            try:
                text = self.vm_service.get_vm_info_text(name)
            except Exception as e:  # pylint: disable=broad-exception-caught
                self.call_from_thread(self.show_error_message, f"Error getting info for VM '{name}': {e}")
                return
            self.call_from_thread(
                self.push_view, LogModal(text, title=f"Info: {name}", scroll_end=False), View.INFO
            )

        self.worker_manager.run(info_worker, name=f"info_{name}")

    # VM actions

    def _run_bulk_action(self, action: str, names: list[str], purge: bool = False) -> None:
        if not names:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return
        if self.bulk_operation_in_progress:
            self.show_warning_message("Another bulk action is still running.")
            return
        self.bulk_operation_in_progress = True
        self.show_quick_message(f"Running '{action}' on {', '.join(names)}...")

        def bulk_worker():
            try:
                self.vm_service.perform_bulk_action(action, names, purge=purge)
                self.call_from_thread(
                    self.show_success_message, f"Bulk action '{action}' successful for {len(names)} VM(s)."
                )
            except BulkOperationError as e:
                self.call_from_thread(self.show_error_message, str(e))
            except Exception as e:  # pylint: disable=broad-exception-caught
                logging.error(f"An unexpected error occurred during bulk action: {e}", exc_info=True)
                self.call_from_thread(self.show_error_message, f"A fatal error occurred during bulk action: {e}")
            finally:
                self.call_from_thread(setattr, self, "bulk_operation_in_progress", False)
                self.call_from_thread(self.request_refresh, False)

        self.worker_manager.run(bulk_worker, name=f"bulk_action_{action}")

    def action_start(self) -> None:
        self._run_bulk_action(VmAction.START, self.get_target_vm_names())

    def action_stop(self) -> None:
        self._run_bulk_action(VmAction.STOP, self.get_target_vm_names())

    def action_recover(self) -> None:
        self._run_bulk_action(VmAction.RECOVER, self.get_target_vm_names())

    def action_delete(self) -> None:
        names = self.get_target_vm_names()
        if not names:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return

        def on_confirm(result: dict | None) -> None:
            if result is None:
                return
            self.selected_vm_names.clear()
            self._run_bulk_action(VmAction.DELETE, names, purge=result["purge"])

        self.push_view(
            DeleteVMModal(names, purge_default=bool(self.config.get("PURGE_ON_DELETE"))),
            View.DIALOG,
            on_confirm,
        )

    def _run_single_action(self, description: str, func: Callable[[], Any], name: str) -> None:
        """Runs one gateway action in a worker, then refreshes the list."""
        def action_worker():
            try:
                func()
                self.call_from_thread(self.show_success_message, f"{description}: done.")
            except Exception as e:  # pylint: disable=broad-exception-caught
                self.call_from_thread(
                    self.show_error_message, ErrorMessages.ACTION_FAILED.format(action=description, error=e)
                )
            finally:
                self.call_from_thread(self.request_refresh, False)

        self.worker_manager.run(action_worker, name=name)

    def action_launch(self) -> None:
        """Gathers templates and networks, then opens the launch dialog."""
        self.show_quick_message("Looking for cloud-init templates...")

        def prepare_worker():
            templates, cleanup_dirs = get_all_cloud_init_template_options(self.config)
            try:
                networks = self.vm_service.list_networks()
            except Exception:  # pylint: disable=broad-exception-caught
                networks = []
            self.call_from_thread(self._show_launch_modal, templates, networks, cleanup_dirs)

        self.worker_manager.run(prepare_worker, name="prepare_launch")

    def _show_launch_modal(self, templates, networks, cleanup_dirs: list[str]) -> None:
        def on_launch(request: LaunchRequest | None) -> None:
            if request is None:
                cleanup_temp_dirs(cleanup_dirs)
                return

            def launch():
                try:
                    self.vm_service.launch_vm(request)
                finally:
                    cleanup_temp_dirs(cleanup_dirs)

            self.show_quick_message(f"Launching '{request.name}', this can take a while...")
            self._run_single_action(f"Launch of VM '{request.name}'", launch, name=f"launch_{request.name}")

        self.push_view(LaunchVMModal(self.config, templates, networks), View.LAUNCH, on_launch)

    def action_shell(self) -> None:
        name = self.get_cursor_vm_name()
        if not name:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return
        try:
            with self.suspend():
                self.vm_service.shell(name)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.show_error_message(f"Could not open a shell in '{name}': {e}")
        self.request_refresh(background=True)

    def action_exec(self) -> None:
        """Runs a one-off command in the VM under the cursor and shows its output."""
        name = self.get_cursor_vm_name()
        if not name:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return

        def on_command(command: str | None) -> None:
            if not command or not command.strip():
                return
            argv = command.split()

            def exec_worker():
                try:
                    output = self.vm_service.exec_in_vm(name, *argv)
                except Exception as e:  # pylint: disable=broad-exception-caught
                    self.call_from_thread(
                        self.show_error_message, ErrorMessages.ACTION_FAILED.format(action=command, error=e)
                    )
                    return
                self.call_from_thread(
                    self.push_view, LogModal(output, title=f"{name}: {command}", scroll_end=False), View.INFO
                )

            self.worker_manager.run(exec_worker, name=f"exec_{name}")

        self.push_view(InputModal(f"Command to run in '{name}':"), View.DIALOG, on_command)

    def action_purge(self) -> None:
        """Permanently removes all deleted VMs."""
        def on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self._run_single_action("Purge of deleted VMs", self.vm_service.purge_deleted, name="purge")

        self.push_view(ConfirmationDialog("Purge all deleted VMs? They cannot be recovered."), View.DIALOG, on_confirm)

    def action_snapshots(self) -> None:
        name = self.get_cursor_vm_name()
        if not name:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return

        def snapshots_worker():
            try:
                snapshots = self.vm_service.snapshots_for(name)
            except Exception as e:  # pylint: disable=broad-exception-caught
                self.call_from_thread(self.show_error_message, f"Error listing snapshots of '{name}': {e}")
                return
            self.call_from_thread(self._show_snapshot_modal, name, snapshots)

        self.worker_manager.run(snapshots_worker, name=f"snapshots_{name}")

    def _show_snapshot_modal(self, vm_name: str, snapshots) -> None:
        def on_create(result: dict | None) -> None:
            if result is None:
                return
            self._run_single_action(
                f"Snapshot '{result['name']}' of '{vm_name}'",
                lambda: self.vm_service.create_snapshot(vm_name, result["name"], result["comment"]),
                name=f"snapshot_create_{vm_name}",
            )

        def on_action(result: dict | None) -> None:
            if result is None:
                return
            action = result["action"]
            if action == "create":
                default_name = f"snapshot{len(snapshots) + 1}"
                self.push_view(CreateSnapshotModal(vm_name, default_name), View.DIALOG, on_create)
                return
            snapshot = result["snapshot"]
            if action == "restore":
                prompt = f"Restore '{vm_name}' to snapshot '{snapshot}'? Current state is lost."
                func = lambda: self.vm_service.restore_snapshot(vm_name, snapshot)
            else:
                prompt = f"Delete snapshot '{snapshot}' of '{vm_name}'?"
                func = lambda: self.vm_service.delete_snapshot(vm_name, snapshot)

            def on_confirm(confirmed: bool | None) -> None:
                if confirmed:
                    self._run_single_action(
                        f"{action.capitalize()} snapshot '{snapshot}'", func, name=f"snapshot_{action}_{vm_name}"
                    )

            self.push_view(ConfirmationDialog(prompt), View.DIALOG, on_confirm)

        self.push_view(SnapshotModal(vm_name, snapshots), View.SNAPSHOTS, on_action)

    def action_mounts(self) -> None:
        name = self.get_cursor_vm_name()
        vm = self.get_vm(name) if name else None
        if vm is None:
            self.show_warning_message(StaticText.NO_VM_SELECTED)
            return

        def on_action(result: dict | None) -> None:
            if result is None:
                return
            action = result["action"]
            if action == "add":
                def on_paths(paths: dict | None) -> None:
                    if paths:
                        self._run_single_action(
                            f"Mount of {paths['source']} in '{name}'",
                            lambda: self.vm_service.mount(paths["source"], name, paths["target"]),
                            name=f"mount_{name}",
                        )
                self.push_view(PathPairModal(f"New mount in {name}"), View.DIALOG, on_paths)
            elif action == "remove":
                mount = result["mount"]
                self._run_single_action(
                    f"Unmount of {mount.target} in '{name}'",
                    lambda: self.vm_service.unmount(name, mount.target),
                    name=f"umount_{name}",
                )
            elif action == "modify":
                mount = result["mount"]

                def on_new_paths(paths: dict | None) -> None:
                    if paths:
                        self._run_single_action(
                            f"Mount change of {mount.target} in '{name}'",
                            lambda: self.vm_service.modify_mount(
                                name, mount.target, paths["source"], paths["target"]
                            ),
                            name=f"mount_modify_{name}",
                        )

                self.push_view(
                    PathPairModal(f"Change mount {mount.target} of {name}", mount.source, mount.target),
                    View.DIALOG,
                    on_new_paths,
                )

        self.push_view(MountModal(name, vm.mounts), View.MOUNTS, on_action)

    async def action_quit(self) -> None:
        """Quit the application."""
        self.exit()


def main():
    """Entry point for mpmanager TUI application."""
    parser = argparse.ArgumentParser(description="A Textual application to manage multipass VMs.")
    parser.add_argument("--multipass", help="Path of the multipass executable.")
    parser.add_argument("--refresh-interval", type=float, help="Seconds between automatic list refreshes.")
    args = parser.parse_args()

    config = load_config()
    if args.multipass:
        config["MULTIPASS_PATH"] = args.multipass
    if args.refresh_interval:
        config["REFRESH_INTERVAL"] = args.refresh_interval

    setup_logging(config)
    if not check_multipass(config["MULTIPASS_PATH"]):
        print(ErrorMessages.MULTIPASS_NOT_FOUND, file=sys.stderr)
        sys.exit(1)

    app = MPManagerTUI(config=config)
    app.run()


if __name__ == "__main__":
    main()
