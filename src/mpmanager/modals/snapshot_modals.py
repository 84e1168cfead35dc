"""
Snapshot management modals.
"""
from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Label

from ..constants import ButtonLabels, StaticText
from ..parsing import SnapshotInfo
from .base_modals import BaseModal


class SnapshotModal(BaseModal[dict | None]):
    """
    Lists the snapshots of a VM.

    Dismisses with {"action": "create"}, {"action": "restore", "snapshot": name}
    or {"action": "delete", "snapshot": name}; None when closed.
    """

    def __init__(self, vm_name: str, snapshots: list[SnapshotInfo]) -> None:
        super().__init__()
        self.vm_name = vm_name
        self.snapshots = snapshots
        self.selected_snapshot: str | None = None

    def compose(self) -> ComposeResult:
        with Vertical(id="snapshot-dialog", classes="dialog"):
            yield Label(f"Snapshots of {self.vm_name}")
            yield DataTable(id="snapshot-table", cursor_type="row", zebra_stripes=True)
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.CREATE, variant="primary", id="create-btn")
                yield Button(ButtonLabels.RESTORE, id="restore-btn", disabled=True)
                yield Button(ButtonLabels.DELETE, variant="error", id="delete-btn", disabled=True)
                yield Button(ButtonLabels.CLOSE, id="close-btn")

    def on_mount(self) -> None:
        table = self.query_one("#snapshot-table", DataTable)
        table.add_column("Snapshot", key="name")
        table.add_column("Parent", key="parent")
        table.add_column("Comment", key="comment")
        if not self.snapshots:
            table.add_row(StaticText.NO_SNAPSHOTS, "", "", key="empty")
            return
        for snapshot in self.snapshots:
            table.add_row(snapshot.name, snapshot.parent, snapshot.comment, key=snapshot.name)
        self._select(self.snapshots[0].name)

    def _select(self, name: str | None) -> None:
        self.selected_snapshot = name
        self.query_one("#restore-btn", Button).disabled = name is None
        self.query_one("#delete-btn", Button).disabled = name is None

    @on(DataTable.RowHighlighted, "#snapshot-table")
    def on_snapshot_highlighted(self, event: DataTable.RowHighlighted) -> None:
        key = event.row_key.value if event.row_key is not None else None
        self._select(None if key == "empty" else key)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "create-btn":
            self.dismiss({"action": "create"})
        elif button_id == "restore-btn" and self.selected_snapshot:
            self.dismiss({"action": "restore", "snapshot": self.selected_snapshot})
        elif button_id == "delete-btn" and self.selected_snapshot:
            self.dismiss({"action": "delete", "snapshot": self.selected_snapshot})
        else:
            self.dismiss(None)


class CreateSnapshotModal(BaseModal[dict | None]):
    """Asks for the name and comment of a new snapshot."""

    def __init__(self, vm_name: str, default_name: str = "") -> None:
        super().__init__()
        self.vm_name = vm_name
        self.default_name = default_name

    def compose(self) -> ComposeResult:
        with Vertical(id="create-snapshot-dialog", classes="dialog"):
            yield Label(f"New snapshot of {self.vm_name} (the VM must be stopped)")
            yield Input(value=self.default_name, placeholder="snapshot name", id="snapshot-name-input")
            yield Input(placeholder="comment (optional)", id="snapshot-comment-input")
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.CREATE, variant="primary", id="create-btn")
                yield Button(ButtonLabels.CANCEL, id="cancel-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "create-btn":
            self.dismiss(None)
            return
        name = self.query_one("#snapshot-name-input", Input).value.strip()
        error = self.validate_name(name)
        if error:
            self.notify(error, severity="error")
            return
        comment = self.query_one("#snapshot-comment-input", Input).value.strip()
        self.dismiss({"name": name, "comment": comment})
