"""
Mount management modal.
"""
from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Label

from ..constants import ButtonLabels, StaticText
from ..parsing import MountInfo
from .base_modals import BaseModal


class MountModal(BaseModal[dict | None]):
    """
    Lists the mounts of a VM.

    Dismisses with {"action": "add"}, {"action": "remove", "mount": MountInfo}
    or {"action": "modify", "mount": MountInfo}; None when closed.
    """

    def __init__(self, vm_name: str, mounts: tuple[MountInfo, ...]) -> None:
        super().__init__()
        self.vm_name = vm_name
        self.mounts = list(mounts)
        self.selected: MountInfo | None = None

    def compose(self) -> ComposeResult:
        with Vertical(id="mount-dialog", classes="dialog"):
            yield Label(f"Mounts of {self.vm_name}")
            yield DataTable(id="mount-table", cursor_type="row", zebra_stripes=True)
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.ADD, variant="primary", id="add-btn")
                yield Button(ButtonLabels.MODIFY, id="modify-btn", disabled=True)
                yield Button(ButtonLabels.REMOVE, variant="error", id="remove-btn", disabled=True)
                yield Button(ButtonLabels.CLOSE, id="close-btn")

    def on_mount(self) -> None:
        table = self.query_one("#mount-table", DataTable)
        table.add_columns("Host directory", "VM path")
        if not self.mounts:
            table.add_row(StaticText.NO_MOUNTS, "", key="empty")
            return
        for index, mount in enumerate(self.mounts):
            table.add_row(mount.source, mount.target, key=str(index))
        self._select(self.mounts[0])

    def _select(self, mount: MountInfo | None) -> None:
        self.selected = mount
        self.query_one("#modify-btn", Button).disabled = mount is None
        self.query_one("#remove-btn", Button).disabled = mount is None

    @on(DataTable.RowHighlighted, "#mount-table")
    def on_mount_highlighted(self, event: DataTable.RowHighlighted) -> None:
        key = event.row_key.value if event.row_key is not None else None
        if key is None or key == "empty":
            self._select(None)
        else:
            self._select(self.mounts[int(key)])

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "add-btn":
            self.dismiss({"action": "add"})
        elif button_id == "modify-btn" and self.selected:
            self.dismiss({"action": "modify", "mount": self.selected})
        elif button_id == "remove-btn" and self.selected:
            self.dismiss({"action": "remove", "mount": self.selected})
        else:
            self.dismiss(None)
