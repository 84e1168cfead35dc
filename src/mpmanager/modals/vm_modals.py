"""
Mpmanager modals
"""
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Checkbox, Input, Label, RadioButton, RadioSet

from ..constants import ButtonLabels, VmStatus
from .base_modals import BaseModal
from .input_modals import _sanitize_input


class FilterModal(BaseModal[dict | None]):
    """Modal screen for filtering the VM table."""

    def __init__(self, current_search: str = "", current_status: str = VmStatus.DEFAULT) -> None:
        super().__init__()
        self.current_search = current_search
        self.current_status = current_status

    def compose(self) -> ComposeResult:
        with Vertical(id="filter-dialog", classes="dialog"):
            yield Label("Filter by Name")
            yield Input(placeholder="Enter VM name...", id="search-input", value=self.current_search)
            with RadioSet(id="status-radioset"):
                yield RadioButton("All", id=f"status_{VmStatus.DEFAULT}", value=self.current_status == VmStatus.DEFAULT)
                yield RadioButton("Running", id=f"status_{VmStatus.RUNNING}", value=self.current_status == VmStatus.RUNNING)
                yield RadioButton("Stopped", id=f"status_{VmStatus.STOPPED}", value=self.current_status == VmStatus.STOPPED)
                yield RadioButton("Deleted", id=f"status_{VmStatus.DELETED}", value=self.current_status == VmStatus.DELETED)
                yield RadioButton("Manually Selected", id=f"status_{VmStatus.SELECTED}", value=self.current_status == VmStatus.SELECTED)
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.APPLY, id="apply-btn", variant="success")
                yield Button(ButtonLabels.CANCEL, id="cancel-btn")

    def _apply(self) -> None:
        search_text_raw = self.query_one("#search-input", Input).value
        try:
            search_text, was_modified = _sanitize_input(search_text_raw)
        except ValueError as e:
            self.notify(str(e), severity="error")
            return

        if was_modified and search_text_raw != search_text: # Only show if actual chars were removed, not just empty
            self.notify(f"Input sanitized: '{search_text_raw}' changed to '{search_text}'")

        status_button = self.query_one(RadioSet).pressed_button
        status = VmStatus.DEFAULT
        if status_button:
            status = status_button.id.replace("status_", "")

        self.dismiss({"status": status, "search": search_text})

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "apply-btn":
            self._apply()
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handles Enter key press in the search input."""
        self._apply()


class DeleteVMModal(BaseModal[dict | None]):
    """Confirms deletion of one or more VMs, optionally purging them."""

    def __init__(self, vm_names: list[str], purge_default: bool = False) -> None:
        super().__init__()
        self.vm_names = vm_names
        self.purge_default = purge_default

    def compose(self) -> ComposeResult:
        with Vertical(id="delete-vm-dialog", classes="dialog"):
            yield Label(f"Delete {len(self.vm_names)} VM(s): {', '.join(self.vm_names)}?")
            yield Checkbox("Purge (cannot be recovered)", value=self.purge_default, id="purge-checkbox")
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.DELETE, variant="error", id="delete-btn")
                yield Button(ButtonLabels.CANCEL, id="cancel-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "delete-btn":
            purge = self.query_one("#purge-checkbox", Checkbox).value
            self.dismiss({"purge": purge})
        else:
            self.dismiss(None)
