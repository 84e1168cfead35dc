"""
Base Modal stuff
"""
import re
from typing import TypeVar

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from ..constants import ButtonLabels, StaticText

T = TypeVar("T")

VM_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")


class BaseModal(ModalScreen[T]):
    """Base class for all modal screens in the application."""

    BINDINGS = [("escape", "cancel_modal", "Cancel")]

    def action_cancel_modal(self) -> None:
        """Cancel and close the modal."""
        self.dismiss(None)

    @staticmethod
    def validate_name(name: str) -> str | None:
        """
        Validates a VM or snapshot name: a letter followed by letters, digits or hyphens.
        Returns an error message string if invalid, otherwise None.
        """
        if not name:
            return StaticText.NAME_CANNOT_BE_EMPTY
        if not VM_NAME_RE.fullmatch(name):
            return StaticText.NAME_INVALID
        return None


class ConfirmationDialog(BaseModal[bool]):
    """Yes/No question."""

    def __init__(self, prompt: str) -> None:
        super().__init__()
        self.prompt = prompt

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog", classes="dialog"):
            yield Label(self.prompt)
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.YES, variant="error", id="yes-btn")
                yield Button(ButtonLabels.NO, variant="primary", id="no-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes-btn")
