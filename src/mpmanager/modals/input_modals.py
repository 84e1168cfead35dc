"""
Modals for text input.
"""
import re

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label

from ..constants import ButtonLabels
from .base_modals import BaseModal


class InputModal(BaseModal[str | None]):
    """A generic modal for getting text input from the user."""
    def __init__(self, prompt: str, initial_value: str = "", restrict: str | None = None):
        super().__init__()
        self.prompt = prompt
        self.initial_value = initial_value
        self.restrict = restrict

    def compose(self) -> ComposeResult:
        with Vertical(id="add-input-container", classes="dialog"):
            yield Label(self.prompt)
            yield Input(value=self.initial_value, id="text-input", restrict=self.restrict)
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.OK, variant="primary", id="ok-btn")
                yield Button(ButtonLabels.CANCEL, variant="default", id="cancel-btn")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok-btn":
            self.dismiss(self.query_one(Input).value)
        else:
            self.dismiss(None)


class PathPairModal(BaseModal[dict | None]):
    """Asks for a host source directory and a path inside the VM."""

    def __init__(self, title: str, source: str = "", target: str = ""):
        super().__init__()
        self.title = title
        self.source = source
        self.target = target

    def compose(self) -> ComposeResult:
        with Vertical(id="path-pair-container", classes="dialog"):
            yield Label(self.title)
            yield Label("Host directory")
            yield Input(value=self.source, placeholder="/home/user/project", id="source-input")
            yield Label("Path inside the VM")
            yield Input(value=self.target, placeholder="/home/ubuntu/project", id="target-input")
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.OK, variant="primary", id="ok-btn")
                yield Button(ButtonLabels.CANCEL, variant="default", id="cancel-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "ok-btn":
            self.dismiss(None)
            return
        source = self.query_one("#source-input", Input).value.strip()
        target = self.query_one("#target-input", Input).value.strip()
        if not source or not target:
            self.notify("Both paths are required.", severity="error")
            return
        self.dismiss({"source": source, "target": target})


def _sanitize_input(input_string: str) -> tuple[str, bool]:
    """
    Sanitise input to alphanumeric, underscore, hyphen and period only.
    Returns a tuple: (sanitized_string, was_modified).
    `was_modified` is True if any characters were removed/changed or input was empty.
    """
    original_stripped = input_string.strip()
    was_modified = False

    if not original_stripped:
        return "", True # Empty input is considered modified

    sanitized = re.sub(r'[^a-zA-Z0-9._-]', '', original_stripped)

    if len(sanitized) > 64:
        raise ValueError("Sanitized input is too long (max 64 characters)")

    if sanitized != original_stripped:
        was_modified = True

    return sanitized, was_modified
