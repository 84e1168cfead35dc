"""
Log function
"""
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Label, TextArea

from ..constants import ButtonLabels
from .base_modals import BaseModal


class LogModal(BaseModal[None]):
    """ Modal Screen to show Log, VM info or any read-only text"""

    def __init__(self, log_content: str, title: str = "Log View", scroll_end: bool = True) -> None:
        super().__init__()
        self.log_content = log_content
        self.title = title
        self.scroll_to_end = scroll_end

    def compose(self) -> ComposeResult:
        with Vertical(id="text-show", classes="dialog"):
            yield Label(self.title, id="title")
            text_area = TextArea(read_only=True)
            text_area.load_text(self.log_content)
            yield text_area
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.CLOSE, variant="default", id="cancel-btn")

    def on_mount(self) -> None:
        """Called when the modal is mounted."""
        if self.scroll_to_end:
            self.query_one(TextArea).scroll_end(animate=False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel-btn":
            self.dismiss(None)
