"""
Modal to launch a new VM, optionally from a cloud-init template.
"""
from textual.app import ComposeResult
from textual.containers import Horizontal, ScrollableContainer
from textual.widgets import Button, Input, Label, Select

from ..cloud_init import TemplateOption
from ..constants import ButtonLabels, StaticText
from ..parsing import NetworkInfo
from ..vm_service import BRIDGED, LaunchRequest
from .base_modals import BaseModal


def _optional_int(value: str, field: str) -> int | None:
    value = value.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{field} must be a whole number") from e


class LaunchVMModal(BaseModal[LaunchRequest | None]):
    """Collects the parameters of `multipass launch`."""

    def __init__(
        self,
        defaults: dict,
        templates: list[TemplateOption] | None = None,
        networks: list[NetworkInfo] | None = None,
    ) -> None:
        super().__init__()
        self.defaults = defaults
        self.templates = templates or []
        self.networks = networks or []

    def compose(self) -> ComposeResult:
        network_options = [(StaticText.NAT_NETWORK, ""), (StaticText.BRIDGED_NETWORK, BRIDGED)]
        network_options += [(f"{n.name} ({n.type}) {n.description}", n.name) for n in self.networks]
        template_options = [(StaticText.NO_TEMPLATE, "")]
        template_options += [(t.label, t.path) for t in self.templates]

        with ScrollableContainer(id="launch-dialog", classes="dialog"):
            yield Label("Launch New VM")
            yield Label("Name")
            yield Input(placeholder="my-vm", id="vm-name-input")
            yield Label("Release")
            yield Input(value=str(self.defaults.get("DEFAULT_RELEASE", "")), id="vm-release-input")
            yield Label("CPUs")
            yield Input(value=str(self.defaults.get("DEFAULT_CPUS", "")), id="vm-cpus-input", restrict=r"[0-9]*")
            yield Label("Memory (MB)")
            yield Input(value=str(self.defaults.get("DEFAULT_MEMORY_MB", "")), id="vm-memory-input", restrict=r"[0-9]*")
            yield Label("Disk (GB)")
            yield Input(value=str(self.defaults.get("DEFAULT_DISK_GB", "")), id="vm-disk-input", restrict=r"[0-9]*")
            yield Label("Network")
            yield Select(network_options, value="", allow_blank=False, id="vm-network-select")
            yield Label("Cloud-init template")
            yield Select(template_options, value="", allow_blank=False, id="vm-template-select")
            with Horizontal(classes="buttons"):
                yield Button(ButtonLabels.LAUNCH, variant="primary", id="launch-btn")
                yield Button(ButtonLabels.CANCEL, variant="default", id="cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#vm-name-input", Input).focus()

    def build_request(self) -> LaunchRequest:
        """
        Raises:
            ValueError: on invalid input
        """
        request = LaunchRequest(
            name=self.query_one("#vm-name-input", Input).value.strip(),
            release=self.query_one("#vm-release-input", Input).value.strip(),
            cpus=_optional_int(self.query_one("#vm-cpus-input", Input).value, "CPUs"),
            memory_mb=_optional_int(self.query_one("#vm-memory-input", Input).value, "Memory"),
            disk_gb=_optional_int(self.query_one("#vm-disk-input", Input).value, "Disk"),
            cloud_init_file=self.query_one("#vm-template-select", Select).value or None,
            network=self.query_one("#vm-network-select", Select).value or "",
        )
        request.validate()
        return request

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "launch-btn":
            self.dismiss(None)
            return
        try:
            request = self.build_request()
        except ValueError as e:
            self.notify(str(e), severity="error")
            return
        self.dismiss(request)
