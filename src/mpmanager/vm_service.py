"""
VM Service Layer
Handles all multipass interactions and data processing.
"""
import logging
import re
from dataclasses import dataclass

from .constants import VmAction
from .gateway import CommandRunner, MultipassGateway
from .operations import run_bulk_operation, run_mount_modify
from .parsing import (
    NetworkInfo, SnapshotInfo, VMInfo,
    merge_vm_info, parse_networks, parse_snapshots, parse_vm_info, parse_vm_list,
)
from .utils import natural_sort_key

VM_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")
BRIDGED = "bridged"

MIN_CPUS = 1
MIN_MEMORY_MB = 512
MIN_DISK_GB = 1


@dataclass
class LaunchRequest:
    """Parameters of a new VM."""
    name: str
    release: str
    cpus: int | None = None
    memory_mb: int | None = None
    disk_gb: int | None = None
    cloud_init_file: str | None = None
    # "" = NAT, "bridged" = the configured bridge, anything else a network name
    network: str = ""

    def validate(self) -> None:
        """
        Raises:
            ValueError: describing the first invalid field
        """
        if not self.name:
            raise ValueError("VM name cannot be empty")
        if not VM_NAME_PATTERN.match(self.name):
            raise ValueError(
                f"Invalid VM name '{self.name}': must start with a letter and contain only letters, digits and hyphens"
            )
        if not self.release:
            raise ValueError("Release cannot be empty")
        if self.cpus is not None and self.cpus < MIN_CPUS:
            raise ValueError(f"CPUs must be at least {MIN_CPUS}")
        if self.memory_mb is not None and self.memory_mb < MIN_MEMORY_MB:
            raise ValueError(f"Memory must be at least {MIN_MEMORY_MB} MB")
        if self.disk_gb is not None and self.disk_gb < MIN_DISK_GB:
            raise ValueError(f"Disk must be at least {MIN_DISK_GB} GB")

    @property
    def is_basic(self) -> bool:
        return (
            self.cpus is None and self.memory_mb is None and self.disk_gb is None
            and not self.cloud_init_file and not self.network
        )

    def to_args(self) -> list[str]:
        """Arguments of the `multipass launch` command."""
        self.validate()
        args = ["launch", "--name", self.name]
        if self.is_basic:
            return args + [self.release]
        if self.cpus is not None:
            args += ["--cpus", str(self.cpus)]
        if self.memory_mb is not None:
            args += ["--memory", f"{self.memory_mb}M"]
        if self.disk_gb is not None:
            args += ["--disk", f"{self.disk_gb}G"]
        if self.cloud_init_file:
            args += ["--cloud-init", self.cloud_init_file]
        if self.network == BRIDGED:
            args.append("--bridged")
        elif self.network:
            args += ["--network", self.network]
        args.append(self.release)
        return args


class VMService:
    """A service class to abstract multipass operations."""

    def __init__(self, gateway: CommandRunner | None = None, logger: logging.Logger | None = None):
        self.gateway = gateway if gateway is not None else MultipassGateway()
        self.logger = logger or logging.getLogger(__name__)

    def run(self, *args: str) -> str:
        return self.gateway(*args)

    def list_vms(self) -> list[VMInfo]:
        """Fetches the VM list and completes it with `multipass info`."""
        listed = parse_vm_list(self.run("list"))
        if not listed:
            return []
        names = [vm.name for vm in listed]
        try:
            detailed = parse_vm_info(self.run("info", *names))
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Deleted instances can make `info` fail for the whole batch.
            self.logger.warning(f"multipass info failed, showing list data only: {e}")
            return listed
        return merge_vm_info(listed, detailed)

    def get_vm_info(self, name: str) -> VMInfo | None:
        vms = parse_vm_info(self.run("info", name))
        return vms[0] if vms else None

    def get_vm_info_text(self, name: str) -> str:
        return self.run("info", name)

    def list_snapshots(self) -> list[SnapshotInfo]:
        return parse_snapshots(self.run("list", "--snapshots"))

    def snapshots_for(self, name: str) -> list[SnapshotInfo]:
        snapshots = [s for s in self.list_snapshots() if s.instance == name]
        return sorted(snapshots, key=lambda s: natural_sort_key(s.name))

    def list_networks(self) -> list[NetworkInfo]:
        """
        Interfaces usable for bridged networking.
        Raises when the backend does not support `multipass networks`.
        """
        try:
            output = self.run("networks", "--format", "json")
        except Exception as e:
            self.logger.info(f"multipass networks unavailable: {e}")
            raise
        return parse_networks(output)

    def launch_vm(self, request: LaunchRequest) -> str:
        args = request.to_args()
        self.logger.info(f"Launching VM '{request.name}' ({request.release})")
        return self.run(*args)

    def start_vm(self, name: str) -> str:
        return self.run(VmAction.START, name)

    def stop_vm(self, name: str) -> str:
        return self.run(VmAction.STOP, name)

    def delete_vm(self, name: str, purge: bool = False) -> str:
        args = [VmAction.DELETE, name]
        if purge:
            args.append("--purge")
        return self.run(*args)

    def recover_vm(self, name: str) -> str:
        return self.run(VmAction.RECOVER, name)

    def purge_deleted(self) -> str:
        return self.run("purge")

    def start_vms(self, names: list[str]):
        return run_bulk_operation(VmAction.START, names, self.start_vm, logger=self.logger)

    def stop_vms(self, names: list[str]):
        return run_bulk_operation(VmAction.STOP, names, self.stop_vm, logger=self.logger)

    def delete_vms(self, names: list[str], purge: bool = False):
        return run_bulk_operation(
            VmAction.DELETE, names, lambda name: self.delete_vm(name, purge=purge), logger=self.logger
        )

    def recover_vms(self, names: list[str]):
        return run_bulk_operation(VmAction.RECOVER, names, self.recover_vm, logger=self.logger)

    def perform_bulk_action(self, action: str, names: list[str], purge: bool = False):
        """Dispatches a bulk action by its verb."""
        dispatcher = {
            VmAction.START: self.start_vms,
            VmAction.STOP: self.stop_vms,
            VmAction.RECOVER: self.recover_vms,
        }
        if action == VmAction.DELETE:
            return self.delete_vms(names, purge=purge)
        if action not in dispatcher:
            raise ValueError(f"Unknown bulk action type: {action}")
        return dispatcher[action](names)

    def exec_in_vm(self, name: str, *command: str) -> str:
        return self.run("exec", name, "--", *command)

    def create_snapshot(self, vm_name: str, snapshot_name: str, comment: str = "") -> str:
        return self.run("snapshot", "--name", snapshot_name, "--comment", comment, vm_name)

    def restore_snapshot(self, vm_name: str, snapshot_name: str) -> str:
        return self.run("restore", "--destructive", f"{vm_name}.{snapshot_name}")

    def delete_snapshot(self, vm_name: str, snapshot_name: str) -> str:
        return self.run("delete", "--purge", f"{vm_name}.{snapshot_name}")

    def mount(self, source: str, vm_name: str, path: str) -> str:
        return self.run("mount", source, f"{vm_name}:{path}")

    def unmount(self, vm_name: str, path: str) -> str:
        return self.run("umount", f"{vm_name}:{path}")

    def modify_mount(self, vm_name: str, old_path: str, new_source: str, new_path: str) -> None:
        run_mount_modify(self.gateway, vm_name, old_path, new_source, new_path, logger=self.logger)

    def shell(self, name: str) -> int:
        """Interactive shell in a VM; the gateway must support it."""
        shell = getattr(self.gateway, "shell", None)
        if shell is None:
            raise RuntimeError("the configured gateway cannot open interactive shells")
        return shell(name)
