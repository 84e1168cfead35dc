"""
Shared constants for the application.
"""
from enum import Enum


class AppInfo:
    """Define app data"""
    name = "mpmanager"
    namecase = "MPManager"
    version = "0.3.0"


class VmAction:
    """Defines constants for VM action types (multipass verbs)."""
    START = "start"
    STOP = "stop"
    DELETE = "delete"
    RECOVER = "recover"


class VmState:
    """State strings reported by multipass."""
    RUNNING = "Running"
    STOPPED = "Stopped"
    DELETED = "Deleted"
    SUSPENDED = "Suspended"
    STARTING = "Starting"
    UNKNOWN = "Unknown"


class VmStatus:
    """Defines constants for VM status filters."""
    DEFAULT = "default"
    RUNNING = "running"
    STOPPED = "stopped"
    DELETED = "deleted"
    SELECTED = "selected"


class View(Enum):
    """Screens the user can be looking at."""
    LIST = "list"
    INFO = "info"
    SNAPSHOTS = "snapshots"
    LAUNCH = "launch"
    MOUNTS = "mounts"
    FILTER = "filter"
    LOG = "log"
    DIALOG = "dialog"


class ListColumn:
    """Zero-based column indices of the VM table."""
    NAME = 0
    STATE = 1
    SNAPSHOTS = 2
    IPV4 = 3
    CPUS = 4
    MEMORY = 5
    DISK = 6
    RELEASE = 7

    TITLES = ("Name", "State", "Snapshots", "IPv4", "CPUs", "Memory", "Disk", "Release")


NO_VALUE = "--"


class ButtonLabels:
    OK = "OK"
    CANCEL = "Cancel"
    CLOSE = "Close"
    APPLY = "Apply"
    LAUNCH = "Launch"
    CREATE = "Create"
    RESTORE = "Restore"
    DELETE = "Delete"
    MODIFY = "Modify"
    ADD = "Add"
    REMOVE = "Remove"
    YES = "Yes"
    NO = "No"


class StaticText:
    NAME_CANNOT_BE_EMPTY = "Name cannot be empty."
    NAME_INVALID = "Name must start with a letter and contain only letters, digits and hyphens."
    NO_VM_SELECTED = "No VM selected."
    NO_SNAPSHOTS = "No snapshots."
    NO_MOUNTS = "No mounts."
    NO_TEMPLATE = "(none)"
    NAT_NETWORK = "NAT (default)"
    BRIDGED_NETWORK = "Bridged (configured default)"


class ErrorMessages:
    MULTIPASS_NOT_FOUND = "multipass executable not found. Install it or set MULTIPASS_PATH in the config."
    FETCH_FAILED = "Error fetching VM list: {error}"
    ACTION_FAILED = "Error during '{action}': {error}"
