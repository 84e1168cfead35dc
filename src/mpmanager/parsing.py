"""
Parsers for the text produced by the multipass CLI.

All functions here are pure: they take the captured output of a command
and return fresh records, never touching the gateway.
"""
import json
import logging
from dataclasses import dataclass, field, replace

from .constants import NO_VALUE, ListColumn

logger = logging.getLogger(__name__)

SNAPSHOT_MIN_FIELDS = 4
VM_LIST_MIN_FIELDS = 3


@dataclass(frozen=True)
class MountInfo:
    source: str
    target: str


@dataclass(frozen=True)
class VMInfo:
    """One row of the VM table."""
    name: str
    state: str = ""
    snapshots: str = ""
    ipv4: str = ""
    cpus: str = ""
    memory: str = ""
    disk: str = ""
    release: str = ""
    load: str = ""
    mounts: tuple[MountInfo, ...] = ()
    extra: dict = field(default_factory=dict, compare=False)

    def column_value(self, column: int) -> str:
        """Returns the displayed value of a table column."""
        values = (
            self.name, self.state, self.snapshots, self.ipv4,
            self.cpus, self.memory, self.disk, self.release,
        )
        if 0 <= column < len(values):
            return values[column]
        return self.name

    def as_row(self) -> tuple[str, ...]:
        return tuple(self.column_value(i) for i in range(len(ListColumn.TITLES)))


@dataclass(frozen=True)
class SnapshotInfo:
    instance: str
    name: str
    parent: str
    comment: str

    @property
    def snapshot_id(self) -> str:
        """Identifier used by restore and delete: <instance>.<snapshot>"""
        return f"{self.instance}.{self.name}"


@dataclass(frozen=True)
class NetworkInfo:
    name: str
    type: str
    description: str


def _normalize(value: str) -> str:
    """Maps the `--` placeholder to an empty value."""
    value = value.strip()
    return "" if value == NO_VALUE else value


def parse_snapshot_line(line: str) -> tuple[SnapshotInfo | None, bool]:
    """
    Parses a single row of `multipass list --snapshots`.

    The comment column is the remainder of the line and keeps its inner spacing.

    Returns:
        tuple: (snapshot, True) on success, (None, False) for a malformed line
    """
    fields = line.strip().split(None, SNAPSHOT_MIN_FIELDS - 1)
    if len(fields) < SNAPSHOT_MIN_FIELDS:
        return None, False
    instance, name, parent, comment = fields
    return SnapshotInfo(
        instance=instance,
        name=name,
        parent=_normalize(parent),
        comment=_normalize(comment),
    ), True


def parse_snapshots(output: str) -> list[SnapshotInfo]:
    """Parses the whole snapshot table, skipping the header and malformed lines."""
    snapshots = []
    for lineno, line in enumerate(output.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        if lineno == 1 and stripped.startswith("Instance"):
            continue
        if stripped.startswith("No snapshots"):
            continue
        snapshot, ok = parse_snapshot_line(line)
        if not ok:
            logger.warning("Skipping malformed snapshot line %d: %r", lineno, line)
            continue
        snapshots.append(snapshot)
    return snapshots


def parse_vm_list(output: str) -> list[VMInfo]:
    """
    Parses `multipass list`.

    Columns are Name, State, IPv4 and Image; Image takes the rest of the line.
    A line starting with whitespace holds an extra address of the previous VM.
    """
    vms: list[VMInfo] = []
    for lineno, line in enumerate(output.splitlines(), start=1):
        if not line.strip():
            continue
        if lineno == 1 and line.split()[0] == "Name":
            continue
        if line.startswith("No instances"):
            continue
        if line[0].isspace():
            if vms:
                previous = vms[-1]
                extra_ip = _normalize(line)
                if extra_ip:
                    ipv4 = f"{previous.ipv4}, {extra_ip}" if previous.ipv4 else extra_ip
                    vms[-1] = replace(previous, ipv4=ipv4)
            continue
        fields = line.split(None, VM_LIST_MIN_FIELDS)
        if len(fields) < VM_LIST_MIN_FIELDS:
            logger.warning("Skipping malformed list line %d: %r", lineno, line)
            continue
        release = fields[3] if len(fields) > 3 else ""
        vms.append(VMInfo(
            name=fields[0],
            state=fields[1],
            ipv4=_normalize(fields[2]),
            release=_normalize(release),
        ))
    return vms


_INFO_KEYS = {
    "Name": "name",
    "State": "state",
    "Snapshots": "snapshots",
    "IPv4": "ipv4",
    "Release": "release",
    "CPU(s)": "cpus",
    "Load": "load",
    "Disk usage": "disk",
    "Memory usage": "memory",
    "Mounts": "mounts",
}


def _parse_mount(text: str) -> MountInfo | None:
    if "=>" not in text:
        return None
    source, target = text.split("=>", 1)
    return MountInfo(source=source.strip(), target=target.strip())


def _build_info(fields: dict[str, list[str]]) -> VMInfo:
    values = {}
    extra = {}
    for key, lines in fields.items():
        attr = _INFO_KEYS.get(key)
        if attr == "mounts":
            mounts = [_parse_mount(text) for text in lines]
            values["mounts"] = tuple(m for m in mounts if m is not None)
        elif attr == "ipv4":
            values["ipv4"] = ", ".join(v for v in (_normalize(t) for t in lines) if v)
        elif attr:
            values[attr] = _normalize(lines[0])
        else:
            extra[key] = _normalize(" ".join(lines))
    return VMInfo(extra=extra, **values)


def parse_vm_info(output: str) -> list[VMInfo]:
    """
    Parses the `Key: value` blocks printed by `multipass info`.

    Each `Name:` key starts a new VM. Lines beginning with whitespace continue
    the previous key (extra addresses, further mounts, uid/gid maps).
    """
    records: list[dict[str, list[str]]] = []
    current: dict[str, list[str]] | None = None
    last_key = None
    for line in output.splitlines():
        if not line.strip():
            continue
        if line[0].isspace():
            if current is not None and last_key is not None:
                current[last_key].append(line.strip())
            continue
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        if key == "Name":
            current = {}
            records.append(current)
        if current is None:
            continue
        current[key] = [value.strip()]
        last_key = key
    return [_build_info(fields) for fields in records if fields.get("Name")]


def merge_vm_info(listed: list[VMInfo], detailed: list[VMInfo]) -> list[VMInfo]:
    """
    Combines `list` rows with `info` details, keeping the order of the listing.
    Values from `info` win when present.
    """
    details = {vm.name: vm for vm in detailed}
    merged = []
    for vm in listed:
        info = details.get(vm.name)
        if info is None:
            merged.append(vm)
            continue
        merged.append(VMInfo(
            name=vm.name,
            state=info.state or vm.state,
            snapshots=info.snapshots,
            ipv4=info.ipv4 or vm.ipv4,
            cpus=info.cpus,
            memory=info.memory,
            disk=info.disk,
            release=info.release or vm.release,
            load=info.load,
            mounts=info.mounts,
            extra=dict(info.extra),
        ))
    return merged


def parse_networks(output: str) -> list[NetworkInfo]:
    """
    Parses `multipass networks --format json`.

    Raises:
        ValueError: if the output is not the expected JSON document
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ValueError(f"failed to parse networks: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("failed to parse networks: unexpected document")
    return [
        NetworkInfo(
            name=item.get("name", ""),
            type=item.get("type", ""),
            description=item.get("description", ""),
        )
        for item in data.get("list", [])
    ]
