"""
Multi-step and multi-target operations on VMs.
"""
import logging
from typing import Callable, Iterable

from .gateway import CommandRunner

_log = logging.getLogger(__name__)


class BulkOperationError(Exception):
    """One or more targets of a bulk operation failed."""

    def __init__(self, operation: str, failures: list[tuple[str, Exception]]):
        self.operation = operation
        self.failures = failures
        details = "; ".join(f"{operation} {target}: {error}" for target, error in failures)
        super().__init__(f"{len(failures)} {operation} operation(s) failed: {details}")

    @property
    def failed_targets(self) -> list[str]:
        return [target for target, _ in self.failures]


class MountModifyError(Exception):
    """A step of a mount modification failed."""

    UNMOUNT = "unmount"
    MOUNT = "mount"

    def __init__(self, step: str, vm_name: str, path: str, cause: Exception):
        self.step = step
        self.vm_name = vm_name
        self.path = path
        self.cause = cause
        super().__init__(f"failed to {step} {vm_name}:{path}: {cause}")


def run_bulk_operation(
    operation: str,
    targets: Iterable[str],
    operation_fn: Callable[[str], object],
    logger: logging.Logger | None = None,
) -> list[tuple[str, Exception | None]]:
    """
    Applies operation_fn to every target in order, never stopping at a failure.

    Returns:
        list: (target, None) for every target when all of them succeeded

    Raises:
        BulkOperationError: listing each failed target as "<operation> <target>"
    """
    log = logger or _log
    outcomes: list[tuple[str, Exception | None]] = []
    for target in targets:
        try:
            operation_fn(target)
        except Exception as e:  # pylint: disable=broad-exception-caught
            log.error("%s %s failed: %s", operation, target, e)
            outcomes.append((target, e))
        else:
            log.info("%s %s succeeded", operation, target)
            outcomes.append((target, None))

    failures = [(target, error) for target, error in outcomes if error is not None]
    if failures:
        raise BulkOperationError(operation, failures)
    return outcomes


def run_mount_modify(
    run_cmd: CommandRunner,
    vm_name: str,
    old_path: str,
    new_source: str,
    new_path: str,
    logger: logging.Logger | None = None,
) -> None:
    """
    Moves a mount: unmounts `vm_name:old_path`, then mounts `new_source` at
    `vm_name:new_path`.

    The mount step only runs when the unmount succeeded. Nothing is rolled
    back when the mount step fails; the old mount stays released.

    Raises:
        MountModifyError: with step "unmount" or "mount"
    """
    log = logger or _log
    try:
        run_cmd("umount", f"{vm_name}:{old_path}")
    except Exception as e:
        log.error("unmount of %s:%s failed: %s", vm_name, old_path, e)
        raise MountModifyError(MountModifyError.UNMOUNT, vm_name, old_path, e) from e

    try:
        run_cmd("mount", new_source, f"{vm_name}:{new_path}")
    except Exception as e:
        log.error("mount of %s at %s:%s failed: %s", new_source, vm_name, new_path, e)
        raise MountModifyError(MountModifyError.MOUNT, vm_name, new_path, e) from e

    log.info("moved mount %s:%s to %s:%s (source %s)", vm_name, old_path, vm_name, new_path, new_source)
