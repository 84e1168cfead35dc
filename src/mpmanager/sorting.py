"""
Ordering of the VM table.
"""
import re
from typing import Sequence

from .parsing import VMInfo

# A whole number, optionally followed by a unit suffix, e.g. "2", "10G", " 3 "
_DECORATED_INT = re.compile(r"^\s*(\d+)\s*[A-Za-z%]*\s*$")


def _as_int(value: str) -> int | None:
    match = _DECORATED_INT.match(value.strip())
    if match is None:
        return None
    return int(match.group(1))


def column_is_numeric(vms: Sequence[VMInfo], column: int) -> bool:
    """
    True when every non-empty value of the column is a non-negative integer.
    A column made only of empty values is not numeric.
    """
    seen_number = False
    for vm in vms:
        value = vm.column_value(column).strip()
        if not value:
            continue
        if _as_int(value) is None:
            return False
        seen_number = True
    return seen_number


def sort_vms(vms: Sequence[VMInfo], column: int, ascending: bool = True) -> list[VMInfo]:
    """
    Returns a new list ordered by the given column.

    Numeric columns compare as integers ("2" < "10"), others as case-sensitive
    strings. Equal keys are always ordered by name ascending, whatever the
    requested direction. The input sequence is left untouched.
    """
    numeric = column_is_numeric(vms, column)

    def key(vm: VMInfo):
        value = vm.column_value(column)
        if numeric:
            number = _as_int(value)
            # Missing values rank below every number
            return -1 if number is None else number
        return value

    by_name = sorted(vms, key=lambda vm: vm.name)
    # Sorting is stable, also with reverse=True, so the name order survives ties.
    return sorted(by_name, key=key, reverse=not ascending)
