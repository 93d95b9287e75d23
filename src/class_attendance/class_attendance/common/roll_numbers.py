from __future__ import annotations

import re
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

_NON_DIGITS = re.compile(r"[^0-9]")


def roll_number_key(roll_no: str) -> int:
    """Seating order of a roll number: the integer formed by its digits.

    Roll numbers without any digit sort first.
    """
    digits = _NON_DIGITS.sub("", roll_no or "")
    return int(digits) if digits else -1


def sort_by_roll_number(items: Iterable[T], *, key: Callable[[T], str] = lambda item: item.roll_no) -> list[T]:
    return sorted(items, key=lambda item: roll_number_key(key(item)))
