from __future__ import annotations
import math
import re
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar, Union

from .textutil import parse_number_string

T = TypeVar("T")

SLASH = re.compile(r"\s*/\s*")


def peg_list(head: T, tail: Sequence[Sequence[T]], index: int, force_single: bool = False) -> Union[T, List[T]]:
    """
    Combine a head element with a tail of (separator, element) groups.
    With force_single, a lone head comes back as a scalar.
    """
    if force_single and not tail:
        return head
    result = [head]
    for element in tail:
        result.append(element[index])
    return result


def peg_slash_list(head: T, tail: Sequence[Sequence[T]]) -> Union[T, List[T]]:
    return peg_list(head, tail, 1, True)


def add_condition(value, maybe_condition, condition_prop: str = "condition"):
    """
    Attach a parsed condition to a clause. maybe_condition may be a
    (whitespace, condition) pair, a bare condition, or None.
    """
    if isinstance(maybe_condition, (list, tuple)):
        return value.model_copy(update={condition_prop: maybe_condition[1]})
    if maybe_condition is not None:
        return value.model_copy(update={condition_prop: maybe_condition})
    return value


def split_slash(text: str) -> Tuple[str, List[Tuple[str, str]]]:
    """Split "a/b/c" into a head and a tail of ("/", element) groups."""
    parts = SLASH.split(text.strip())
    return parts[0], [("/", p) for p in parts[1:]]


def strip_uncertain(text: str) -> Tuple[str, bool]:
    text = text.strip()
    if len(text) > 1 and text.endswith("?"):
        return text[:-1], True
    return text, False


def parse_number(text: str) -> Optional[Union[int, float]]:
    text = text.strip()
    if text == "?":
        return math.nan
    n = parse_number_string(text)
    if n is not None:
        return n
    try:
        f = float(text)
    except ValueError:
        return None
    return int(f) if f.is_integer() else f


def parse_number_list(text: str, converter: Callable[[str], Any] = parse_number):
    """
    Parse "3", "three", "0.5/0.6/0.7" or "X". Returns a scalar, a tier list,
    the placeholder, or None if any element is not a number.
    """
    text = text.strip()
    if text in ("X", "-X"):
        return text
    head, tail = split_slash(text)
    values = [converter(head)] + [converter(p) for _sep, p in tail]
    if any(v is None for v in values):
        return None
    return peg_slash_list(values[0], [("/", v) for v in values[1:]])


def split_list(text: str, pattern: re.Pattern) -> List[Tuple[str, Optional[str]]]:
    """
    Split a conjunction list, returning (item, conjunction-before-item) pairs.
    """
    out: List[Tuple[str, Optional[str]]] = []
    pos = 0
    conj: Optional[str] = None
    for m in pattern.finditer(text):
        out.append((text[pos:m.start()].strip(), conj))
        sep = m.group(0).strip()
        conj = "and" if "and" in sep else "or" if "or" in sep else "/" if sep == "/" else ","
        pos = m.end()
    out.append((text[pos:].strip(), conj))
    return [(item, c) for item, c in out if item]
