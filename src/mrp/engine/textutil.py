from __future__ import annotations
import math
import re
from typing import Callable, List, Optional, Sequence, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .schema_models import UseCount

Number = Union[int, float]
NumberList = Union[Number, Sequence[Number]]

# Lists at least this long are abbreviated as first/second/…/last
LONG_LIST_THRESHOLD = 8

AND_LIST = re.compile(r",? and |, ")
OR_LIST = re.compile(r",? or |, ")
AND_OR_LIST = re.compile(r",? and |,? or |, ")

_NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7,
    "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13,
    "fourteen": 14, "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19, "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

_TUPLE = [None, None, "dual", "triple", "quad", "penta", "hex", "sext"]


def arrayify(value) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _is_nan(n) -> bool:
    return isinstance(n, float) and math.isnan(n)


def _num(n: Number) -> str:
    if isinstance(n, float) and n.is_integer():
        return str(int(n))
    return str(n)


def is_numeric(s: str) -> bool:
    try:
        float(s)
    except ValueError:
        return False
    return True


def tuple_verb(count: int, verb: str) -> str:
    prefix = _TUPLE[count] if 0 <= count < len(_TUPLE) else None
    return (prefix or f"{count}-") + verb


def lower_case_first(s: str) -> str:
    return s[:1].lower() + s[1:] if s[:1].isupper() else s


def number_or_unknown(n: Number) -> str:
    return "?" if _is_nan(n) else _num(n)


def abs_number_or_unknown(n: Number) -> str:
    return "?" if _is_nan(n) else _num(abs(n))


def signed_number(n: Number) -> str:
    if _is_nan(n):
        return "+?"
    return ("+" if n >= 0 else "") + _num(n)


def _sign(n: Number) -> int:
    return -1 if n < 0 else 1


def format_number_slash_list(n: NumberList, converter: Callable[[Number], str] = number_or_unknown) -> str:
    """Legacy hyphen-joined rendering of a tier list."""
    if isinstance(n, (list, tuple)):
        return "-".join(converter(i) for i in n)
    return converter(n)


def format_signed_integer_slash_list(n: NumberList) -> str:
    values = arrayify(n)
    return ("-" if values[0] < 0 else "+") + "/".join(abs_number_or_unknown(i) for i in values)


def number_slash_list(n: NumberList,
                      converter: Callable[[Number], str] = number_or_unknown,
                      join_string: str = "/") -> str:
    values = [converter(i) for i in arrayify(n)]
    if len(values) >= LONG_LIST_THRESHOLD:
        return join_string.join([values[0], values[1], "…", values[-1]])
    return join_string.join(values)


def signed_number_slash_list(n: NumberList, join_string: str = "/") -> str:
    signs = {_sign(i) for i in arrayify(n) if not _is_nan(i) and i != 0}
    if len(signs) != 1:
        return number_slash_list(n, signed_number, join_string)
    sign = signs.pop()
    return ("-" if sign == -1 else "+") + number_slash_list(n, abs_number_or_unknown, join_string)


def string_slash_list(s: Union[str, Sequence[str]], join_string: str = "/") -> str:
    return join_string.join(arrayify(s))


def hyphen_join(n: NumberList) -> str:
    return " - ".join(number_or_unknown(i) for i in arrayify(n))


def parse_number_string(s: Optional[str]) -> Optional[int]:
    """
    Parses "one", "twenty-two" or a numeric literal. Returns None for anything
    else; None means "not a literal number", not an error.
    """
    if not s:
        return None
    s = s.strip()
    if is_numeric(s):
        f = float(s)
        return int(f) if f.is_integer() else None
    result = 0
    for word in s.lower().split("-"):
        if word not in _NUMBER_WORDS:
            return None
        result += _NUMBER_WORDS[word]
    return result


def parse_threshold_values(s: str) -> List[float]:
    out: List[float] = []
    for part in s.split("/"):
        try:
            out.append(float(part))
        except ValueError:
            out.append(math.nan)
    return out


def to_mrp_fixed(n: Number) -> str:
    if _is_nan(n):
        return "?"
    result = f"{n:.2f}"
    if result.endswith("0"):
        result = result[:-1]
    return result


def to_mrp_kilo(n: Union[Number, str], favor_small: bool = False) -> str:
    """
    Formats as kilo (k). Thresholds like 100001 are rounded down by one so they
    read as 100k.
    """
    if n == "?":
        return "?"
    suffix = ""
    if isinstance(n, str):
        if len(n) > 1 and n.endswith("?"):
            suffix = "?"
            n = n[:-1]
        n = float(n)
    if n < 1000 and (n == 0 or favor_small or float(n).is_integer()):
        return _num(n) + suffix
    if n % 1000 == 1:
        n -= 1
    return _num(n / 1000) + "k" + suffix


def join_or(items: Sequence) -> str:
    items = [str(i) for i in items]
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " or " + items[-1]


def and_join(items: Sequence[str], oxford_comma: bool = False) -> str:
    items = list(items)
    if len(items) <= 1:
        return "".join(items)
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return ", ".join(items[:-1]) + ("," if oxford_comma else "") + " and " + items[-1]


def is_sequential(values: Sequence[int]) -> bool:
    return all(values[i] == values[i - 1] + 1 for i in range(1, len(values)))


def format_use_number(count: Optional[int]) -> str:
    if not count:
        return "w/ uses"
    if count > 4:
        return f"w/ 1…{count} uses"
    return "w/ " + format_number_slash_list(list(range(count))) + " uses"


def format_use_count(count: "UseCount") -> str:
    if count.kind == "series":
        return string_slash_list([_num(i) for i in arrayify(count.x)]) + f" +{count.y}n"
    if count.from_ is None:
        return f"≤{count.to}"
    if count.to is None:
        return f"≥{count.from_}"
    if count.from_ == count.to:
        return str(count.from_)
    return f"{count.from_}-{count.to}"


def count_matches(haystack: str, needle: re.Pattern) -> int:
    return len(needle.findall(haystack))


def describe_chances(options: Sequence[str], percent_chances: Sequence[int],
                     join: str = "-") -> Tuple[Optional[str], str]:
    if all(i == percent_chances[0] for i in percent_chances):
        return None, " or ".join(options)
    return "-".join(str(i) for i in percent_chances) + "%", join.join(options)


def percent_to_multiplier(percent: Union[Number, str]) -> str:
    suffix = ""
    if isinstance(percent, str):
        if len(percent) > 1 and percent.endswith("?"):
            suffix = "?"
            percent = percent[:-1]
        percent = float(percent)
    return to_mrp_fixed(1 + percent / 100) + suffix
