from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .textutil import LONG_LIST_THRESHOLD
from .type_helpers import ALL_ELEMENTS_SHORT_NAME

EN_DASH_JOIN = " – "

# Quality gate. Empirically tuned against existing content; recalibrate if the
# vocabulary grows.
MERGE_CHAR_FUDGE = 1.5
MERGE_CHAR_CUTOFF = 20

# Marks an option that has no counterpart for a leftover segment
EMPTY_OPTION = "0̸"

_SPLIT_AT_PLUS = re.compile(r"([,? +=])")
_SPLIT_NO_PLUS = re.compile(r"([,? ])")
_STAT_MOD = re.compile(r"(\d+%) ([A-Z]{3})")
_NBSP = "\u00a0"
_NUMERIC_CORE = re.compile(r"^[0-9][0-9.]*\??$")


@dataclass
class _RawMerge:
    result: str
    same: int
    same_chars: int
    different: int
    different_chars: int


@dataclass
class SlashMergeResult:
    result: str
    same: int
    different: int
    merge_failed: bool


def _common_affixes(parts: Sequence[str]):
    """Shared non-numeric prefix/suffix around otherwise numeric parts ("+10%", "+20%")."""
    prefix = parts[0]
    suffix = parts[0]
    for p in parts[1:]:
        while not p.startswith(prefix):
            prefix = prefix[:-1]
        while not p.endswith(suffix):
            suffix = suffix[1:]
    prefix = prefix.rstrip("0123456789.")
    suffix = suffix.lstrip("0123456789.?")
    cores = [p[len(prefix):len(p) - len(suffix)] for p in parts]
    if not (prefix or suffix) or not all(_NUMERIC_CORE.match(c) for c in cores):
        return None
    return prefix, cores, suffix


def _join(parts: List[str], join: Optional[str]) -> str:
    if join:
        join_string = join
    else:
        # Slashes unless the parts have slashes of their own
        join_string = EN_DASH_JOIN if any("/" in p for p in parts) else "/"
    if len(parts) >= LONG_LIST_THRESHOLD and "/".join(parts) == ALL_ELEMENTS_SHORT_NAME:
        return "element"
    prefix = suffix = ""
    if join_string == "/" and EMPTY_OPTION not in parts:
        affixes = _common_affixes(parts)
        if affixes:
            prefix, parts, suffix = affixes
    if len(parts) >= LONG_LIST_THRESHOLD:
        body = join_string.join([parts[0], parts[1], "…", parts[-1]])
    else:
        body = join_string.join(parts)
    return prefix + body + suffix


def _raw_slash_merge(options: Sequence[str], split_at_plus: bool, join: Optional[str]) -> _RawMerge:
    # Plus-separated terms normally merge piecewise (f+n / wa+n -> f/wa+n), but
    # sometimes merge better as units.
    split_at = _SPLIT_AT_PLUS if split_at_plus else _SPLIT_NO_PLUS
    option_parts = [split_at.split(o) for o in options]
    max_length = max(len(p) for p in option_parts)
    min_length = min(len(p) for p in option_parts)

    result = ""
    same = same_chars = different = different_chars = 0
    for i in range(min_length):
        column = [p[i] for p in option_parts]
        if all(c == column[0] for c in column):
            result += column[0]
            same += 1
            same_chars += len(column[0])
        else:
            result += _join(column, join)
            different += 1
            different_chars += max(len(c) for c in column)

    if max_length != min_length:
        extra_parts = [p[min_length:] for p in option_parts]
        if all(len(e) == 0 or (len(e) >= 3 and e[0] == "," and e[1] == "" and e[2] == " ")
               for e in extra_parts):
            result += ", "
            extra_parts = [e[3:] for e in extra_parts]
        else:
            result += " "
        result += _join(["".join(e) if e else EMPTY_OPTION for e in extra_parts], join)
        different += max_length - min_length

    return _RawMerge(result, same, same_chars, different, different_chars)


def slash_merge_with_details(options: Sequence[str], join: Optional[str] = None) -> SlashMergeResult:
    """
    Merge mutually exclusive, already formatted options into one string,
    sharing common tokens and slash-joining the differing ones. Falls back to
    en-dash separation of the original options when the options have too
    little in common.
    """
    options = list(options)
    if not options:
        return SlashMergeResult("", 0, 0, False)

    standard_plus = _raw_slash_merge(options, True, join)
    standard_no_plus = _raw_slash_merge(options, False, join)
    standard = standard_no_plus if standard_no_plus.different < standard_plus.different else standard_plus

    # Try again with stat mods ("30% ATK") kept as single units
    with_combined_stats = [_STAT_MOD.sub(r"\1" + _NBSP + r"\2", o) for o in options]
    combined_stats = _raw_slash_merge(with_combined_stats, True, join)

    use_combined_stats = combined_stats.different < standard.different
    picked = combined_stats if use_combined_stats else standard
    result = picked.result.replace(_NBSP, " ") if use_combined_stats else picked.result

    merge_failed = (
        picked.same < picked.different
        or (picked.same_chars * MERGE_CHAR_FUDGE < picked.different_chars
            and picked.different_chars > MERGE_CHAR_CUTOFF)
    )
    if merge_failed:
        result = EN_DASH_JOIN.join(options)

    return SlashMergeResult(result, picked.same, picked.different, merge_failed)


def slash_merge(options: Sequence[str], join: Optional[str] = None) -> str:
    return slash_merge_with_details(options, join).result
