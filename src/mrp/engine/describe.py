from __future__ import annotations
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .formatter import format_clauses
from .models import AbilityMetadata, StatusTable
from .normalizer import normalize
from .parser import ParseResult, parse_description
from .schema_models import EffectClause, UnparsedFragment
from .trace import DiagnosticTrail
from .type_helpers import RenderOptions, get_school_short_name


@dataclass
class MrPDescription:
    notation: str
    clauses: List[EffectClause]
    parse: ParseResult
    trail: List[str] = field(default_factory=list)

    @property
    def is_uncertain(self) -> bool:
        return self.parse.is_uncertain


class DescriptionCache:
    """
    Caller-owned memo of rendered descriptions, keyed by ability id and render
    options. Concurrent writers may compute the same entry twice; the values
    are equal, so the last write wins. With max_entries set, the oldest entry
    is evicted first; otherwise the cache grows until cleared.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[int, str], MrPDescription]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def key(ability_id: int, options: RenderOptions) -> Tuple[int, str]:
        return (ability_id, options.cache_key())

    def get(self, ability_id: int, options: RenderOptions) -> Optional[MrPDescription]:
        return self._entries.get(self.key(ability_id, options))

    def put(self, ability_id: int, options: RenderOptions, description: MrPDescription) -> None:
        with self._lock:
            self._entries[self.key(ability_id, options)] = description
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[int, str]) -> bool:
        return key in self._entries


def _suffix(ability: AbilityMetadata, options: RenderOptions) -> str:
    out = ""
    if options.include_school and ability.school != "?":
        out += f" ({get_school_short_name(ability.school)})"
    if options.include_sb_points and ability.sb_points:
        out += f" [{ability.sb_points} SB pts]"
    return out


def describe_ability(
    ability: AbilityMetadata,
    options: Optional[RenderOptions] = None,
    related: Optional[Mapping[str, AbilityMetadata]] = None,
    cache: Optional[DescriptionCache] = None,
    status_table: Optional[StatusTable] = None,
    trace: Any = None,
    _seen: FrozenSet[int] = frozenset(),
) -> MrPDescription:
    """
    Parse, normalize and format one ability. Content problems never raise:
    they are recorded on the trail and the description degrades to the raw
    text.
    """
    options = options or RenderOptions()
    if cache is not None:
        hit = cache.get(ability.id, options)
        if hit is not None:
            return hit

    trail = trace if trace is not None else DiagnosticTrail(ability_id=ability.id, ability=ability.name)
    seen = _seen | {ability.id}
    nested = options.model_copy(update={"include_school": False, "include_sb_points": False})

    def describe_skill(name: str) -> Optional[str]:
        other = (related or {}).get(name)
        if other is None:
            return None
        if other.id in seen:
            trail.warning("Recursive related ability skipped", name=name)
            return name
        own_trail = DiagnosticTrail(ability_id=other.id, ability=other.name)
        result = describe_ability(other, nested, related, cache, status_table, own_trail, seen)
        if hasattr(trail, "absorb"):
            trail.absorb(result.trail)
        return result.notation

    try:
        parsed = parse_description(ability.effects, ability, status_table, trail)
        clauses = normalize(parsed.clauses, trail)
        notation = format_clauses(clauses, ability, options, describe_skill, trail)
    except Exception as e:
        trail.error("Failed to describe ability", ability_id=ability.id, error=repr(e))
        clauses = [UnparsedFragment(text=ability.effects)]
        parsed = ParseResult(clauses=list(clauses), is_uncertain=True, failed=True)
        notation = ability.effects

    description = MrPDescription(
        notation=notation + _suffix(ability, options),
        clauses=clauses,
        parse=parsed,
        trail=trail.dump() if hasattr(trail, "dump") else [],
    )
    if cache is not None:
        cache.put(ability.id, options, description)
    return description


def describe_all(
    abilities: Iterable[AbilityMetadata],
    options: Optional[RenderOptions] = None,
    related: Optional[Mapping[str, AbilityMetadata]] = None,
    cache: Optional[DescriptionCache] = None,
    status_table: Optional[StatusTable] = None,
    workers: int = 1,
) -> Dict[int, MrPDescription]:
    """Describe every ability; each one gets its own trail."""
    abilities = list(abilities)

    def one(ability: AbilityMetadata) -> MrPDescription:
        return describe_ability(ability, options, related, cache, status_table)

    if workers <= 1:
        return {a.id: one(a) for a in abilities}
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return {a.id: d for a, d in zip(abilities, pool.map(one, abilities))}
