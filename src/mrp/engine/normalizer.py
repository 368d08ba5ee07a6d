"""
Clause-list passes run between parsing and formatting. Every pass takes a
sequence of clauses and returns a new list; nodes are copied, never mutated,
and running a pass on its own output returns the same list.
"""
from __future__ import annotations
from typing import Any, Callable, List, Optional, Sequence

from .schema_models import (
    Attack, AttackExtras, CastSkill, Duration, EffectClause, GainResourcePoints,
    RemovedAfterTrigger, StandaloneAttackExtra, StandaloneHitRate, StatusGrant,
    StatusWithPercent, TriggeredEffect,
)
from .textutil import arrayify
from .trace import ensure_trail

Pass = Callable[[Sequence[EffectClause], Any], List[EffectClause]]


def _copy(node, **update):
    return node.model_copy(update=update, deep=True)


# -----------------------------
# Hit rate / attack extras
# -----------------------------

def _update_tail(attack: Attack, update: Callable[[Attack], Optional[Attack]]) -> Optional[Attack]:
    if attack.followed_by is None:
        return update(attack)
    tail = _update_tail(attack.followed_by, update)
    return None if tail is None else _copy(attack, followed_by=tail)


def _with_hit_rate(hit_rate: int):
    def update(attack: Attack) -> Optional[Attack]:
        if attack.hit_rate is not None:
            return None
        return _copy(attack, hit_rate=hit_rate)
    return update


def _with_extras(extras: AttackExtras):
    def update(attack: Attack) -> Optional[Attack]:
        current = attack.extras or AttackExtras()
        incoming = extras.model_dump(exclude_defaults=True)
        # Only a field that is already set counts as a duplicate
        if any(getattr(current, k) != AttackExtras.model_fields[k].default for k in incoming):
            return None
        return _copy(attack, extras=_copy(current, **incoming))
    return update


def fold_satellites(clauses: Sequence[EffectClause], trace: Any = None) -> List[EffectClause]:
    trace = ensure_trail(trace)
    out: List[EffectClause] = []
    for clause in clauses:
        if not isinstance(clause, (StandaloneHitRate, StandaloneAttackExtra)):
            out.append(_copy(clause))
            continue

        owner = next((i for i in range(len(out) - 1, -1, -1) if isinstance(out[i], Attack)), None)
        if owner is None:
            trace.error("Satellite clause without a preceding attack", clause=clause.type)
            continue
        if isinstance(clause, StandaloneHitRate):
            folded = _update_tail(out[owner], _with_hit_rate(clause.hit_rate))
        else:
            folded = _update_tail(out[owner], _with_extras(clause.extras))
        if folded is None:
            trace.error("Attack already has this satellite set", clause=clause.type)
            continue
        out[owner] = folded
    return out


# -----------------------------
# Resource points
# -----------------------------

def _split_grant(grant: StatusGrant) -> List[Any]:
    statuses = [s for s in grant.statuses if isinstance(s, StatusWithPercent)]
    points = [s for s in grant.statuses if isinstance(s, GainResourcePoints)]
    if not points:
        return [_copy(grant)]
    out: List[Any] = []
    if statuses:
        statuses[0] = _copy(statuses[0], conj=None)
        out.append(_copy(grant, statuses=statuses))
    for p in points:
        out.append(_copy(p, conj=None, who=p.who or grant.who, condition=p.condition or grant.condition))
    return out


def separate_resource_points(clauses: Sequence[EffectClause], trace: Any = None) -> List[EffectClause]:
    out: List[EffectClause] = []
    for clause in clauses:
        if isinstance(clause, TriggeredEffect):
            effects: List[Any] = []
            for effect in clause.effects:
                effects.extend(_split_grant(effect) if isinstance(effect, StatusGrant) else [_copy(effect)])
            out.append(_copy(clause, effects=effects))
        else:
            out.append(_copy(clause))
    return out


# -----------------------------
# Self-referential triggers
# -----------------------------

def _cast_names(effect) -> List[str]:
    if not isinstance(effect, CastSkill):
        return []
    skill = effect.skill
    if isinstance(skill, str):
        return [skill]
    return list(arrayify(getattr(skill, "options", skill)))


def detect_self_triggers(clauses: Sequence[EffectClause], trace: Any = None) -> List[EffectClause]:
    trace = ensure_trail(trace)
    cast = {
        name
        for clause in clauses if isinstance(clause, TriggeredEffect)
        for effect in clause.effects
        for name in _cast_names(effect)
    }
    out: List[EffectClause] = []
    for clause in clauses:
        trigger = getattr(clause, "trigger", None)
        if isinstance(clause, RemovedAfterTrigger) and trigger.type == "skill" and not trigger.is_self_skill:
            if trigger.skill in cast:
                out.append(_copy(clause, trigger=_copy(trigger, is_self_skill=True)))
                continue
            trace.info("Removal trigger skill is not cast here", skill=trigger.skill)
        out.append(_copy(clause))
    return out


# -----------------------------
# Durations
# -----------------------------

def _attach_duration(grant: StatusGrant, duration: Duration) -> Optional[StatusGrant]:
    statuses = list(grant.statuses)
    for i in range(len(statuses) - 1, -1, -1):
        entry = statuses[i]
        if isinstance(entry, StatusWithPercent):
            if entry.duration is not None:
                return None
            statuses[i] = _copy(entry, duration=duration)
            return _copy(grant, statuses=statuses, duration=None)
    return None


def _attach_own_duration(grant: StatusGrant, trace: Any) -> StatusGrant:
    if grant.duration is None:
        return _copy(grant)
    attached = _attach_duration(grant, grant.duration)
    if attached is None:
        trace.warning("Duration has no status to attach to")
        return _copy(grant, duration=None)
    return attached


def attach_durations(clauses: Sequence[EffectClause], trace: Any = None) -> List[EffectClause]:
    trace = ensure_trail(trace)
    out: List[EffectClause] = []
    for clause in clauses:
        if isinstance(clause, StatusGrant):
            out.append(_attach_own_duration(clause, trace))
        elif isinstance(clause, TriggeredEffect):
            effects = [_attach_own_duration(e, trace) if isinstance(e, StatusGrant) else _copy(e)
                       for e in clause.effects]
            out.append(_copy(clause, effects=effects))
        elif clause.type == "duration":
            previous = out[-1] if out else None
            attached = _attach_duration(previous, clause.duration) if isinstance(previous, StatusGrant) else None
            if attached is None:
                trace.warning("Duration has no status to attach to")
                continue
            out[-1] = attached
        else:
            out.append(_copy(clause))
    return out


# -----------------------------
# Duplicate statuses
# -----------------------------

def _same_status(a, b) -> bool:
    if not (isinstance(a, StatusWithPercent) and isinstance(b, StatusWithPercent)):
        return False
    if a.status.type != "standardStatus" or b.status.type != "standardStatus":
        return False
    if (a.chance, a.duration) != (b.chance, b.duration):
        return False
    keys = ("name", "id", "is_uncertain", "placeholders")
    return all(getattr(a.status, k) == getattr(b.status, k) for k in keys)


def _merge_statuses(grant: StatusGrant) -> StatusGrant:
    merged: List[Any] = []
    for entry in grant.statuses:
        if merged and _same_status(merged[-1], entry):
            last = merged[-1]
            count = (last.status.merge_count or 1) + (entry.status.merge_count or 1)
            merged[-1] = _copy(last, status=_copy(last.status, merge_count=count))
        else:
            merged.append(_copy(entry))
    return _copy(grant, statuses=merged)


def merge_duplicate_statuses(clauses: Sequence[EffectClause], trace: Any = None) -> List[EffectClause]:
    out: List[EffectClause] = []
    for clause in clauses:
        if isinstance(clause, StatusGrant):
            out.append(_merge_statuses(clause))
        elif isinstance(clause, TriggeredEffect):
            effects = [_merge_statuses(e) if isinstance(e, StatusGrant) else _copy(e) for e in clause.effects]
            out.append(_copy(clause, effects=effects))
        else:
            out.append(_copy(clause))
    return out


PASSES: List[Pass] = [
    fold_satellites,
    separate_resource_points,
    detect_self_triggers,
    attach_durations,
    merge_duplicate_statuses,
]


def normalize(clauses: Sequence[EffectClause], trace: Any = None) -> List[EffectClause]:
    trace = ensure_trail(trace)
    result = list(clauses)
    for p in PASSES:
        result = p(result, trace)
    return result
