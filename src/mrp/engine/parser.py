from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from .conditions import parse_condition, parse_elements, split_condition
from .models import AbilityMetadata, StatusPlaceholders, StatusTable, lookup_element, lookup_school
from .parser_helpers import (
    add_condition, parse_number, parse_number_list, peg_list, split_list, strip_uncertain,
)
from .schema_models import (
    AbilityTrigger, Attack, AttackExtras, CastSkill, CritTrigger, DamagedTrigger,
    DamagesUndead, DispelOrEsuna, Duration, EffectClause, GainResourcePoints, Heal,
    HealPercent, LowHpTrigger, Options, RemovedAfterTrigger, SkillTrigger, SmartEtherStatus,
    StandaloneAttackExtra, StandaloneDuration, StandaloneHitRate, StandardStatus, StatusGrant,
    StatusLevel, StatusRemoval, StatusWithPercent, Trigger, TriggeredEffect, UnparsedFragment,
)
from .trace import ensure_trail

NUMBER_WORD = r"(?:one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve)"
COUNT = r"(?:\d+|" + NUMBER_WORD + r")(?:/(?:\d+|" + NUMBER_WORD + r"))*"
VALUE = r"(?:\d+(?:\.\d+)?\??(?:/\d+(?:\.\d+)?\??)*|-?X)"

WHO_PHRASES = {
    "the user": "self",
    "user": "self",
    "the target": "target",
    "target": "target",
    "all enemies": "enemies",
    "all allies": "party",
    "the party": "party",
    "allies in the same row": "sameRow",
    "allies in the front row": "frontRow",
    "allies in the back row": "backRow",
    "the ally with the lowest HP%": "lowestHpAlly",
    "a random ally without status": "allyWithoutStatus",
    "a random ally with negative effects": "allyWithNegativeStatus",
    "a random KO'd ally": "allyWithKO",
    "an ally": "ally",
    "a single ally": "ally",
    "the summon": "summonCharacter",
}

CLAUSE_HEAD = re.compile(
    r"^(?:(?:" + COUNT + r")\s+)?(?:single|group|random)\b|"
    r"^(?:\d+% chance to |grants?\b|causes?\b|removes?\b|restores?\b|heals?\b|casts?\b|randomly casts\b|"
    r"damages undead|removed after|for \d|\d+% hit rate|minimum damage|always deals|ignores reflect|"
    r"\d+(?:/\d+)*% additional critical|esuna\b|dispel\b)",
    re.I,
)
TRIGGERABLE_HEAD = re.compile(r"^(?:\d+% chance to |randomly casts |casts? |grants? |causes? |restores? |heals? |removes? )", re.I)
TRIGGER_SPLIT = re.compile(r"^(?P<effects>.+?) (?:after|when) (?!equipped)(?P<trigger>.+)$", re.I)

_TOP_SEPARATORS = re.compile(r";\s+|,\s+then\s+|\.\s+(?=[A-Z])")
_PIECE_SEPARATORS = re.compile(r",\s+and\s+|,\s+|\s+and\s+")
_STATUS_LIST = re.compile(r",? and |,? or |, |(?<=[a-z])/(?=[A-Z])")
_BARE_STAT = re.compile(r"^(?:ATK|DEF|MAG|RES|MND|SPD)$")

_ATTACK = re.compile(
    r"^(?:(?P<count>" + COUNT + r")\s+)?(?P<scope>single|group|random)\s+(?P<ranged>ranged\s+)?"
    r"(?P<jump>jump\s+)?attacks?\s+\((?P<mult>[^)]*?)(?: each)?\)(?P<rest>.*)$",
    re.I,
)
_ATTACK_CAP = re.compile(r"^,? capped at (\d+)", re.I)
_ATTACK_HIT_RATE = re.compile(r"^,? with (\d+)% hit rate", re.I)
_ATTACK_ELEMENT = re.compile(r"^ of ([A-Za-z]+(?:/[A-Za-z]+)*) element", re.I)
_ATTACK_FOLLOWED_BY = re.compile(r"^,? followed by (.+)$", re.I)

_HIT_RATE = re.compile(r"^(\d+)% hit rate$", re.I)
_MIN_DAMAGE = re.compile(r"^minimum damage (\d+)$", re.I)
_ALWAYS_CRITS = re.compile(r"^always deals a critical hit$", re.I)
_IGNORES_REFLECT = re.compile(r"^ignores reflect$", re.I)
_CRIT_CHANCE = re.compile(r"^(" + VALUE + r")% additional critical chance$", re.I)

_GRANT = re.compile(r"^(?:(?P<chance>\d+)% chance to )?(?P<verb>grant|cause)s? (?P<rest>.+)$", re.I)
_SUFFIX_DURATION = re.compile(r"^(?P<head>.+) for (?P<value>\d+(?:\.\d+)?\??) (?P<units>seconds?|turns?)$", re.I)
_SUFFIX_WHO = re.compile(r"^(?P<head>.+) to (?P<who>.+)$", re.I)
_SUFFIX_PER_USES = re.compile(r"^(?P<head>.+) (?:once )?per (?P<uses>\d+) uses$", re.I)
_ITEM_CHANCE = re.compile(r"^(?P<status>.+?) \((?P<chance>\d+)%\)$")
_ITEM_DURATION = re.compile(r"^(?P<status>.+?) for (?P<value>\d+(?:\.\d+)?\??) (?P<units>seconds?|turns?)$", re.I)
_SB_POINTS = re.compile(r"^(" + VALUE + r") SB points$", re.I)
_STATUS_LEVEL_MODIFY = re.compile(r"^(?P<value>[+-]?(?:\d+|X)) (?P<name>.+?) levels?(?: \(max (?P<max>\d+)\))?$")
_STATUS_LEVEL_SET = re.compile(r"^(?P<name>.+?) level (?P<value>\d+)$")
_SMART_ETHER = re.compile(r"^(?:(?P<school>.+?) )?smart ether (?P<amount>" + VALUE + r")$", re.I)
_PLACEHOLDER_NUMBER = re.compile(r"\d+(?:\.\d+)?(?:/\d+(?:\.\d+)?)*")

_DISPEL = re.compile(r"^removes (?P<kind>negative|positive) (?:status )?effects(?: from (?P<who>.+?))?"
                     r"(?: (?:once )?per (?P<uses>\d+) uses)?$", re.I)
_ESUNA_DISPEL = re.compile(r"^(?P<kind>esuna|dispel)$", re.I)
_REMOVAL = re.compile(r"^removes (?P<list>.+?)(?: from (?P<who>.+))?$", re.I)
_HEAL = re.compile(r"^restores HP \((?P<amount>" + VALUE + r")\)(?: to (?P<who>.+))?$", re.I)
_HEAL_PERCENT = re.compile(r"^(?:restores (?P<a>" + VALUE + r")% HP(?: to (?P<who1>.+))?|"
                           r"heals (?P<who2>.+?) for (?P<b>" + VALUE + r")% of (?:their )?max HP)$", re.I)
_DAMAGES_UNDEAD = re.compile(r"^damages undead$", re.I)
_STANDALONE_DURATION = re.compile(r"^for (?P<value>\d+(?:\.\d+)?\??) (?P<units>seconds?|turns?)$", re.I)
_REMOVED_AFTER = re.compile(r"^removed (?:after|when) (?P<trigger>.+)$", re.I)
_CAST = re.compile(r"^(?P<random>randomly )?casts? (?P<skill>.+)$", re.I)
_CHANCE_TO = re.compile(r"^(?P<chance>\d+)% chance to (?P<rest>.+)$", re.I)

_TRIGGER_ABILITY_ONE = re.compile(r"^using an? (?P<what>.+?) (?:ability|attack)$", re.I)
_TRIGGER_ABILITY_COUNT = re.compile(r"^using (?P<count>" + COUNT + r") (?P<what>.+?) (?:abilities|attacks)$", re.I)
_TRIGGER_SKILL = re.compile(r"^(?:using|the user uses) (?P<skill>.+?)(?: (?P<count>" + COUNT + r") times)?$", re.I)
_TRIGGER_DAMAGED = re.compile(r"^(?:the user is )?damaged(?: by (?P<types>[A-Z]{3}(?:/[A-Z]{3})*) attacks?)?$")
_TRIGGER_LOW_HP = re.compile(r"^(?:the user's )?HP (?:falls|drops) below (?P<value>\d+)%$", re.I)
_TRIGGER_CRIT = re.compile(r"^(?:dealing|the user deals) a critical hit$", re.I)


@dataclass
class ParseResult:
    clauses: List[EffectClause] = field(default_factory=list)
    is_uncertain: bool = False
    # True only when nothing in the text matched a known template
    failed: bool = False


@dataclass
class _Context:
    ability: Optional[AbilityMetadata]
    status_table: Optional[StatusTable]
    trace: Any
    uncertain: bool = False


def normalize_text(text: str) -> str:
    text = re.sub(r"\s+", " ", text or "").strip()
    return text[:-1] if text.endswith(".") else text


def _split_top_level(text: str, pattern: re.Pattern) -> List[Tuple[str, str]]:
    """Split outside parentheses, returning (separator-before, piece) pairs."""
    out: List[Tuple[str, str]] = []
    sep, pos = "", 0
    for m in pattern.finditer(text):
        prefix = text[:m.start()]
        if prefix.count("(") != prefix.count(")"):
            continue
        out.append((sep, text[pos:m.start()]))
        sep, pos = m.group(0), m.end()
    out.append((sep, text[pos:]))
    return [(s, p) for s, p in out if p.strip()]


def _continues_trigger(current: str, piece: str) -> bool:
    return bool(TRIGGERABLE_HEAD.match(current) and TRIGGER_SPLIT.match(piece)
                and not TRIGGER_SPLIT.match(current))


def split_fragments(text: str) -> List[str]:
    """
    Cut a description into clause-sized fragments. Pieces that do not start a
    new clause are list continuations and stay with the previous fragment.
    """
    fragments: List[str] = []
    for _sep, sentence in _split_top_level(text, _TOP_SEPARATORS):
        pieces = _split_top_level(sentence, _PIECE_SEPARATORS)
        if not pieces:
            continue
        current = pieces[0][1]
        for sep, piece in pieces[1:]:
            if CLAUSE_HEAD.match(piece) and not _continues_trigger(current, piece):
                fragments.append(current.strip())
                current = piece
            else:
                current += sep + piece
        fragments.append(current.strip())
    return [f for f in fragments if f]


def parse_who(text: Optional[str]):
    if not text:
        return None
    text = text.strip()
    if text in WHO_PHRASES:
        return WHO_PHRASES[text]
    return WHO_PHRASES.get(text.lower())


def _value(text: str, ctx: _Context):
    """Parses a value-or-placeholder, noting a trailing "?" as uncertainty."""
    if text.strip() in ("X", "-X"):
        return text.strip()
    uncertain = "?" in text and text.strip() != "?"
    value = parse_number_list(text.replace("?", "") if uncertain else text)
    if value is None:
        return None
    if uncertain:
        ctx.uncertain = True
    return value


def _duration(value: str, units: str) -> Duration:
    text, uncertain = strip_uncertain(value)
    return Duration(
        value=parse_number(text),
        value_is_uncertain=uncertain,
        units="turns" if units.lower().startswith("turn") else "seconds",
    )


# -----------------------------
# Statuses
# -----------------------------

def resolve_status(name: str, ctx: _Context) -> StandardStatus:
    name, uncertain = strip_uncertain(name)
    if uncertain:
        ctx.uncertain = True
    table = ctx.status_table
    if table is None:
        return StandardStatus(name=name, is_uncertain=uncertain)

    record = table.get(name)
    if record is not None:
        return StandardStatus(name=name, id=record.id, is_uncertain=uncertain, placeholders=record.placeholders)

    # "+30% ATK" -> "+X% ATK"
    m = _PLACEHOLDER_NUMBER.search(name)
    if m:
        record = table.get(name[:m.start()] + "X" + name[m.end():])
        if record is not None:
            x_value = [float(v) for v in m.group(0).split("/")]
            placeholders = StatusPlaceholders(
                x_value=x_value[0] if len(x_value) == 1 else x_value,
                x_value_is_uncertain=uncertain,
            )
            return StandardStatus(name=name, id=record.id, is_uncertain=uncertain, placeholders=placeholders)

    # "Attach Fire" -> "Attach Element"
    for word in name.split(" "):
        element = lookup_element(word)
        if element is not None and element != "NE":
            record = table.get(name.replace(word, "Element", 1))
            if record is not None:
                return StandardStatus(name=name, id=record.id, is_uncertain=uncertain,
                                      placeholders=StatusPlaceholders(element=element))

    ctx.trace.info("Unknown status", status=name)
    ctx.uncertain = True
    return StandardStatus(name=name, is_uncertain=True)


def parse_status_item(text: str, ctx: _Context):
    text = text.strip()
    m = _SB_POINTS.match(text)
    if m:
        points = _value(m.group(1), ctx)
        return GainResourcePoints(points=points) if points is not None else None

    chance = duration = None
    m = _ITEM_CHANCE.match(text)
    if m:
        text, chance = m.group("status"), int(m.group("chance"))
    m = _ITEM_DURATION.match(text)
    if m:
        text, duration = m.group("status"), _duration(m.group("value"), m.group("units"))

    m = _SMART_ETHER.match(text)
    if m:
        school = lookup_school(m.group("school")) if m.group("school") else None
        amount = _value(m.group("amount"), ctx)
        if (m.group("school") is None or school is not None) and amount is not None:
            return StatusWithPercent(status=SmartEtherStatus(amount=amount, school=school),
                                     chance=chance, duration=duration)

    m = _STATUS_LEVEL_MODIFY.match(text)
    if m:
        raw = m.group("value")
        value = raw.lstrip("+") if raw.lstrip("+") in ("X", "-X") else int(raw)
        level = StatusLevel(name=m.group("name"), value=value,
                            max=int(m.group("max")) if m.group("max") else None)
        return StatusWithPercent(status=level, chance=chance, duration=duration)
    m = _STATUS_LEVEL_SET.match(text)
    if m:
        level = StatusLevel(name=m.group("name"), value=int(m.group("value")), set=True)
        return StatusWithPercent(status=level, chance=chance, duration=duration)

    return StatusWithPercent(status=resolve_status(text, ctx), chance=chance, duration=duration)


def _join_stat_lists(items: List[Tuple[str, Optional[str]]]) -> List[Tuple[str, Optional[str]]]:
    """Keeps "+30% ATK and MAG" as one status: a bare stat belongs to the stat mod before it."""
    out: List[Tuple[str, Optional[str]]] = []
    for item, conj in items:
        if out and conj in ("and", ",") and _BARE_STAT.match(item):
            prev, prev_conj = out[-1]
            out[-1] = (prev + (" and " if conj == "and" else ", ") + item, prev_conj)
        else:
            out.append((item, conj))
    return out


def parse_status_list(text: str, ctx: _Context) -> Optional[list]:
    items = _join_stat_lists(split_list(text, _STATUS_LIST))
    if not items:
        return None
    entries = []
    for item, conj in items:
        entry = parse_status_item(item, ctx)
        if entry is None:
            return None
        entries.append(entry.model_copy(update={"conj": conj}) if conj else entry)
    head, tail = entries[0], [(None, e) for e in entries[1:]]
    return peg_list(head, tail, 1)


def _strip_suffixes(rest: str) -> Tuple[str, dict]:
    """Peel trailing "for N seconds", "to <who>" and "per N uses" off a grant, in any order."""
    found: dict = {}
    changed = True
    while changed:
        changed = False
        m = _SUFFIX_DURATION.match(rest)
        if m and "duration" not in found:
            found["duration"] = _duration(m.group("value"), m.group("units"))
            rest, changed = m.group("head"), True
            continue
        m = _SUFFIX_PER_USES.match(rest)
        if m and "per_uses" not in found:
            found["per_uses"] = int(m.group("uses"))
            rest, changed = m.group("head"), True
            continue
        m = _SUFFIX_WHO.match(rest)
        if m and "who" not in found and "to_character" not in found:
            who = parse_who(m.group("who"))
            if who is not None:
                found["who"] = who
            elif m.group("who")[:1].isupper():
                names = [n for n, _c in split_list(m.group("who"), _STATUS_LIST)]
                found["to_character"] = names[0] if len(names) == 1 else names
            else:
                break
            rest, changed = m.group("head"), True
    return rest, found


def parse_status_grant(text: str, ctx: _Context):
    m = _GRANT.match(text)
    if not m:
        return None
    rest, suffixes = _strip_suffixes(m.group("rest"))
    statuses = parse_status_list(rest, ctx)
    if not statuses:
        return None
    if m.group("chance"):
        chance = int(m.group("chance"))
        statuses = [s.model_copy(update={"chance": chance}) if s.type == "statusWithPercent" and s.chance is None
                    else s for s in statuses]

    # A lone SB point gain is its own clause
    if len(statuses) == 1 and statuses[0].type == "gainSbPoints" and not suffixes.get("duration"):
        return statuses[0].model_copy(update={"who": suffixes.get("who")})

    return StatusGrant(
        verb="causes" if m.group("verb").lower() == "cause" else "grants",
        statuses=statuses,
        **suffixes,
    )


def parse_status_removal(text: str, ctx: _Context):
    m = _DISPEL.match(text)
    if m:
        return DispelOrEsuna(
            dispel_or_esuna=m.group("kind").lower(),
            who=parse_who(m.group("who")),
            per_uses=int(m.group("uses")) if m.group("uses") else None,
        )
    m = _ESUNA_DISPEL.match(text)
    if m:
        return DispelOrEsuna(dispel_or_esuna="negative" if m.group("kind").lower() == "esuna" else "positive")
    m = _REMOVAL.match(text)
    if m:
        statuses = parse_status_list(m.group("list"), ctx)
        if not statuses or any(s.type != "statusWithPercent" for s in statuses):
            return None
        return StatusRemoval(statuses=statuses, who=parse_who(m.group("who")))
    return None


def parse_heal(text: str, ctx: _Context):
    m = _HEAL.match(text)
    if m:
        amount = _value(m.group("amount"), ctx)
        return Heal(amount=amount, who=parse_who(m.group("who"))) if amount is not None else None
    m = _HEAL_PERCENT.match(text)
    if m:
        amount = _value(m.group("a") or m.group("b"), ctx)
        if amount is None:
            return None
        return HealPercent(heal_percent=amount, who=parse_who(m.group("who1") or m.group("who2")))
    return None


# -----------------------------
# Attacks
# -----------------------------

def parse_attack(text: str, ctx: _Context) -> Optional[Attack]:
    m = _ATTACK.match(text)
    if not m:
        return None
    count = parse_number_list(m.group("count")) if m.group("count") else 1
    multiplier_text, multiplier_uncertain = strip_uncertain(m.group("mult"))
    multiplier = _value(multiplier_text, ctx)
    if count is None or multiplier is None:
        return None

    fields: dict = dict(
        count=count,
        multiplier=multiplier,
        scope=m.group("scope").lower(),
        is_ranged=bool(m.group("ranged")),
        is_jump=bool(m.group("jump")),
        is_uncertain=multiplier_uncertain,
    )
    rest = m.group("rest")
    while rest:
        m = _ATTACK_CAP.match(rest)
        if m:
            fields["damage_cap"] = int(m.group(1))
            rest = rest[m.end():]
            continue
        m = _ATTACK_HIT_RATE.match(rest)
        if m:
            fields["hit_rate"] = int(m.group(1))
            rest = rest[m.end():]
            continue
        m = _ATTACK_ELEMENT.match(rest)
        if m:
            try:
                elements = parse_elements(m.group(1))
            except ValueError:
                break
            fields["override_element"] = elements if isinstance(elements, list) else [elements]
            rest = rest[m.end():]
            continue
        m = _ATTACK_FOLLOWED_BY.match(rest)
        if m:
            followed_by = parse_attack(m.group(1), ctx)
            if followed_by is None:
                break
            fields["followed_by"] = followed_by
            rest = ""
            continue
        break

    if rest.strip():
        ctx.trace.warning("Unrecognized attack detail", text=rest.strip())
        fields["is_uncertain"] = True
    return Attack(**fields)


def parse_attack_satellite(text: str, ctx: _Context):
    m = _HIT_RATE.match(text)
    if m:
        return StandaloneHitRate(hit_rate=int(m.group(1)))
    if _MIN_DAMAGE.match(text):
        return StandaloneAttackExtra(extras=AttackExtras(min_damage=int(_MIN_DAMAGE.match(text).group(1))))
    if _ALWAYS_CRITS.match(text):
        return StandaloneAttackExtra(extras=AttackExtras(always_crits=True))
    if _IGNORES_REFLECT.match(text):
        return StandaloneAttackExtra(extras=AttackExtras(ignores_reflect=True))
    m = _CRIT_CHANCE.match(text)
    if m:
        chance = _value(m.group(1), ctx)
        if isinstance(chance, (int, float, list)):
            return StandaloneAttackExtra(extras=AttackExtras(crit_chance=chance))
    return None


# -----------------------------
# Triggers
# -----------------------------

def _ability_descriptor(what: str):
    schools, elements, jump = [], [], False
    for part in re.split(r"/|,? or |,? and |, ", what):
        part = part.strip()
        if part.lower() == "jump":
            jump = True
        elif lookup_school(part):
            schools.append(lookup_school(part))
        elif lookup_element(part):
            elements.append(lookup_element(part))
        else:
            return None
    return schools, elements, jump


def parse_trigger(text: str) -> Optional[Trigger]:
    text = text.strip()
    for pattern in (_TRIGGER_ABILITY_ONE, _TRIGGER_ABILITY_COUNT):
        m = pattern.match(text)
        if m:
            descriptor = _ability_descriptor(m.group("what"))
            if descriptor is not None:
                schools, elements, jump = descriptor
                count = parse_number_list(m.group("count")) if "count" in m.groupdict() else None
                return AbilityTrigger(school=schools or None, element=elements or None, count=count, jump=jump)
    m = _TRIGGER_DAMAGED.match(text)
    if m:
        return DamagedTrigger(skill_type=m.group("types").split("/") if m.group("types") else None)
    m = _TRIGGER_LOW_HP.match(text)
    if m:
        return LowHpTrigger(value=int(m.group("value")))
    if _TRIGGER_CRIT.match(text):
        return CritTrigger()
    m = _TRIGGER_SKILL.match(text)
    if m:
        count = parse_number_list(m.group("count")) if m.group("count") else None
        return SkillTrigger(skill=m.group("skill"), count=count)
    return None


def parse_cast(text: str) -> Optional[CastSkill]:
    m = _CAST.match(text)
    if not m:
        return None
    skill_text = m.group("skill").strip()
    if m.group("random") or " or " in skill_text:
        names = [n for n, _c in split_list(skill_text, re.compile(r",? or |, |/"))]
        return CastSkill(skill=Options[str](options=names))
    names = [n for n, _c in split_list(skill_text, re.compile(r",? and |, "))]
    return CastSkill(skill=names[0] if len(names) == 1 else names)


def parse_triggerable(text: str, ctx: _Context):
    return (
        parse_cast(text)
        or parse_status_grant(text, ctx)
        or parse_heal(text, ctx)
        or parse_status_removal(text, ctx)
    )


_INNER_SPLIT = re.compile(r",? and (?=(?:randomly )?(?:cast|grant|cause|restore|heal|remove)s? )|, (?=(?:randomly )?"
                          r"(?:cast|grant|cause|restore|heal|remove)s? )", re.I)


def parse_triggered_effect(text: str, ctx: _Context) -> Optional[TriggeredEffect]:
    m = TRIGGER_SPLIT.match(text)
    if not m:
        return None
    trigger = parse_trigger(m.group("trigger"))
    if trigger is None:
        return None
    effects_text = m.group("effects")
    chance = None
    cm = _CHANCE_TO.match(effects_text)
    if cm:
        chance = int(cm.group("chance"))
        effects_text = cm.group("rest")

    effects = []
    uncertain = False
    for part in _INNER_SPLIT.split(effects_text):
        effect = parse_triggerable(part.strip(), ctx)
        if effect is None:
            ctx.trace.warning("Unparsed triggered effect", text=part.strip())
            uncertain = True
            continue
        effects.append(effect)
    if not effects:
        return None
    return TriggeredEffect(trigger=trigger, effects=effects, chance=chance, is_uncertain=uncertain)


def parse_removed_after(text: str) -> Optional[RemovedAfterTrigger]:
    m = _REMOVED_AFTER.match(text)
    if not m:
        return None
    trigger = parse_trigger(m.group("trigger"))
    return RemovedAfterTrigger(trigger=trigger) if trigger is not None else None


def parse_standalone_duration(text: str) -> Optional[StandaloneDuration]:
    m = _STANDALONE_DURATION.match(text)
    if not m:
        return None
    return StandaloneDuration(duration=_duration(m.group("value"), m.group("units")))


# -----------------------------
# Entry points
# -----------------------------

def parse_effect(text: str, ctx: _Context):
    if _DAMAGES_UNDEAD.match(text):
        return DamagesUndead()
    return (
        parse_removed_after(text)
        or parse_triggered_effect(text, ctx)
        or parse_attack(text, ctx)
        or parse_attack_satellite(text, ctx)
        or parse_standalone_duration(text)
        or parse_triggerable(text, ctx)
    )


def _parse_checked(text: str, ctx: _Context):
    try:
        return parse_effect(text, ctx)
    except ValidationError as e:
        ctx.trace.warning("Invalid clause values", text=text, error=str(e.errors()[0]["msg"]))
        return None


def parse_fragment(fragment: str, ctx: _Context):
    effect_text, condition_text = split_condition(fragment)
    clause = _parse_checked(effect_text, ctx)
    if clause is None and condition_text is not None:
        # "removed after using Meteor 3 times" reads as a trigger, not a condition
        clause = _parse_checked(fragment, ctx)
        condition_text = None
    if clause is None:
        return None
    if condition_text is None:
        return clause

    condition = parse_condition(condition_text)
    if condition is None:
        ctx.trace.warning("Unknown condition", text=condition_text)
        ctx.uncertain = True
        return clause
    if "condition" not in type(clause).model_fields:
        ctx.trace.warning("Condition on a clause that takes none", clause=clause.type, text=condition_text)
        ctx.uncertain = True
        return clause
    return add_condition(clause, condition)


def parse_description(text: str,
                      ability: Optional[AbilityMetadata] = None,
                      status_table: Optional[StatusTable] = None,
                      trace: Any = None) -> ParseResult:
    """
    Parse an effect description into clauses. Never raises for content
    problems: unmatched fragments come back as uncertain UnparsedFragment
    clauses, and a text with no recognizable fragment at all is reported as
    failed.
    """
    trace = ensure_trail(trace)
    text = normalize_text(text)
    if not text:
        return ParseResult()

    ctx = _Context(ability=ability, status_table=status_table, trace=trace)
    clauses: List[EffectClause] = []
    matched = 0
    for fragment in split_fragments(text):
        clause = parse_fragment(fragment, ctx)
        if clause is None:
            trace.warning("Unparsed fragment", text=fragment)
            clause = UnparsedFragment(text=fragment)
        else:
            matched += 1
        clauses.append(clause)

    if not matched:
        return ParseResult(clauses=[UnparsedFragment(text=text)], is_uncertain=True, failed=True)

    uncertain = ctx.uncertain or any(getattr(c, "is_uncertain", False) for c in clauses)
    return ParseResult(clauses=clauses, is_uncertain=uncertain)
