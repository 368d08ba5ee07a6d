from __future__ import annotations
import re
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from .models import lookup_element, lookup_school
from .parser_helpers import parse_number_list
from .schema_models import (
    Condition, CondEquipped, CondScaleWithStatusLevel, CondStatusLevel, CondIfDoomed,
    CondStatus, CondStatusList, CondConditionalEnElement, CondScaleUseCount,
    CondScaleWithUses, CondScaleWithSkillUses, CondAfterUseCount, CondAlliesAlive,
    CondCharacterAlive, CondCharacterInParty, CondFemalesInParty, CondFemalesAlive,
    CondRealmCharactersInParty, CondRealmCharactersAlive, CondCharactersAlive,
    CondAlliesJump, CondDoomTimer, CondHpBelowPercent, CondHpAtLeastPercent,
    CondSoulBreakPoints, CondTargetStatBreaks, CondTargetStatusAilments, CondVsWeak,
    CondInFrontRow, CondHitsTaken, CondAttacksTaken, CondDamagingActions,
    CondOtherAbilityUsers, CondDifferentAbilityUses, CondAbilitiesUsedDuringStatus,
    CondAbilitiesUsed, CondAttacksDuringStatus, CondDamageDuringStatus, CondRankBased,
    CondStatThreshold, CondBattleStart, SimpleRange, StandardStatus, StatusWithPercent,
    UseCountRange, UseCountSeries,
)
from .textutil import AND_OR_LIST, arrayify, format_use_count, number_slash_list, to_mrp_kilo
from .type_helpers import RenderOptions, get_element_short_name, get_short_name

# Count fragment: "3", "1/2/3" or a small number word
NUM = r"(\d+(?:/\d+)*|one|two|three|four|five|six|seven|eight|nine|ten)"

# Leading words that introduce a condition inside an effect fragment
CONDITION_START = re.compile(
    r"\s+(?=(?:if |when equipped |scaling with |at rank |at the start of |after using \S+ (?:\S+ )?times|"
    r"after using \S+ (?:different \S+ abilities|damaging actions|\S+ (?:abilities|attacks) during the status)|"
    r"vs\.? weak|against enemies weak|after taking |after dealing \S+ (?:\S+ )?damage during ))",
    re.I,
)


def _count(text: str):
    value = parse_number_list(text)
    if value is None or isinstance(value, str):
        raise ValueError(f"not a count: {text!r}")
    return value


def _names(text: str) -> List[str]:
    return [n.strip() for n in AND_OR_LIST.split(text) if n.strip()]


def _one_or_list(items: List[str]):
    return items[0] if len(items) == 1 else items


def parse_elements(text: str):
    out = []
    for part in re.split(r"/|,? or |,? and |, ", text):
        e = lookup_element(part.strip().removesuffix(" element"))
        if e is None:
            raise ValueError(f"unknown element: {part!r}")
        out.append(e)
    return _one_or_list(out)


def _school(text: str) -> str:
    s = lookup_school(text)
    if s is None:
        raise ValueError(f"unknown school: {text!r}")
    return s


def parse_schools(text: str):
    return _one_or_list([_school(s) for s in re.split(r"/|,? or |,? and |, ", text)])


def _status_has(m: re.Match):
    who = m.group(1).lower()
    negated = m.group(2).lower() != "has"
    any_of = m.group(3) is not None
    names = _names(m.group(4))
    return CondStatus(
        status=_one_or_list(names),
        who="target" if who == "target" else "self",
        any=any_of or " or " in m.group(4),
        without_with="without" if negated else None,
    )


def _status_list(m: re.Match):
    entries = []
    conj = None
    for i, name in enumerate(AND_OR_LIST.split(m.group(2))):
        entries.append(StatusWithPercent(status=StandardStatus(name=name.strip()), conj=conj if i else None))
        conj = "and"
    return CondStatusList(status=entries, who="target" if m.group(1).lower() == "target" else "self")


def _character(m: re.Match, cls, negated_words: Tuple[str, ...]):
    count, names, verb = m.group(1), m.group(2), m.group(3)
    all_of = names.lower().startswith("all of ")
    if all_of:
        names = names[len("all of "):]
    character = None if names.lower() in ("he", "she", "they") else _one_or_list(_names(names))
    kw = dict(
        count=_count(count) if count else None,
        all=all_of,
        without_with="without" if verb in negated_words else None,
    )
    if cls is CondCharacterInParty:
        return cls(character=character or "", **kw)
    return cls(character=character, **kw)


def _soul_break_points(m: re.Match):
    if m.group(2):
        return CondSoulBreakPoints(value=SimpleRange(**{"from": int(m.group(1)), "to": int(m.group(2))}))
    return CondSoulBreakPoints(value=_count(m.group(1)), plus=bool(m.group(3)))


def _after_use_count(m: re.Match):
    skill, low, high, plus = m.group(1), m.group(2), m.group(3), m.group(4)
    if high:
        use_count = UseCountRange(**{"from": int(low), "to": int(high)})
    elif plus:
        use_count = UseCountRange(**{"from": int(low)})
    else:
        use_count = UseCountRange(**{"from": int(low), "to": int(low)})
    return CondAfterUseCount(skill=skill, use_count=use_count)


# Ordered: first match wins, so narrower phrasings come before broader ones.
CONDITION_PATTERNS: List[Tuple[re.Pattern, Callable[[re.Match], Condition]]] = [
    (re.compile(r"^when equipped with (an? )?(.+)$", re.I),
     lambda m: CondEquipped(article=(m.group(1) or "").strip() or None, equipped=m.group(2))),
    (re.compile(r"^scaling with (.+?) level$", re.I),
     lambda m: CondScaleWithStatusLevel(status=m.group(1))),
    (re.compile(r"^if the user has (.+?) level " + NUM + r"(\+|(?: or higher))?$", re.I),
     lambda m: CondStatusLevel(status=m.group(1), value=_count(m.group(2)), plus=bool(m.group(3)))),
    (re.compile(r"^if the user (?:is Doomed|has Doom)$", re.I),
     lambda m: CondIfDoomed()),
    (re.compile(r"^if the user has an? (.+?) infusion$", re.I),
     lambda m: CondConditionalEnElement(element=parse_elements(m.group(1)))),
    (re.compile(r"^if the user has " + NUM + r"-(\d+) SB points$", re.I), _soul_break_points),
    (re.compile(r"^if the user has " + NUM + r"()(\+| or more)? SB points$", re.I), _soul_break_points),
    (re.compile(r"^if the (user|target) has all of (.+)$", re.I), _status_list),
    (re.compile(r"^if the target has " + NUM + r" (?:or more )?stats? lowered$", re.I),
     lambda m: CondTargetStatBreaks(count=_count(m.group(1)))),
    (re.compile(r"^if the target has " + NUM + r" (?:or more )?(?:status )?ailments$", re.I),
     lambda m: CondTargetStatusAilments(count=_count(m.group(1)))),
    (re.compile(r"^if the (user|target) (has|doesn't have|does not have) (?!used )(any )?(.+)$", re.I), _status_has),
    (re.compile(r"^scaling with " + NUM + r" uses$", re.I),
     lambda m: CondScaleUseCount(use_count=_count(m.group(1)))),
    (re.compile(r"^scaling with uses$", re.I),
     lambda m: CondScaleWithUses()),
    (re.compile(r"^scaling with (.+?) uses$", re.I),
     lambda m: CondScaleWithSkillUses(skill=m.group(1))),
    (re.compile(r"^on the " + NUM + r" uses? and every (\d+) uses after$", re.I),
     lambda m: CondAfterUseCount(use_count=UseCountSeries(x=_count(m.group(1)), y=int(m.group(2))))),
    (re.compile(r"^after using (?:(.+?) )?(\d+)(?:-(\d+))?(\+)? times$", re.I), _after_use_count),
    (re.compile(r"^if no allies are KO'd$", re.I),
     lambda m: CondAlliesAlive()),
    (re.compile(r"^if there are " + NUM + r"\+? females in the party$", re.I),
     lambda m: CondFemalesInParty(count=_count(m.group(1)))),
    (re.compile(r"^if there are " + NUM + r"\+? females alive$", re.I),
     lambda m: CondFemalesAlive(count=_count(m.group(1)))),
    (re.compile(r"^if there are " + NUM + r"\+? characters alive$", re.I),
     lambda m: CondCharactersAlive(count=_count(m.group(1)))),
    (re.compile(r"^if there are " + NUM + r"\+? (.+?) characters in the party$", re.I),
     lambda m: CondRealmCharactersInParty(count=_count(m.group(1)), realm=m.group(2))),
    (re.compile(r"^if there are " + NUM + r"(\+)? (.+?) characters alive$", re.I),
     lambda m: CondRealmCharactersAlive(count=_count(m.group(1)), plus=bool(m.group(2)), realm=m.group(3))),
    (re.compile(r"^if " + NUM + r" (?:other )?allies are in the air$", re.I),
     lambda m: CondAlliesJump(count=_count(m.group(1)))),
    (re.compile(r"^if (?:" + NUM + r" of )?(.+?) (is in the party|are in the party|is not in the party|"
                r"are not in the party)$", re.I),
     lambda m: _character(m, CondCharacterInParty, ("is not in the party", "are not in the party"))),
    (re.compile(r"^if (?:" + NUM + r" of )?(.+?) (is alive|are alive|is KO'd|are KO'd)$", re.I),
     lambda m: _character(m, CondCharacterAlive, ("is KO'd", "are KO'd"))),
    (re.compile(r"^if the user's Doom timer is below " + NUM + r"(?: seconds)?$", re.I),
     lambda m: CondDoomTimer(value=_count(m.group(1)))),
    (re.compile(r"^if the user's HP (?:is|are) below " + NUM + r"%$", re.I),
     lambda m: CondHpBelowPercent(value=_count(m.group(1)))),
    (re.compile(r"^if the user's HP (?:is|are) (?:at least|above) " + NUM + r"%$", re.I),
     lambda m: CondHpAtLeastPercent(value=_count(m.group(1)))),
    (re.compile(r"^if the user's (ATK|DEF|MAG|RES|MND|SPD|ACC|EVA) is at least " + NUM + r"$"),
     lambda m: CondStatThreshold(stat=m.group(1), value=_count(m.group(2)))),
    (re.compile(r"^(?:vs\.? weak|against enemies weak)(?: to (.+?))?$", re.I),
     lambda m: CondVsWeak(element=parse_elements(m.group(1)) if m.group(1) else None)),
    (re.compile(r"^if the user is in the front row$", re.I),
     lambda m: CondInFrontRow()),
    (re.compile(r"^after taking " + NUM + r" ((?:PHY|WHT|BLK|BLU|SUM|NAT|NIN)(?:/(?:PHY|WHT|BLK|BLU|SUM|NAT|NIN))*) hits$"),
     lambda m: CondHitsTaken(count=_count(m.group(1)), skill_type=_one_or_list(m.group(2).split("/")))),
    (re.compile(r"^after taking " + NUM + r" (?:hits|attacks)$", re.I),
     lambda m: CondAttacksTaken(count=_count(m.group(1)))),
    (re.compile(r"^after using " + NUM + r" damaging actions$", re.I),
     lambda m: CondDamagingActions(count=_count(m.group(1)))),
    (re.compile(r"^if " + NUM + r" other allies used (.+?) abilities$", re.I),
     lambda m: CondOtherAbilityUsers(count=_count(m.group(1)), school=_school(m.group(2)))),
    (re.compile(r"^after using " + NUM + r" different (.+?) abilities$", re.I),
     lambda m: CondDifferentAbilityUses(count=_count(m.group(1)), school=_school(m.group(2)))),
    (re.compile(r"^after using " + NUM + r" (.+?) abilities during the status$", re.I),
     lambda m: CondAbilitiesUsedDuringStatus(count=_count(m.group(1)), school=parse_schools(m.group(2)))),
    (re.compile(r"^after using " + NUM + r" (.+?) attacks during the status$", re.I),
     lambda m: CondAttacksDuringStatus(count=_count(m.group(1)), element=parse_elements(m.group(2)))),
    (re.compile(r"^(?:after using|if the user has used) " + NUM + r" (.+?) abilities$", re.I),
     lambda m: CondAbilitiesUsed(count=_count(m.group(1)), school=parse_schools(m.group(2)))),
    (re.compile(r"^after dealing " + NUM + r"(?: (.+?))? damage during the status$", re.I),
     lambda m: CondDamageDuringStatus(value=_count(m.group(1)),
                                      element=parse_elements(m.group(2)) if m.group(2) else None)),
    (re.compile(r"^(?:at rank 1-5|scaling with rank|at rank " + NUM + r")$", re.I),
     lambda m: CondRankBased()),
    (re.compile(r"^at the start of (?:the )?battle$", re.I),
     lambda m: CondBattleStart()),
]


def parse_condition(text: str) -> Optional[Condition]:
    """Returns the first matching condition, or None if the text is not a known condition."""
    text = text.strip().rstrip(".")
    for pattern, build in CONDITION_PATTERNS:
        m = pattern.match(text)
        if not m:
            continue
        try:
            return build(m)
        except (ValueError, ValidationError):
            # Matched the shape but not the vocabulary; try the broader phrasings
            continue
    return None


def split_condition(text: str) -> Tuple[str, Optional[str]]:
    """Split "grants Haste if the user has Protect" into effect text and condition text."""
    m = CONDITION_START.search(text)
    if not m:
        return text, None
    return text[:m.start()], text[m.end():]


def _n(value) -> str:
    return number_slash_list(value)


def _plus(plus: bool) -> str:
    return "+" if plus else ""


def _school_text(school) -> str:
    return "/".join(get_short_name(s) for s in arrayify(school))


def describe_condition(cond: Condition,
                       options: Optional[RenderOptions] = None,
                       status_name: Callable[[str], str] = lambda s: s) -> str:
    """
    Renders a condition as a notation suffix ("if Haste", "w/ 1/2/3 uses").
    Returns "" when the condition is implied by the render context.
    """
    options = options or RenderOptions()
    t = cond.type

    if t == "equipped":
        return "if using " + (f"{cond.article} " if cond.article else "") + cond.equipped
    elif t == "scaleWithStatusLevel":
        return f"w/ {status_name(cond.status)} lvl"
    elif t == "statusLevel":
        return f"at {status_name(cond.status)} lvl {_n(cond.value)}{_plus(cond.plus)}"
    elif t == "ifDoomed":
        return "if Doomed"
    elif t == "status":
        names = arrayify(cond.status)
        if (cond.who == "self" and not cond.without_with and options.prereq_status
                and names == [options.prereq_status]):
            return ""
        text = ("/" if cond.any else "+").join(status_name(n) for n in names)
        if cond.who == "target":
            return ("vs. non-" if cond.without_with == "without" else "vs. ") + text
        if cond.without_with == "without":
            return "if no " + text
        if cond.without_with == "withoutWith":
            return "if no/w/ " + text
        return "if " + text
    elif t == "statusList":
        text = "+".join(status_name(s.status.name) for s in cond.status)
        return ("vs. " if cond.who == "target" else "if ") + text
    elif t == "conditionalEnElement":
        return f"w/ {get_element_short_name(cond.element, '/')} infuse"
    elif t == "scaleUseCount":
        return f"w/ {_n(cond.use_count)} uses"
    elif t == "scaleWithUses":
        return "w/ uses"
    elif t == "scaleWithSkillUses":
        return f"w/ {cond.skill} uses"
    elif t == "afterUseCount":
        return f"at {format_use_count(cond.use_count)} " + (f"{cond.skill} " if cond.skill else "") + "uses"
    elif t == "alliesAlive":
        return "if no allies KO"
    elif t == "characterAlive":
        who = "+".join(arrayify(cond.character)) if cond.character else "char."
        prefix = "all " if cond.all else f"{_n(cond.count)} of " if cond.count is not None else ""
        return f"if {prefix}{who} " + ("KO'd" if cond.without_with == "without" else "alive")
    elif t == "characterInParty":
        who = "+".join(arrayify(cond.character))
        prefix = "all " if cond.all else f"{_n(cond.count)} of " if cond.count is not None else ""
        return ("if no " if cond.without_with == "without" else "if ") + f"{prefix}{who} in party"
    elif t == "femalesInParty":
        return f"if {_n(cond.count)} females in party"
    elif t == "femalesAlive":
        return f"if {_n(cond.count)} females alive"
    elif t == "realmCharactersInParty":
        return f"if {_n(cond.count)} {cond.realm} chars. in party"
    elif t == "realmCharactersAlive":
        return f"if {_n(cond.count)}{_plus(cond.plus)} {cond.realm} chars. alive"
    elif t == "charactersAlive":
        return f"if {_n(cond.count)} chars. alive"
    elif t == "alliesJump":
        return f"if {_n(cond.count)} allies in air"
    elif t == "doomTimer":
        return f"at <{_n(cond.value)}s Doom"
    elif t == "hpBelowPercent":
        return f"if HP <{_n(cond.value)}%"
    elif t == "hpAtLeastPercent":
        return f"if HP ≥{_n(cond.value)}%"
    elif t == "soulBreakPoints":
        if isinstance(cond.value, SimpleRange):
            return f"if {cond.value.from_}-{cond.value.to} SB pts"
        return f"if {'≥' if cond.plus else ''}{_n(cond.value)} SB pts"
    elif t == "targetStatBreaks":
        return f"vs. {_n(cond.count)} stats lowered"
    elif t == "targetStatusAilments":
        return f"vs. {_n(cond.count)} ailments"
    elif t == "vsWeak":
        return "vs. weak" + (f" {get_element_short_name(cond.element, '/')}" if cond.element else "")
    elif t == "inFrontRow":
        return "if in front row"
    elif t == "hitsTaken":
        return f"after {_n(cond.count)} {'/'.join(arrayify(cond.skill_type))} hits taken"
    elif t == "attacksTaken":
        return f"after {_n(cond.count)} attacks taken"
    elif t == "damagingActions":
        return f"after {_n(cond.count)} dmg actions"
    elif t == "otherAbilityUsers":
        return f"if {_n(cond.count)} other {_school_text(cond.school)} users"
    elif t == "differentAbilityUses":
        return f"after {_n(cond.count)} different {_school_text(cond.school)} abils."
    elif t == "abilitiesUsedDuringStatus":
        return f"after {_n(cond.count)} {_school_text(cond.school)} abils. during status"
    elif t == "abilitiesUsed":
        return f"after {_n(cond.count)} {_school_text(cond.school)} abils."
    elif t == "attacksDuringStatus":
        return f"after {_n(cond.count)} {get_element_short_name(cond.element, '/')} attacks during status"
    elif t == "damageDuringStatus":
        element = f"{get_element_short_name(cond.element, '/')} " if cond.element else ""
        return f"after {number_slash_list(cond.value, to_mrp_kilo)} {element}dmg during status"
    elif t == "rankBased":
        return "at rank 1-5"
    elif t == "statThreshold":
        return f"if {cond.stat} ≥{_n(cond.value)}"
    elif t == "battleStart":
        return "at battle start"
    raise ValueError(f"Unsupported condition {t}")
