from __future__ import annotations
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .conditions import describe_condition
from .merge import slash_merge
from .models import AbilityMetadata
from .schema_models import (
    Attack, AttackExtras, CastSkill, DispelOrEsuna, Duration, EffectClause, GainResourcePoints,
    Heal, HealPercent, Options, RemovedAfterTrigger, StatusGrant, StatusRemoval, Trigger, TriggeredEffect,
)
from .textutil import (
    arrayify, number_or_unknown, number_slash_list, signed_number_slash_list, to_mrp_fixed, to_mrp_kilo,
)
from .trace import ensure_trail
from .type_helpers import (
    RenderOptions, append_element, append_per_uses, damage_type_abbreviation, format_school_or_ability_list,
    format_who, get_damage_type, get_element_abbreviation, get_element_short_name, get_school_short_name,
)

CLAUSE_SEPARATOR = ", "
TRIGGER_ARROW = "⤇"

STATUS_ALIASES: Dict[str, str] = {
    "Burst Mode": "Burst",
    "Brave Mode": "Brave",
    "Last Stand": "Last stand",
    "Instant KO": "KO",
    "Critical Hit": "crit",
    "Sentinel": "taunt PHY/BLK, +200% DEF",
}

# Numbered aliases: the captured values are substituted into the short form
STATUS_ALIAS_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^High Quick Cast(?: (\d+))?$"), r"hi fastcast \1"),
    (re.compile(r"^Quick Cast(?: (\d+))?$"), r"fastcast \1"),
    (re.compile(r"^Instant Cast (\d+)$"), r"instacast \1"),
    (re.compile(r"^Instant ATB (\d+)$"), r"instant ATB \1"),
    (re.compile(r"^Critical Chance (\d+(?:/\d+)*)%$"), r"\1% crit"),
    (re.compile(r"^Reraise: (\d+)%$"), r"Reraise \1%"),
    (re.compile(r"^([+-]\d+(?:/\d+)*%) ((?:ATK|DEF|MAG|RES|MND|SPD)(?:(?:/|, | and )(?:ATK|DEF|MAG|RES|MND|SPD))*)$"),
     r"\1 \2"),
    (re.compile(r"^Damage Cap \+(\d+)$"), r"dmg cap +\1"),
]

_STAT_LIST_SEPARATOR = re.compile(r", | and ")


def status_alias(name: str) -> str:
    if name in STATUS_ALIASES:
        return STATUS_ALIASES[name]
    for pattern, replacement in STATUS_ALIAS_PATTERNS:
        m = pattern.match(name)
        if m:
            text = m.expand(replacement).strip()
            return _STAT_LIST_SEPARATOR.sub("/", text)
    return name


class Formatter:
    """
    Renders a normalized clause list to notation. One instance per call;
    related abilities are rendered through the describe_skill callback.
    """

    def __init__(
        self,
        ability: Optional[AbilityMetadata] = None,
        options: Optional[RenderOptions] = None,
        describe_skill: Optional[Callable[[str], Optional[str]]] = None,
        trace: Any = None,
    ):
        self.ability = ability
        self.options = options or RenderOptions()
        self.describe_skill = describe_skill
        self.trace = ensure_trail(trace)

    # ---- small pieces ----

    def _condition(self, condition) -> str:
        if condition is None:
            return ""
        text = describe_condition(condition, self.options, status_alias)
        return " " + text if text else ""

    def _who(self, who, to_character=None) -> str:
        if to_character:
            return "/".join(arrayify(to_character)) + " "
        if not who:
            return ""
        return format_who(who) + " "

    def _skill_name(self, name: str) -> str:
        for prefix, commands in (("BC", self.options.burst_commands), ("SC", self.options.synchro_commands)):
            if name in commands:
                return f"{prefix}{commands.index(name) + 1}"
        return name

    def _element(self, element) -> str:
        if self.options.abbreviate:
            return get_element_abbreviation(element)
        return get_element_short_name(element)

    @staticmethod
    def duration(duration: Duration) -> str:
        units = "t" if duration.units == "turns" else "s"
        return number_or_unknown(duration.value) + ("?" if duration.value_is_uncertain else "") + units

    # ---- attacks ----

    def attack_extras(self, extras: Optional[AttackExtras]) -> str:
        if extras is None:
            return ""
        out = ""
        if extras.min_damage:
            out += f" min dmg {to_mrp_kilo(extras.min_damage)}"
        if extras.crit_chance is not None:
            out += f" @ +{number_slash_list(extras.crit_chance)}% crit"
        if extras.always_crits:
            out += " always crit"
        if extras.ignores_reflect:
            out += " no refl."
        return out

    def attack(self, attack: Attack) -> str:
        out = ""
        if attack.scope == "group":
            out += "AoE "
        elif attack.scope == "random":
            out += "rand. "

        damage_type = get_damage_type(self.ability) if self.ability else "?"
        if self.options.abbreviate_damage_type:
            out += damage_type_abbreviation(damage_type)
        else:
            out += damage_type + " "

        counts = arrayify(attack.count)
        if attack.multiplier == "X":
            out += "X"
        else:
            multipliers = arrayify(attack.multiplier)
            tiers = max(len(counts), len(multipliers))
            totals = [
                multipliers[min(i, len(multipliers) - 1)] * counts[min(i, len(counts) - 1)]
                for i in range(tiers)
            ]
            out += "-".join(to_mrp_fixed(t) for t in totals)
        if attack.is_uncertain:
            out += "?"
        if any(c != 1 for c in counts):
            out += "/" + "-".join(number_or_unknown(c) for c in counts)

        element = attack.override_element or (self.ability.element if self.ability else None)
        out += append_element(element, self._element)
        if attack.is_ranged:
            out += " rngd"
        if attack.is_jump:
            out += " jump"
        if attack.hit_rate == 100:
            out += " no miss" if self.options.show_no_miss else ""
        elif attack.hit_rate is not None:
            out += f" @ {attack.hit_rate}% hit"
        out += self.attack_extras(attack.extras)
        if attack.damage_cap:
            out += f" dmg cap {attack.damage_cap:,}"
        out += self._condition(attack.condition)
        if attack.followed_by is not None:
            out += ", then " + self.attack(attack.followed_by)
        return out

    # ---- statuses ----

    def status_entry(self, entry) -> str:
        if isinstance(entry, GainResourcePoints):
            return self.resource_points(entry, include_who=False)
        status = entry.status
        if status.type == "standardStatus":
            text = status_alias(status.name)
            if status.merge_count:
                text += f" ×{status.merge_count}"
            if status.is_uncertain:
                text += "?"
        elif status.type == "statusLevel":
            if status.set:
                text = f"{status.name} lvl {number_slash_list(status.value)}"
            elif isinstance(status.value, str):
                text = ("+" if status.value == "X" else "") + f"{status.value} {status.name} lvl"
            else:
                text = f"{signed_number_slash_list(status.value)} {status.name} lvl"
            if status.max is not None:
                text += f" (max {status.max})"
        else:
            school = f"{get_school_short_name(status.school)} " if status.school else ""
            amount = status.amount if isinstance(status.amount, str) else number_slash_list(status.amount)
            text = f"{school}smart ether {amount}"

        if entry.chance is not None and entry.chance != 100:
            text = f"{entry.chance}% {text}"
        if entry.duration is not None:
            text += " " + self.duration(entry.duration)
        return text

    def status_list(self, entries: Sequence[Any]) -> str:
        """Entries joined by "or" are alternatives and go through the merge engine."""
        groups: List[List[str]] = []
        for entry in entries:
            text = self.status_entry(entry)
            if groups and entry.conj in ("or", "/"):
                groups[-1].append(text)
            else:
                groups.append([text])
        return ", ".join(slash_merge(g) if len(g) > 1 else g[0] for g in groups)

    def status_grant(self, grant: StatusGrant) -> str:
        out = self._who(grant.who, grant.to_character) + self.status_list(grant.statuses)
        if grant.duration is not None:
            out += " " + self.duration(grant.duration)
        if grant.is_uncertain:
            out += "?"
        out += append_per_uses(grant.per_uses)
        return out + self._condition(grant.condition)

    def status_removal(self, removal: StatusRemoval) -> str:
        names = "/".join(status_alias(s.status.name) for s in removal.statuses
                         if s.status.type in ("standardStatus", "statusLevel"))
        return self._who(removal.who) + f"remove {names}" + self._condition(removal.condition)

    def dispel_or_esuna(self, clause: DispelOrEsuna) -> str:
        text = "Esuna" if clause.dispel_or_esuna == "negative" else "Dispel"
        return self._who(clause.who) + text + append_per_uses(clause.per_uses) + self._condition(clause.condition)

    def resource_points(self, clause: GainResourcePoints, include_who: bool = True) -> str:
        points = clause.points if isinstance(clause.points, str) else number_slash_list(clause.points)
        who = self._who(clause.who) if include_who else ""
        return who + f"+{points} SB pts" + self._condition(clause.condition)

    def heal(self, clause: Heal) -> str:
        amount = clause.amount if isinstance(clause.amount, str) else number_slash_list(clause.amount)
        return self._who(clause.who) + f"h{amount}" + self._condition(clause.condition)

    def heal_percent(self, clause: HealPercent) -> str:
        pct = clause.heal_percent if isinstance(clause.heal_percent, str) else number_slash_list(clause.heal_percent)
        return self._who(clause.who) + f"heal {pct}% HP" + self._condition(clause.condition)

    # ---- triggers ----

    def trigger(self, trigger: Trigger) -> str:
        if trigger.type == "ability":
            what = list(trigger.school or []) + list(trigger.element or [])
            text = format_school_or_ability_list(what) if what else ""
            if trigger.jump:
                text = (text + " " if text else "") + "jump"
            text = text or "any ability"
            if trigger.count is not None:
                text = f"{number_slash_list(trigger.count)} {text}"
            return text
        elif trigger.type == "skill":
            text = self._skill_name(trigger.skill)
            if trigger.count is not None:
                text = f"{number_slash_list(trigger.count)} {text}"
            return text
        elif trigger.type == "damaged":
            return "taking " + ("/".join(trigger.skill_type) + " " if trigger.skill_type else "") + "dmg"
        elif trigger.type == "lowHp":
            return f"HP <{trigger.value}%"
        elif trigger.type == "crit":
            return "crit"
        raise ValueError(f"Unsupported trigger {trigger.type}")

    def cast_skill(self, effect: CastSkill) -> str:
        skill = effect.skill
        if isinstance(skill, Options):
            return slash_merge([self._related(name) for name in skill.options])
        return "+".join(self._related(name) for name in arrayify(skill))

    def _related(self, name: str) -> str:
        short = self._skill_name(name)
        if short != name or self.describe_skill is None:
            return short
        notation = self.describe_skill(name)
        if notation is None:
            self.trace.warning("Unknown related ability", name=name)
            return name
        return notation

    def triggerable(self, effect) -> str:
        if isinstance(effect, CastSkill):
            return self.cast_skill(effect)
        return self.clause(effect)

    def triggered_effect(self, clause: TriggeredEffect) -> str:
        effects = CLAUSE_SEPARATOR.join(self.triggerable(e) for e in clause.effects)
        if clause.chance is not None and clause.chance != 100:
            effects = f"{clause.chance}% for {effects}"
        if clause.is_uncertain:
            effects += "?"
        return f"({self.trigger(clause.trigger)} {TRIGGER_ARROW} {effects}{self._condition(clause.condition)})"

    def removed_after(self, clause: RemovedAfterTrigger) -> str:
        if clause.trigger.type == "skill" and clause.trigger.is_self_skill:
            return "once only"
        return "until " + self.trigger(clause.trigger)

    # ---- dispatch ----

    def clause(self, clause: EffectClause) -> str:
        t = clause.type
        if t == "attack":
            return self.attack(clause)
        elif t == "status":
            return self.status_grant(clause)
        elif t == "statusRemoval":
            return self.status_removal(clause)
        elif t == "dispelOrEsuna":
            return self.dispel_or_esuna(clause)
        elif t == "heal":
            return self.heal(clause)
        elif t == "healPercent":
            return self.heal_percent(clause)
        elif t == "damagesUndead":
            return "dmg undead"
        elif t == "gainSbPoints":
            return self.resource_points(clause)
        elif t == "triggeredEffect":
            return self.triggered_effect(clause)
        elif t == "removedAfterTrigger":
            return self.removed_after(clause)
        elif t == "hitRate":
            return f"{clause.hit_rate}% hit"
        elif t == "attackExtra":
            return self.attack_extras(clause.extras).strip()
        elif t == "duration":
            return self.duration(clause.duration)
        elif t == "unparsed":
            return clause.text
        raise ValueError(f"Unsupported clause {t}")

    def format(self, clauses: Sequence[EffectClause]) -> str:
        return CLAUSE_SEPARATOR.join(f for f in (self.clause(c) for c in clauses) if f)


def format_clauses(
    clauses: Sequence[EffectClause],
    ability: Optional[AbilityMetadata] = None,
    options: Optional[RenderOptions] = None,
    describe_skill: Optional[Callable[[str], Optional[str]]] = None,
    trace: Any = None,
) -> str:
    return Formatter(ability, options, describe_skill, trace).format(clauses)
