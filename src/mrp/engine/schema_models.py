from __future__ import annotations
from typing import Generic, List, Literal, Optional, TypeVar, Union
from typing_extensions import Annotated
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from .models import Element, School, SkillType, Stat, StatusPlaceholders

T = TypeVar("T")

# Common aliases
Placeholder = Literal["X"]
SignedPlaceholder = Literal["X", "-X"]

Number = Union[int, float]
NumberList = Annotated[List[Number], Field(min_length=1)]
NumberOrList = Union[Number, NumberList]
# List form is one entry per tier, in ascending tier order; never reorder it
ValueOrPlaceholder = Union[Number, NumberList, Placeholder]
SignedValueOrPlaceholder = Union[Number, NumberList, SignedPlaceholder]

StringOrList = Union[str, Annotated[List[str], Field(min_length=1)]]
ElementOrList = Union[Element, Annotated[List[Element], Field(min_length=1)]]
SchoolOrList = Union[School, Annotated[List[School], Field(min_length=1)]]
SkillTypeOrList = Union[SkillType, Annotated[List[SkillType], Field(min_length=1)]]

Who = Literal[
    "self", "target", "enemies", "sameRow", "frontRow", "backRow", "party",
    "lowestHpAlly", "allyWithoutStatus", "allyWithNegativeStatus", "allyWithKO",
    "ally", "summonCharacter",
    # Set by callers rather than the parser, for specific toCharacter values
    "namedCharacter",
]
WhoOrList = Union[Who, Annotated[List[Who], Field(min_length=1)]]

WithoutWith = Literal["without", "with", "withoutWith"]
StatusVerb = Literal["grants", "causes"]
Conjunction = Literal["and", "/", ",", "[/]", "or"]
DurationUnits = Literal["seconds", "turns"]


class Node(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class Options(Node, Generic[T]):
    """Pick exactly one of several alternatives."""
    options: Annotated[List[T], Field(min_length=1)]


# A single value, a list meaning "all apply", or Options meaning "pick one"
SkillOrOptions = Union[str, Annotated[List[str], Field(min_length=1)], Options[str]]


# -----------------------------
# Small numeric structures
# -----------------------------

class Duration(Node):
    value: Number
    value_is_uncertain: bool = False
    units: DurationUnits = "seconds"


class Fraction(Node):
    numerator: int
    denominator: int


class SimpleRange(Node):
    from_: int = Field(alias="from")
    to: int


class UseCountSeries(Node):
    kind: Literal["series"] = "series"
    x: NumberOrList
    y: int


class UseCountRange(Node):
    kind: Literal["range"] = "range"
    from_: Optional[int] = Field(default=None, alias="from")
    to: Optional[int] = None

    @model_validator(mode="after")
    def _require_bound(self):
        if self.from_ is None and self.to is None:
            raise ValueError("use count range requires from or to")
        return self


UseCount = Annotated[Union[UseCountSeries, UseCountRange], Field(discriminator="kind")]


# -----------------------------
# Status items
# -----------------------------

class StandardStatus(Node):
    type: Literal["standardStatus"] = "standardStatus"
    name: str
    # Filled in from the caller's status table
    id: Optional[int] = None
    is_uncertain: bool = False
    placeholders: Optional[StatusPlaceholders] = None
    # Number of identical statuses collapsed into this one (minimum 2)
    merge_count: Optional[int] = Field(default=None, ge=2)


class StatusLevel(Node):
    type: Literal["statusLevel"] = "statusLevel"
    name: str
    value: SignedValueOrPlaceholder
    max: Optional[int] = None
    # True: set to value. False: modify by value.
    set: bool = False


class SmartEtherStatus(Node):
    type: Literal["smartEther"] = "smartEther"
    amount: ValueOrPlaceholder
    school: Optional[School] = None


StatusItem = Annotated[Union[StandardStatus, StatusLevel, SmartEtherStatus], Field(discriminator="type")]


class StatusWithPercent(Node):
    type: Literal["statusWithPercent"] = "statusWithPercent"
    status: StatusItem
    chance: Optional[int] = Field(default=None, ge=0, le=100)
    duration: Optional[Duration] = None
    conj: Optional[Conjunction] = None


# -----------------------------
# Conditions
# -----------------------------

class CondEquipped(Node):
    type: Literal["equipped"] = "equipped"
    article: Optional[str] = None
    equipped: str

class CondScaleWithStatusLevel(Node):
    type: Literal["scaleWithStatusLevel"] = "scaleWithStatusLevel"
    status: str

class CondStatusLevel(Node):
    type: Literal["statusLevel"] = "statusLevel"
    status: str
    value: NumberOrList
    plus: bool = False

class CondIfDoomed(Node):
    type: Literal["ifDoomed"] = "ifDoomed"

class CondStatus(Node):
    type: Literal["status"] = "status"
    status: StringOrList
    who: Literal["self", "target"] = "self"
    any: bool = False
    without_with: Optional[WithoutWith] = None

class CondStatusList(Node):
    type: Literal["statusList"] = "statusList"
    status: Annotated[List[StatusWithPercent], Field(min_length=1)]
    who: Literal["self", "target"] = "self"

class CondConditionalEnElement(Node):
    type: Literal["conditionalEnElement"] = "conditionalEnElement"
    element: ElementOrList

class CondScaleUseCount(Node):
    type: Literal["scaleUseCount"] = "scaleUseCount"
    use_count: NumberOrList

class CondScaleWithUses(Node):
    type: Literal["scaleWithUses"] = "scaleWithUses"

class CondScaleWithSkillUses(Node):
    type: Literal["scaleWithSkillUses"] = "scaleWithSkillUses"
    skill: str

class CondAfterUseCount(Node):
    type: Literal["afterUseCount"] = "afterUseCount"
    skill: Optional[str] = None
    use_count: UseCount

class CondAlliesAlive(Node):
    type: Literal["alliesAlive"] = "alliesAlive"

class CondCharacterAlive(Node):
    type: Literal["characterAlive"] = "characterAlive"
    # None means a pronoun; callers resolve it from context
    character: Optional[StringOrList] = None
    count: Optional[NumberOrList] = None
    all: bool = False
    without_with: Optional[WithoutWith] = None

class CondCharacterInParty(Node):
    type: Literal["characterInParty"] = "characterInParty"
    character: StringOrList
    count: Optional[NumberOrList] = None
    all: bool = False
    without_with: Optional[WithoutWith] = None

class CondFemalesInParty(Node):
    type: Literal["femalesInParty"] = "femalesInParty"
    count: NumberOrList

class CondFemalesAlive(Node):
    type: Literal["femalesAlive"] = "femalesAlive"
    count: NumberOrList

class CondRealmCharactersInParty(Node):
    type: Literal["realmCharactersInParty"] = "realmCharactersInParty"
    realm: str
    count: NumberOrList

class CondRealmCharactersAlive(Node):
    type: Literal["realmCharactersAlive"] = "realmCharactersAlive"
    realm: str
    count: NumberOrList
    plus: bool = False

class CondCharactersAlive(Node):
    type: Literal["charactersAlive"] = "charactersAlive"
    count: NumberOrList

class CondAlliesJump(Node):
    type: Literal["alliesJump"] = "alliesJump"
    count: NumberOrList

class CondDoomTimer(Node):
    type: Literal["doomTimer"] = "doomTimer"
    value: NumberOrList

class CondHpBelowPercent(Node):
    type: Literal["hpBelowPercent"] = "hpBelowPercent"
    value: NumberOrList

class CondHpAtLeastPercent(Node):
    type: Literal["hpAtLeastPercent"] = "hpAtLeastPercent"
    value: NumberOrList

class CondSoulBreakPoints(Node):
    type: Literal["soulBreakPoints"] = "soulBreakPoints"
    value: Union[NumberOrList, SimpleRange]
    plus: bool = False

class CondTargetStatBreaks(Node):
    type: Literal["targetStatBreaks"] = "targetStatBreaks"
    count: NumberOrList

class CondTargetStatusAilments(Node):
    type: Literal["targetStatusAilments"] = "targetStatusAilments"
    count: NumberOrList

class CondVsWeak(Node):
    type: Literal["vsWeak"] = "vsWeak"
    element: Optional[ElementOrList] = None

class CondInFrontRow(Node):
    type: Literal["inFrontRow"] = "inFrontRow"

class CondHitsTaken(Node):
    type: Literal["hitsTaken"] = "hitsTaken"
    count: NumberOrList
    skill_type: SkillTypeOrList

class CondAttacksTaken(Node):
    type: Literal["attacksTaken"] = "attacksTaken"
    count: NumberOrList

class CondDamagingActions(Node):
    type: Literal["damagingActions"] = "damagingActions"
    count: NumberOrList

class CondOtherAbilityUsers(Node):
    type: Literal["otherAbilityUsers"] = "otherAbilityUsers"
    count: NumberOrList
    school: School

class CondDifferentAbilityUses(Node):
    type: Literal["differentAbilityUses"] = "differentAbilityUses"
    count: NumberOrList
    school: School

class CondAbilitiesUsedDuringStatus(Node):
    type: Literal["abilitiesUsedDuringStatus"] = "abilitiesUsedDuringStatus"
    count: NumberOrList
    school: SchoolOrList

class CondAbilitiesUsed(Node):
    type: Literal["abilitiesUsed"] = "abilitiesUsed"
    count: NumberOrList
    school: SchoolOrList

class CondAttacksDuringStatus(Node):
    type: Literal["attacksDuringStatus"] = "attacksDuringStatus"
    count: NumberOrList
    element: ElementOrList

class CondDamageDuringStatus(Node):
    type: Literal["damageDuringStatus"] = "damageDuringStatus"
    value: NumberOrList
    element: Optional[ElementOrList] = None

class CondRankBased(Node):
    type: Literal["rankBased"] = "rankBased"

class CondStatThreshold(Node):
    type: Literal["statThreshold"] = "statThreshold"
    stat: Stat
    value: NumberOrList

class CondBattleStart(Node):
    type: Literal["battleStart"] = "battleStart"


Condition = Annotated[
    Union[
        CondEquipped, CondScaleWithStatusLevel, CondStatusLevel, CondIfDoomed,
        CondStatus, CondStatusList, CondConditionalEnElement,
        CondScaleUseCount, CondScaleWithUses, CondScaleWithSkillUses, CondAfterUseCount,
        CondAlliesAlive, CondCharacterAlive, CondCharacterInParty,
        CondFemalesInParty, CondFemalesAlive,
        CondRealmCharactersInParty, CondRealmCharactersAlive, CondCharactersAlive,
        CondAlliesJump, CondDoomTimer, CondHpBelowPercent, CondHpAtLeastPercent,
        CondSoulBreakPoints, CondTargetStatBreaks, CondTargetStatusAilments,
        CondVsWeak, CondInFrontRow, CondHitsTaken, CondAttacksTaken, CondDamagingActions,
        CondOtherAbilityUsers, CondDifferentAbilityUses,
        CondAbilitiesUsedDuringStatus, CondAbilitiesUsed,
        CondAttacksDuringStatus, CondDamageDuringStatus,
        CondRankBased, CondStatThreshold, CondBattleStart,
    ],
    Field(discriminator="type"),
]


# -----------------------------
# Effect clauses
# -----------------------------

class GainResourcePoints(Node):
    type: Literal["gainSbPoints"] = "gainSbPoints"
    points: ValueOrPlaceholder
    who: Optional[WhoOrList] = None
    conj: Optional[Conjunction] = None
    condition: Optional[Condition] = None


# Entries of a grant list. The tag separates resource-point gains from statuses.
GrantEntry = Annotated[Union[StatusWithPercent, GainResourcePoints], Field(discriminator="type")]


class AttackExtras(Node):
    min_damage: Optional[int] = None
    always_crits: bool = False
    ignores_reflect: bool = False
    crit_chance: Optional[NumberOrList] = None


class Attack(Node):
    type: Literal["attack"] = "attack"
    count: NumberOrList = 1
    multiplier: ValueOrPlaceholder
    scope: Literal["single", "group", "random"] = "single"
    is_ranged: bool = False
    is_jump: bool = False
    damage_cap: Optional[int] = None
    hit_rate: Optional[int] = Field(default=None, ge=0, le=100)
    extras: Optional[AttackExtras] = None
    override_element: Optional[List[Element]] = None
    followed_by: Optional[Attack] = None
    condition: Optional[Condition] = None
    is_uncertain: bool = False

    def tail(self) -> Attack:
        attack = self
        while attack.followed_by is not None:
            attack = attack.followed_by
        return attack


class StatusGrant(Node):
    type: Literal["status"] = "status"
    verb: StatusVerb = "grants"
    statuses: Annotated[List[GrantEntry], Field(min_length=1)]
    who: Optional[WhoOrList] = None
    to_character: Optional[StringOrList] = None
    # Trailing duration; moved onto the last status by the normalizer
    duration: Optional[Duration] = None
    per_uses: Optional[int] = None
    condition: Optional[Condition] = None
    is_uncertain: bool = False


class StatusRemoval(Node):
    type: Literal["statusRemoval"] = "statusRemoval"
    statuses: Annotated[List[StatusWithPercent], Field(min_length=1)]
    who: Optional[WhoOrList] = None
    condition: Optional[Condition] = None


class DispelOrEsuna(Node):
    type: Literal["dispelOrEsuna"] = "dispelOrEsuna"
    dispel_or_esuna: Literal["negative", "positive"]
    who: Optional[WhoOrList] = None
    per_uses: Optional[int] = None
    condition: Optional[Condition] = None


class Heal(Node):
    type: Literal["heal"] = "heal"
    amount: ValueOrPlaceholder
    who: Optional[WhoOrList] = None
    condition: Optional[Condition] = None


class HealPercent(Node):
    type: Literal["healPercent"] = "healPercent"
    heal_percent: ValueOrPlaceholder
    who: Optional[WhoOrList] = None
    condition: Optional[Condition] = None


class DamagesUndead(Node):
    type: Literal["damagesUndead"] = "damagesUndead"


# Triggers

class AbilityTrigger(Node):
    type: Literal["ability"] = "ability"
    school: Optional[List[School]] = None
    element: Optional[List[Element]] = None
    count: Optional[NumberOrList] = None
    jump: bool = False

class SkillTrigger(Node):
    type: Literal["skill"] = "skill"
    skill: str
    count: Optional[NumberOrList] = None
    # Set by the normalizer when a sibling trigger casts this same skill
    is_self_skill: bool = False

class DamagedTrigger(Node):
    type: Literal["damaged"] = "damaged"
    skill_type: Optional[List[SkillType]] = None

class LowHpTrigger(Node):
    type: Literal["lowHp"] = "lowHp"
    value: int

class CritTrigger(Node):
    type: Literal["crit"] = "crit"


Trigger = Annotated[
    Union[AbilityTrigger, SkillTrigger, DamagedTrigger, LowHpTrigger, CritTrigger],
    Field(discriminator="type"),
]


class CastSkill(Node):
    type: Literal["castSkill"] = "castSkill"
    skill: SkillOrOptions


TriggerableEffect = Annotated[
    Union[CastSkill, StatusGrant, GainResourcePoints, Heal, HealPercent, DispelOrEsuna],
    Field(discriminator="type"),
]


class TriggeredEffect(Node):
    type: Literal["triggeredEffect"] = "triggeredEffect"
    trigger: Trigger
    effects: Annotated[List[TriggerableEffect], Field(min_length=1)]
    chance: Optional[int] = Field(default=None, ge=0, le=100)
    condition: Optional[Condition] = None
    is_uncertain: bool = False


class RemovedAfterTrigger(Node):
    type: Literal["removedAfterTrigger"] = "removedAfterTrigger"
    trigger: Trigger


class StandaloneHitRate(Node):
    type: Literal["hitRate"] = "hitRate"
    hit_rate: int = Field(ge=0, le=100)


class StandaloneAttackExtra(Node):
    type: Literal["attackExtra"] = "attackExtra"
    extras: AttackExtras


class StandaloneDuration(Node):
    type: Literal["duration"] = "duration"
    duration: Duration


class UnparsedFragment(Node):
    type: Literal["unparsed"] = "unparsed"
    text: str
    is_uncertain: bool = True


EffectClause = Annotated[
    Union[
        Attack, StatusGrant, StatusRemoval, DispelOrEsuna, Heal, HealPercent,
        DamagesUndead, GainResourcePoints, TriggeredEffect, RemovedAfterTrigger,
        StandaloneHitRate, StandaloneAttackExtra, StandaloneDuration, UnparsedFragment,
    ],
    Field(discriminator="type"),
]

ClauseListAdapter = TypeAdapter(List[EffectClause])

Attack.model_rebuild()
StatusGrant.model_rebuild()
TriggeredEffect.model_rebuild()
