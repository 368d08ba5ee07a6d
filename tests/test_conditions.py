from typing import get_args

import pytest
from mrp.engine.conditions import describe_condition, parse_condition, parse_elements, split_condition
from mrp.engine.schema_models import (
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
    UseCountRange,
)
from mrp.engine.type_helpers import RenderOptions


def _entry(name):
    return StatusWithPercent(status=StandardStatus(name=name))


RENDERED = [
    (CondEquipped(article="a", equipped="dagger"), "if using a dagger"),
    (CondScaleWithStatusLevel(status="Kill Stance"), "w/ Kill Stance lvl"),
    (CondStatusLevel(status="Kill Stance", value=2, plus=True), "at Kill Stance lvl 2+"),
    (CondIfDoomed(), "if Doomed"),
    (CondStatus(status="Haste"), "if Haste"),
    (CondStatusList(status=[_entry("Haste"), _entry("Protect")]), "if Haste+Protect"),
    (CondConditionalEnElement(element="Fire"), "w/ fire infuse"),
    (CondScaleUseCount(use_count=[1, 2, 3]), "w/ 1/2/3 uses"),
    (CondScaleWithUses(), "w/ uses"),
    (CondScaleWithSkillUses(skill="Meteor"), "w/ Meteor uses"),
    (CondAfterUseCount(use_count=UseCountRange(**{"from": 3})), "at ≥3 uses"),
    (CondAlliesAlive(), "if no allies KO"),
    (CondCharacterAlive(character="Cloud"), "if Cloud alive"),
    (CondCharacterInParty(character="Cloud", without_with="without"), "if no Cloud in party"),
    (CondFemalesInParty(count=2), "if 2 females in party"),
    (CondFemalesAlive(count=2), "if 2 females alive"),
    (CondRealmCharactersInParty(realm="FF7", count=3), "if 3 FF7 chars. in party"),
    (CondRealmCharactersAlive(realm="FF7", count=2, plus=True), "if 2+ FF7 chars. alive"),
    (CondCharactersAlive(count=4), "if 4 chars. alive"),
    (CondAlliesJump(count=2), "if 2 allies in air"),
    (CondDoomTimer(value=10), "at <10s Doom"),
    (CondHpBelowPercent(value=20), "if HP <20%"),
    (CondHpAtLeastPercent(value=80), "if HP ≥80%"),
    (CondSoulBreakPoints(value=SimpleRange(**{"from": 100, "to": 200})), "if 100-200 SB pts"),
    (CondTargetStatBreaks(count=2), "vs. 2 stats lowered"),
    (CondTargetStatusAilments(count=1), "vs. 1 ailments"),
    (CondVsWeak(), "vs. weak"),
    (CondInFrontRow(), "if in front row"),
    (CondHitsTaken(count=3, skill_type="PHY"), "after 3 PHY hits taken"),
    (CondAttacksTaken(count=3), "after 3 attacks taken"),
    (CondDamagingActions(count=2), "after 2 dmg actions"),
    (CondOtherAbilityUsers(count=2, school="Black Magic"), "if 2 other B.Mag users"),
    (CondDifferentAbilityUses(count=3, school="White Magic"), "after 3 different W.Mag abils."),
    (CondAbilitiesUsedDuringStatus(count=2, school="Black Magic"), "after 2 B.Mag abils. during status"),
    (CondAbilitiesUsed(count=2, school=["Black Magic", "White Magic"]), "after 2 B.Mag/W.Mag abils."),
    (CondAttacksDuringStatus(count=5, element="Fire"), "after 5 fire attacks during status"),
    (CondDamageDuringStatus(value=10000), "after 10k dmg during status"),
    (CondRankBased(), "at rank 1-5"),
    (CondStatThreshold(stat="ATK", value=500), "if ATK ≥500"),
    (CondBattleStart(), "at battle start"),
]


@pytest.mark.parametrize("cond,expected", RENDERED, ids=[c.type for c, _ in RENDERED])
def test_describe_condition(cond, expected):
    assert describe_condition(cond) == expected


def test_every_condition_variant_is_rendered():
    variants = {cls.model_fields["type"].default for cls in get_args(get_args(Condition)[0])}
    assert variants == {cond.type for cond, _ in RENDERED}


def test_prereq_status_is_implied():
    options = RenderOptions(prereq_status="Haste")
    assert describe_condition(CondStatus(status="Haste"), options) == ""
    assert describe_condition(CondStatus(status="Protect"), options) == "if Protect"


def test_status_condition_variants():
    assert describe_condition(CondStatus(status="Protect", who="target", without_with="without")) == "vs. non-Protect"
    assert describe_condition(CondStatus(status=["Haste", "Protect"], any=True)) == "if Haste/Protect"
    assert describe_condition(CondStatus(status="Haste", without_with="without")) == "if no Haste"
    assert describe_condition(CondStatus(status="Haste"), status_name=str.upper) == "if HASTE"


def test_parse_equipped():
    assert parse_condition("when equipped with a dagger") == CondEquipped(article="a", equipped="dagger")


def test_parse_status_conditions():
    assert parse_condition("if the user has Haste") == CondStatus(status="Haste")
    cond = parse_condition("if the user has Haste or Protect")
    assert cond.status == ["Haste", "Protect"] and cond.any
    cond = parse_condition("if the target doesn't have Protect")
    assert cond.who == "target" and cond.without_with == "without"


def test_parse_status_level():
    assert parse_condition("if the user has Kill Stance level 2+") == CondStatusLevel(
        status="Kill Stance", value=2, plus=True)


def test_parse_soul_break_points():
    cond = parse_condition("if the user has 100-200 SB points")
    assert cond.value == SimpleRange(**{"from": 100, "to": 200})
    cond = parse_condition("if the user has 500+ SB points")
    assert cond.value == 500 and cond.plus


def test_parse_after_use_count():
    cond = parse_condition("after using Meteor 3+ times")
    assert cond.skill == "Meteor"
    assert cond.use_count.from_ == 3 and cond.use_count.to is None


def test_parse_thresholds_and_party():
    assert parse_condition("if the user's HP is below 20%") == CondHpBelowPercent(value=20)
    assert parse_condition("if there are 2 FF7 characters in the party") == CondRealmCharactersInParty(
        realm="FF7", count=2)
    assert parse_condition("at the start of battle") == CondBattleStart()
    assert parse_condition("if the user has an Earth infusion") == CondConditionalEnElement(element="Earth")


def test_parse_ability_use_conditions():
    assert parse_condition("after using 2 Black Magic abilities") == CondAbilitiesUsed(
        count=2, school="Black Magic")
    cond = parse_condition("if the user has used 3 Black Magic/White Magic abilities")
    assert cond.type == "abilitiesUsed"
    assert cond.school == ["Black Magic", "White Magic"]
    assert parse_condition("if 2 other allies used Black Magic abilities") == CondOtherAbilityUsers(
        count=2, school="Black Magic")


def test_parse_vs_weak_and_damage():
    assert parse_condition("vs. weak to Fire") == CondVsWeak(element="Fire")
    assert parse_condition("after dealing 10000 damage during the status") == CondDamageDuringStatus(value=10000)


def test_unknown_vocabulary_is_not_a_condition():
    assert parse_condition("if the moon is full") is None
    assert parse_condition("after using 2 Bogus abilities") is None


def test_parse_elements():
    assert parse_elements("Fire") == "Fire"
    assert parse_elements("Fire/Ice") == ["Fire", "Ice"]
    with pytest.raises(ValueError):
        parse_elements("Plasma")


def test_split_condition():
    assert split_condition("grants Haste if the user has Protect") == ("grants Haste", "if the user has Protect")
    assert split_condition("grants Haste") == ("grants Haste", None)
