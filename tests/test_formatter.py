import pytest
from mrp.engine.formatter import format_clauses, status_alias
from mrp.engine.models import AbilityMetadata
from mrp.engine.schema_models import (
    AbilityTrigger, Attack, CastSkill, CondHpBelowPercent, CritTrigger, DamagedTrigger, DamagesUndead,
    DispelOrEsuna, Duration, GainResourcePoints, Heal, HealPercent, LowHpTrigger, Options,
    RemovedAfterTrigger, SkillTrigger, StandardStatus, StatusGrant, StatusLevel, StatusRemoval,
    StatusWithPercent, TriggeredEffect, UnparsedFragment,
)
from mrp.engine.trace import DiagnosticTrail
from mrp.engine.type_helpers import RenderOptions


def _status(name, **kw):
    return StatusWithPercent(status=StandardStatus(name=name), **kw)


@pytest.fixture
def phys_fire():
    return AbilityMetadata(id=1, name="Flame Slash", type="PHY", element=["Fire"])


def test_status_aliases():
    assert status_alias("Quick Cast 3") == "fastcast 3"
    assert status_alias("Quick Cast") == "fastcast"
    assert status_alias("+30% ATK and MAG") == "+30% ATK/MAG"
    assert status_alias("Sentinel") == "taunt PHY/BLK, +200% DEF"
    assert status_alias("Haste") == "Haste"


def test_group_attack(phys_fire):
    attack = Attack(count=8, multiplier=0.9, scope="group", is_ranged=True, hit_rate=100)
    assert format_clauses([attack], phys_fire) == "AoE phys 7.2/8 fire rngd no miss"


def test_attack_options(phys_fire):
    attack = Attack(multiplier=2.0)
    assert format_clauses([attack], phys_fire, RenderOptions(abbreviate_damage_type=True)) == "p2.0 fire"
    water = AbilityMetadata(id=2, name="Tidal", type="PHY", element=["Water"])
    assert format_clauses([attack], water, RenderOptions(abbreviate=True)) == "phys 2.0 wa"
    sure = Attack(multiplier=1.0, hit_rate=100)
    assert format_clauses([sure], phys_fire, RenderOptions(show_no_miss=False)) == "phys 1.0 fire"


def test_attack_details(phys_fire):
    assert format_clauses([Attack(multiplier=1.0, hit_rate=90)], phys_fire) == "phys 1.0 fire @ 90% hit"
    assert format_clauses([Attack(multiplier=1.0, damage_cap=19999)], phys_fire) == "phys 1.0 fire dmg cap 19,999"
    assert format_clauses([Attack(multiplier=[1.0, 2.0], count=2)], phys_fire) == "phys 2.0-4.0/2 fire"
    assert format_clauses([Attack(multiplier=1.0, is_uncertain=True)], phys_fire) == "phys 1.0? fire"


def test_attack_condition_and_chain():
    plain = AbilityMetadata(id=1, name="Strike", type="PHY")
    cond = Attack(multiplier=1.0, condition=CondHpBelowPercent(value=20))
    assert format_clauses([cond], plain) == "phys 1.0 if HP <20%"
    chain = Attack(multiplier=1.0, followed_by=Attack(multiplier=2.0, scope="group"))
    assert format_clauses([chain], plain) == "phys 1.0, then AoE phys 2.0"


def test_grant_with_duration():
    grant = StatusGrant(statuses=[_status("Haste"), _status("Protect", conj="and", duration=Duration(value=25))],
                        who="self")
    assert format_clauses([grant]) == "self Haste, Protect 25s"


def test_grant_alternatives_merge():
    grant = StatusGrant(statuses=[_status("+30% ATK"), _status("+50% ATK", conj="or")], who="self")
    assert format_clauses([grant]) == "self +30/50% ATK"


def test_status_entry_variants():
    grant = StatusGrant(verb="causes", statuses=[_status("Stop", chance=30)], who="target")
    assert format_clauses([grant]) == "target 30% Stop"
    merged = StatusGrant(statuses=[StatusWithPercent(status=StandardStatus(name="Haste", merge_count=2))])
    assert format_clauses([merged]) == "Haste ×2"
    level = StatusGrant(statuses=[StatusWithPercent(status=StatusLevel(name="Kill Stance", value=1, max=3))])
    assert format_clauses([level]) == "+1 Kill Stance lvl (max 3)"
    turns = StatusGrant(statuses=[_status("Haste", duration=Duration(value=2, units="turns"))], to_character="Cloud")
    assert format_clauses([turns]) == "Cloud Haste 2t"


def test_other_clauses():
    assert format_clauses([StatusRemoval(statuses=[_status("Slow"), _status("Stop")], who="party")]) == \
        "party remove Slow/Stop"
    assert format_clauses([DispelOrEsuna(dispel_or_esuna="negative", who="party")]) == "party Esuna"
    assert format_clauses([DispelOrEsuna(dispel_or_esuna="positive", who="enemies")]) == "AoE Dispel"
    assert format_clauses([Heal(amount=25)]) == "h25"
    assert format_clauses([HealPercent(heal_percent=25, who="party")]) == "party heal 25% HP"
    assert format_clauses([GainResourcePoints(points=50)]) == "+50 SB pts"
    assert format_clauses([DamagesUndead()]) == "dmg undead"
    assert format_clauses([UnparsedFragment(text="flips a coin")]) == "flips a coin"


def test_clauses_join_with_commas():
    assert format_clauses([Heal(amount=25), GainResourcePoints(points=50)]) == "h25, +50 SB pts"


def test_triggers():
    grant = StatusGrant(statuses=[_status("Haste")], who="self")
    damaged = TriggeredEffect(trigger=DamagedTrigger(skill_type=["PHY"]), effects=[grant], chance=50)
    assert format_clauses([damaged]) == "(taking PHY dmg ⤇ 50% for self Haste)"
    assert format_clauses([TriggeredEffect(trigger=LowHpTrigger(value=20), effects=[grant])]) == \
        "(HP <20% ⤇ self Haste)"
    assert format_clauses([TriggeredEffect(trigger=CritTrigger(), effects=[grant])]) == "(crit ⤇ self Haste)"
    two = AbilityTrigger(school=["Black Magic", "White Magic"], count=2)
    assert format_clauses([TriggeredEffect(trigger=two, effects=[grant])]) == "(2 B.Mag/W.Mag ⤇ self Haste)"
    assert format_clauses([TriggeredEffect(trigger=AbilityTrigger(), effects=[grant])]) == \
        "(any ability ⤇ self Haste)"


def test_command_names():
    options = RenderOptions(burst_commands=("Ruinga Strike",), synchro_commands=("Ultima",))
    effect = TriggeredEffect(trigger=SkillTrigger(skill="Ruinga Strike"), effects=[CastSkill(skill="Meteor")])
    assert format_clauses([effect], options=options) == "(BC1 ⤇ Meteor)"
    effect = TriggeredEffect(trigger=SkillTrigger(skill="Ultima"), effects=[CastSkill(skill="Meteor")])
    assert format_clauses([effect], options=options) == "(SC1 ⤇ Meteor)"


def test_removed_after():
    assert format_clauses([RemovedAfterTrigger(trigger=SkillTrigger(skill="Meteor", is_self_skill=True))]) == \
        "once only"
    assert format_clauses([RemovedAfterTrigger(trigger=SkillTrigger(skill="Meteor", count=3))]) == \
        "until 3 Meteor"


def test_cast_options_merge_related_notation():
    notations = {"Firaga": "magic 3.0 fire", "Blizzaga": "magic 3.0 ice"}
    cast = CastSkill(skill=Options[str](options=["Firaga", "Blizzaga"]))
    effect = TriggeredEffect(trigger=CritTrigger(), effects=[cast])
    assert format_clauses([effect], describe_skill=notations.get) == "(crit ⤇ magic 3.0 fire/ice)"
    both = TriggeredEffect(trigger=CritTrigger(), effects=[CastSkill(skill=["Firaga", "Blizzaga"])])
    assert format_clauses([both], describe_skill=notations.get) == "(crit ⤇ magic 3.0 fire+magic 3.0 ice)"


def test_unknown_related_ability_warns():
    trail = DiagnosticTrail()
    effect = TriggeredEffect(trigger=CritTrigger(), effects=[CastSkill(skill="Meteor")])
    assert format_clauses([effect], describe_skill=lambda name: None, trace=trail) == "(crit ⤇ Meteor)"
    assert trail.dump() == ["[Warn] Unknown related ability (name=Meteor)"]
