import pytest
from mrp.engine.normalizer import (
    attach_durations, detect_self_triggers, fold_satellites, merge_duplicate_statuses, normalize,
    separate_resource_points,
)
from mrp.engine.schema_models import (
    AbilityTrigger, Attack, AttackExtras, CastSkill, CritTrigger, Duration, GainResourcePoints,
    RemovedAfterTrigger, SkillTrigger, StandaloneAttackExtra, StandaloneDuration, StandaloneHitRate,
    StandardStatus, StatusGrant, StatusWithPercent, TriggeredEffect,
)
from mrp.engine.trace import DiagnosticTrail


def _status(name, **kw):
    return StatusWithPercent(status=StandardStatus(name=name), **kw)


@pytest.fixture
def trail():
    return DiagnosticTrail()


def test_hit_rate_folds_into_attack(trail):
    result = fold_satellites([Attack(multiplier=1.0), StandaloneHitRate(hit_rate=100)], trail)
    assert result == [Attack(multiplier=1.0, hit_rate=100)]
    assert not trail.dump()


def test_hit_rate_lands_on_last_attack_in_chain(trail):
    attack = Attack(multiplier=1.0, followed_by=Attack(multiplier=2.0))
    (folded,) = fold_satellites([attack, StandaloneHitRate(hit_rate=90)], trail)
    assert folded.hit_rate is None
    assert folded.tail().hit_rate == 90


def test_duplicate_hit_rate_is_an_error(trail):
    result = fold_satellites([Attack(multiplier=1.0, hit_rate=90), StandaloneHitRate(hit_rate=100)], trail)
    assert result == [Attack(multiplier=1.0, hit_rate=90)]
    assert trail.has_errors


def test_orphan_satellite_is_dropped(trail):
    assert fold_satellites([StandaloneHitRate(hit_rate=100)], trail) == []
    assert trail.has_errors


def test_extras_merge_field_by_field(trail):
    clauses = [
        Attack(multiplier=1.0),
        StandaloneAttackExtra(extras=AttackExtras(min_damage=5000)),
        StandaloneAttackExtra(extras=AttackExtras(always_crits=True)),
    ]
    (attack,) = fold_satellites(clauses, trail)
    assert attack.extras == AttackExtras(min_damage=5000, always_crits=True)
    assert not trail.has_errors


def test_resource_points_split_out_of_triggered_grant():
    grant = StatusGrant(statuses=[_status("Haste"), GainResourcePoints(points=50, conj="and")], who="self")
    (clause,) = separate_resource_points([TriggeredEffect(trigger=CritTrigger(), effects=[grant])])
    status, points = clause.effects
    assert [s.status.name for s in status.statuses] == ["Haste"]
    assert points == GainResourcePoints(points=50, who="self")


def test_self_trigger_detected():
    clauses = [
        TriggeredEffect(trigger=AbilityTrigger(school=["Black Magic"]), effects=[CastSkill(skill="Meteor")]),
        RemovedAfterTrigger(trigger=SkillTrigger(skill="Meteor")),
    ]
    result = detect_self_triggers(clauses)
    assert result[1].trigger.is_self_skill


def test_other_skill_trigger_is_logged(trail):
    result = detect_self_triggers([RemovedAfterTrigger(trigger=SkillTrigger(skill="Meteor"))], trail)
    assert not result[0].trigger.is_self_skill
    assert trail.dump() == ["[Info] Removal trigger skill is not cast here (skill=Meteor)"]


def test_standalone_duration_attaches_to_last_status(trail):
    clauses = [StatusGrant(statuses=[_status("Haste"), _status("Protect", conj="and")]),
               StandaloneDuration(duration=Duration(value=25))]
    (grant,) = attach_durations(clauses, trail)
    assert grant.statuses[0].duration is None
    assert grant.statuses[1].duration == Duration(value=25)


def test_grant_duration_moves_onto_status(trail):
    (grant,) = attach_durations([StatusGrant(statuses=[_status("Haste")], duration=Duration(value=2, units="turns"))],
                                trail)
    assert grant.duration is None
    assert grant.statuses[0].duration.units == "turns"


def test_orphan_duration_warns(trail):
    assert attach_durations([StandaloneDuration(duration=Duration(value=25))], trail) == []
    assert trail.dump() == ["[Warn] Duration has no status to attach to"]


def test_duplicate_statuses_merge():
    (grant,) = merge_duplicate_statuses([StatusGrant(statuses=[_status("Haste"), _status("Haste", conj="and")])])
    (entry,) = grant.statuses
    assert entry.status.merge_count == 2


def test_different_statuses_do_not_merge():
    (grant,) = merge_duplicate_statuses([StatusGrant(statuses=[_status("Haste"), _status("Haste", chance=50)])])
    assert len(grant.statuses) == 2


def test_normalize_is_idempotent():
    clauses = [
        Attack(multiplier=1.0),
        StandaloneHitRate(hit_rate=100),
        StatusGrant(statuses=[_status("Haste"), _status("Haste")], who="self"),
        StandaloneDuration(duration=Duration(value=25)),
    ]
    once = normalize(clauses)
    assert normalize(once) == once
    assert len(once) == 2


def test_normalize_does_not_mutate_input():
    clauses = [Attack(multiplier=1.0), StandaloneHitRate(hit_rate=100)]
    normalize(clauses)
    assert clauses[0].hit_rate is None
    assert len(clauses) == 2
