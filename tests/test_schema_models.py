import pytest
from pydantic import ValidationError
from mrp.engine.schema_models import (
    Attack, ClauseListAdapter, GainResourcePoints, Options, SimpleRange, StandaloneHitRate,
    StatusGrant, StatusWithPercent, StandardStatus, UseCountRange, CastSkill,
)

def test_clause_union_discriminates_on_type():
    clauses = ClauseListAdapter.validate_python([
        {"type": "attack", "multiplier": 1.5, "count": 2},
        {"type": "hitRate", "hit_rate": 100},
    ])
    assert isinstance(clauses[0], Attack)
    assert isinstance(clauses[1], StandaloneHitRate)

def test_grant_entries_use_explicit_tag():
    grant = StatusGrant.model_validate({
        "statuses": [
            {"type": "statusWithPercent", "status": {"type": "standardStatus", "name": "Haste"}},
            {"type": "gainSbPoints", "points": 50},
        ]
    })
    assert isinstance(grant.statuses[0], StatusWithPercent)
    assert isinstance(grant.statuses[1], GainResourcePoints)

def test_value_or_placeholder():
    assert Attack(multiplier="X").multiplier == "X"
    assert Attack(multiplier=[1.0, 2.0]).multiplier == [1.0, 2.0]
    with pytest.raises(ValidationError):
        Attack(multiplier="-X")
    with pytest.raises(ValidationError):
        Attack(multiplier=[])

def test_chance_bounds():
    with pytest.raises(ValidationError):
        StatusWithPercent(status=StandardStatus(name="Haste"), chance=150)

def test_merge_count_minimum():
    with pytest.raises(ValidationError):
        StandardStatus(name="Haste", merge_count=1)

def test_use_count_range_requires_a_bound():
    with pytest.raises(ValidationError):
        UseCountRange()
    assert UseCountRange(**{"from": 2}).from_ == 2

def test_simple_range_alias():
    r = SimpleRange(**{"from": 1, "to": 3})
    assert r.from_ == 1
    assert r.model_dump(by_alias=True) == {"from": 1, "to": 3}

def test_extra_fields_forbidden():
    with pytest.raises(ValidationError):
        Attack(multiplier=1.0, bogus=True)

def test_options_require_an_entry():
    with pytest.raises(ValidationError):
        Options[str](options=[])
    cast = CastSkill(skill=Options[str](options=["Fire", "Blizzard"]))
    assert cast.skill.options == ["Fire", "Blizzard"]

def test_nodes_are_frozen():
    attack = Attack(multiplier=1.0)
    with pytest.raises(ValidationError):
        attack.multiplier = 2.0
