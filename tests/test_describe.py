import pytest
import mrp.engine.describe as describe_module
from mrp.engine.describe import DescriptionCache, describe_ability, describe_all
from mrp.engine.models import AbilityMetadata
from mrp.engine.type_helpers import RenderOptions


@pytest.fixture
def blaze():
    return AbilityMetadata(id=1, name="Blaze", effects="Single attack (5.00)", school="Black Magic",
                           type="BLK", element=["Fire"], sb_points=65)


@pytest.fixture
def related():
    meteor = AbilityMetadata(id=2, name="Meteor", effects="Three random attacks (2.00 each)",
                             school="Black Magic", type="BLK")
    return {"Meteor": meteor}


def test_describe_with_school_and_sb_points(blaze):
    result = describe_ability(blaze)
    assert result.notation == "magic 5.0 fire (B.Mag) [65 SB pts]"
    assert not result.is_uncertain
    assert result.trail == []


def test_suffixes_follow_options(blaze):
    options = RenderOptions(include_school=False, include_sb_points=False)
    assert describe_ability(blaze, options).notation == "magic 5.0 fire"


def test_related_ability_is_described_inline(related):
    ability = AbilityMetadata(id=3, name="Doom Caster", effects="casts Meteor after using a Black Magic ability")
    result = describe_ability(ability, related=related)
    assert result.notation == "(B.Mag ⤇ rand. magic 6.0/3)"


def test_mutual_references_terminate():
    alpha = AbilityMetadata(id=1, name="Alpha", effects="casts Beta after using a Black Magic ability")
    beta = AbilityMetadata(id=2, name="Beta", effects="casts Alpha after using a Black Magic ability")
    result = describe_ability(alpha, related={"Alpha": alpha, "Beta": beta})
    assert result.notation == "(B.Mag ⤇ (B.Mag ⤇ Alpha))"
    assert "[Warn] Recursive related ability skipped (name=Alpha)" in result.trail
    assert not any("Unknown related ability" in line for line in result.trail)


def test_nested_description_keeps_its_own_trail(related):
    cache = DescriptionCache()
    ability = AbilityMetadata(id=3, name="Doom Caster",
                              effects="casts Meteor after using a Black Magic ability; flips a coin")
    result = describe_ability(ability, related=related, cache=cache)
    assert "[Warn] Unparsed fragment (text=flips a coin)" in result.trail

    nested = cache.get(2, RenderOptions(include_school=False, include_sb_points=False))
    assert nested.notation == "rand. magic 6.0/3"
    assert not any("flips a coin" in line for line in nested.trail)


def test_uncertain_description():
    ability = AbilityMetadata(id=4, name="Odd", effects="grants Mystery? to the user")
    result = describe_ability(ability)
    assert result.is_uncertain
    assert result.notation == "self Mystery?"


def test_unparsed_description_falls_back_to_text():
    ability = AbilityMetadata(id=5, name="Odd", effects="Does something strange")
    result = describe_ability(ability)
    assert result.parse.failed
    assert result.notation == "Does something strange"


def test_failure_is_isolated(blaze, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(describe_module, "format_clauses", boom)
    result = describe_ability(blaze, RenderOptions(include_school=False, include_sb_points=False))
    assert result.notation == "Single attack (5.00)"
    assert result.parse.failed and result.is_uncertain
    assert any(line.startswith("[Error] Failed to describe ability") for line in result.trail)


def test_cache_reuses_entries(blaze):
    cache = DescriptionCache()
    first = describe_ability(blaze, cache=cache)
    assert describe_ability(blaze, cache=cache) is first
    assert len(cache) == 1
    describe_ability(blaze, RenderOptions(abbreviate=True), cache=cache)
    assert len(cache) == 2
    assert DescriptionCache.key(1, RenderOptions()) in cache


def test_cache_evicts_oldest(blaze, related):
    cache = DescriptionCache(max_entries=1)
    describe_ability(blaze, cache=cache)
    describe_ability(related["Meteor"], cache=cache)
    assert len(cache) == 1
    assert cache.get(1, RenderOptions()) is None
    assert cache.get(2, RenderOptions()) is not None
    cache.clear()
    assert len(cache) == 0


def test_describe_all_matches_serial(blaze, related):
    abilities = [blaze, related["Meteor"]]
    serial = describe_all(abilities, related=related)
    parallel = describe_all(abilities, related=related, cache=DescriptionCache(), workers=4)
    assert sorted(parallel) == [1, 2]
    assert {k: v.notation for k, v in parallel.items()} == {k: v.notation for k, v in serial.items()}
