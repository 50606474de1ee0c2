import pytest

from spareparts.core.errors import ValidationError
from spareparts.domain.statuses import PartyType
from spareparts.services.routing import (
    PartyRef, PriorityRule, RegistryEntry, RegistrySnapshot, RoutingEngine,
    RULE_EXACT, RULE_CASE_INSENSITIVE, RULE_PRIORITY_GROUP, RULE_TOKEN,
    brand_tokens, tokens_overlap,
)

COMPLUS = PartyRef(1, "ComPlus", PartyType.PARTNER, priority=9)
CANDY_SVC = PartyRef(2, "Candy Service", PartyType.SUPPLIER)
ELECTROLUX = PartyRef(3, "Electrolux", PartyType.SUPPLIER)
ELICA = PartyRef(4, "Elica Service", PartyType.SUPPLIER)
EL_PARTS = PartyRef(5, "EL Parts", PartyType.SUPPLIER)


def snapshot(*pairs, parties=None):
    entries = [RegistryEntry(key=k, party=p, seq=i) for i, (k, p) in enumerate(pairs, start=1)]
    if parties is None:
        parties = {p.party_id: p for _, p in pairs}.values()
    return RegistrySnapshot.build(parties, entries)


@pytest.fixture
def registry():
    return snapshot(
        ("Candy Service", CANDY_SVC),
        ("Electrolux", ELECTROLUX),
        ("Elica Service", ELICA),
        parties=[COMPLUS, CANDY_SVC, ELECTROLUX, ELICA],
    )


@pytest.fixture
def engine():
    return RoutingEngine(PriorityRule.from_mapping({"ComPlus": ["Candy", "Hoover", "Rosieres", "Iberna"]}))


def test_brand_tokens_drop_generic_words():
    assert brand_tokens("Elica Service") == ["elica"]
    assert brand_tokens("Gorenje  Servis delovi") == ["gorenje"]
    assert brand_tokens("Service") == []


def test_tokens_overlap_counts_substrings_both_ways():
    assert tokens_overlap(["bosch"], ["bosch-siemens"])
    assert tokens_overlap(["bosch-siemens"], ["bosch"])
    assert not tokens_overlap(["elica"], ["electrolux"])


def test_exact_match_is_deterministic(engine, registry):
    results = {engine.resolve("Electrolux", registry).party for _ in range(5)}
    assert results == {ELECTROLUX}
    assert engine.resolve("Electrolux", registry).rule == RULE_EXACT


def test_exact_beats_earlier_token_candidate(engine):
    reg = snapshot(("Electrolux Parts", EL_PARTS), ("Electrolux", ELECTROLUX))
    match = engine.resolve("Electrolux", reg)
    assert match.party == ELECTROLUX
    assert match.rule == RULE_EXACT


def test_case_insensitive_before_token(engine):
    reg = snapshot(("Electrolux Parts", EL_PARTS), ("Electrolux", ELECTROLUX))
    match = engine.resolve("ELECTROLUX", reg)
    assert match.party == ELECTROLUX
    assert match.rule == RULE_CASE_INSENSITIVE


def test_token_overlap_ignores_generic_words(engine, registry):
    match = engine.resolve("Electrolux Service", registry)
    assert match.party == ELECTROLUX
    assert match.rule == RULE_TOKEN
    assert match.matched_key == "Electrolux"

    assert engine.resolve("Elica", registry).party == ELICA


def test_generic_word_alone_never_matches(engine, registry):
    assert engine.resolve("Service", registry) is None


def test_priority_group_wins_over_registry(engine, registry):
    match = engine.resolve("Candy", registry)
    assert match.party == COMPLUS
    assert match.rule == RULE_PRIORITY_GROUP

    # also with noise around the brand, and regardless of case
    assert engine.resolve("candy service", registry).party == COMPLUS
    assert engine.resolve("Hoover", registry).party == COMPLUS


def test_priority_group_without_party_falls_through(engine):
    reg = snapshot(("Candy Service", CANDY_SVC))
    match = engine.resolve("Candy", reg)
    assert match.party == CANDY_SVC
    assert match.rule == RULE_TOKEN


def test_party_type_filter(engine, registry):
    # ComPlus is a partner, so a supplier-only request skips the priority group
    match = engine.resolve("Candy", registry, PartyType.SUPPLIER)
    assert match.party == CANDY_SVC
    assert engine.resolve("Electrolux", registry, PartyType.PARTNER) is None


def test_higher_priority_wins_a_tie():
    low = PartyRef(10, "Low", PartyType.SUPPLIER, priority=3)
    high = PartyRef(11, "High", PartyType.SUPPLIER, priority=8)
    reg = snapshot(("Beko Parts", low), ("Beko Home", high))
    assert RoutingEngine().resolve("Beko", reg).party == high


def test_ties_go_to_insertion_order():
    first = PartyRef(10, "First", PartyType.SUPPLIER)
    second = PartyRef(11, "Second", PartyType.SUPPLIER)
    reg = snapshot(("Beko Parts", first), ("Beko Home", second))
    assert RoutingEngine().resolve("Beko", reg).party == first


def test_unresolved_returns_none(engine, registry):
    assert engine.resolve("Vox", registry) is None


@pytest.mark.parametrize("brand", [None, "", "   "])
def test_missing_brand_is_validation_error(engine, registry, brand):
    with pytest.raises(ValidationError):
        engine.resolve(brand, registry)
