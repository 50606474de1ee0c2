# backend/spareparts/services/routing.py
"""
Brand → fulfillment party routing.

Evaluation order (first hit wins):
  0. priority groups, in configured order
  1. exact, case-sensitive registry key
  2. exact, case-insensitive
  3. token overlap (whitespace tokens, case-insensitive, substring either way,
     generic words like "service" ignored)

Registry entries are iterated by party priority (desc) then insertion order,
so "first hit" is stable for a given registry state.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.errors import ValidationError
from ..domain.constants import GENERIC_BRAND_TOKENS
from ..domain.statuses import PartyType

logger = logging.getLogger(__name__)

RULE_PRIORITY_GROUP = "priority_group"
RULE_EXACT = "exact"
RULE_CASE_INSENSITIVE = "case_insensitive"
RULE_TOKEN = "token"


def brand_tokens(value: str) -> List[str]:
    return [t for t in value.casefold().split() if t not in GENERIC_BRAND_TOKENS]


def tokens_overlap(left: Sequence[str], right: Sequence[str]) -> bool:
    return any(a == b or a in b or b in a for a in left for b in right)


@dataclass(frozen=True)
class PartyRef:
    party_id: int
    name: str
    party_type: PartyType
    priority: int = 5


@dataclass(frozen=True)
class RegistryEntry:
    key: str
    party: PartyRef
    seq: int


@dataclass(frozen=True)
class RegistrySnapshot:
    parties: Tuple[PartyRef, ...] = ()
    entries: Tuple[RegistryEntry, ...] = ()

    @classmethod
    def build(cls, parties: Iterable[PartyRef], entries: Iterable[RegistryEntry]) -> "RegistrySnapshot":
        ordered = sorted(entries, key=lambda e: (-e.party.priority, e.seq))
        return cls(parties=tuple(parties), entries=tuple(ordered))

    def party_named(self, name: str, party_type: Optional[PartyType] = None) -> Optional[PartyRef]:
        wanted = name.casefold()
        for p in self.parties:
            if p.name.casefold() == wanted and (party_type is None or p.party_type == party_type):
                return p
        return None


@dataclass(frozen=True)
class PriorityRule:
    """A fixed manufacturer set that always goes to one preferred party."""
    party_name: str
    brands: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, brand: str) -> bool:
        members = {b.casefold() for b in self.brands}
        if brand.casefold() in members:
            return True
        return any(tok in members for tok in brand_tokens(brand))

    @classmethod
    def from_mapping(cls, groups: Mapping[str, Sequence[str]]) -> List["PriorityRule"]:
        return [cls(party_name=name, brands=tuple(brands)) for name, brands in groups.items()]


@dataclass(frozen=True)
class RouteMatch:
    party: PartyRef
    rule: str
    matched_key: str


class RoutingEngine:
    def __init__(self, priority_rules: Sequence[PriorityRule] = ()):
        self._rules: Tuple[PriorityRule, ...] = tuple(priority_rules)

    @property
    def priority_rules(self) -> Tuple[PriorityRule, ...]:
        return self._rules

    def resolve(
        self,
        brand: Optional[str],
        registry: RegistrySnapshot,
        party_type: Optional[PartyType] = None,
    ) -> Optional[RouteMatch]:
        brand = (brand or "").strip()
        if not brand:
            raise ValidationError("Brand is required for routing.")

        for rule in self._rules:
            if not rule.matches(brand):
                continue
            party = registry.party_named(rule.party_name, party_type)
            if party is not None:
                logger.info("route %r -> %s via priority group", brand, party.name)
                return RouteMatch(party=party, rule=RULE_PRIORITY_GROUP, matched_key=rule.party_name)
            logger.warning(
                "priority group %r matched %r but no active %s party has that name",
                rule.party_name, brand, party_type or "fulfillment",
            )

        candidates = [
            e for e in registry.entries
            if party_type is None or e.party.party_type == party_type
        ]
        folded = brand.casefold()
        wanted_tokens = brand_tokens(brand)
        checks: List[Tuple[str, Callable[[RegistryEntry], bool]]] = [
            (RULE_EXACT, lambda e: e.key == brand),
            (RULE_CASE_INSENSITIVE, lambda e: e.key.casefold() == folded),
        ]
        if wanted_tokens:
            checks.append((RULE_TOKEN, lambda e: tokens_overlap(wanted_tokens, brand_tokens(e.key))))

        for rule_name, check in checks:
            for entry in candidates:
                if check(entry):
                    logger.info("route %r -> %s via %s (%r)", brand, entry.party.name, rule_name, entry.key)
                    return RouteMatch(party=entry.party, rule=rule_name, matched_key=entry.key)

        logger.info("route %r unresolved (%d registry entries)", brand, len(candidates))
        return None
