"""
Adjudicator Name Matching
=========================

Strategies for deciding whether an incoming adjudicator name refers to an
existing node within a division.

The default ContainmentMatcher tolerates spreadsheet variants (titles,
middle names): "João Silva" matches "Dr. João Silva Santos". It can merge
two different people whose names nest; swap in ExactMatcher where that
matters.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, TypeVar

from .normalize import normalize_name

T = TypeVar("T")


class NameMatcher(ABC):
    """Base class for adjudicator name matching strategies"""

    name: str = "base"

    @abstractmethod
    def matches(self, candidate: str, existing: str) -> bool:
        """Whether candidate refers to the same adjudicator as existing"""
        pass

    def find(self, candidate: str, existing: Iterable[T], key=lambda x: x.name) -> Optional[T]:
        """
        First existing item whose name matches.

        Callers pass items in a stable order so ambiguity resolves the
        same way on every run.
        """
        for item in existing:
            if self.matches(candidate, key(item)):
                return item
        return None


class ContainmentMatcher(NameMatcher):
    """Either normalized name is a substring of the other"""

    name = "containment"

    def matches(self, candidate: str, existing: str) -> bool:
        a = normalize_name(candidate)
        b = normalize_name(existing)
        if not a or not b:
            return False
        return a in b or b in a


class ExactMatcher(NameMatcher):
    """Normalized names are equal"""

    name = "exact"

    def matches(self, candidate: str, existing: str) -> bool:
        a = normalize_name(candidate)
        return bool(a) and a == normalize_name(existing)


_matchers = {
    ContainmentMatcher.name: ContainmentMatcher,
    ExactMatcher.name: ExactMatcher,
}


def get_matcher(name: Optional[str] = None) -> NameMatcher:
    """
    Get a matcher by name.

    Unknown or empty names fall back to containment.
    """
    matcher_cls = _matchers.get((name or "").strip().lower(), ContainmentMatcher)
    return matcher_cls()


def list_matchers():
    return sorted(_matchers)
