"""
Match predicates deciding whether a ground-truth event confirms a candidate

Every policy requires the same item and domain; they differ in how the user id
is compared.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Type

from ..events import GroundTruthEvent, PredictionCandidate


class MatchPolicy(ABC):
    """Base class for ground-truth match predicates"""

    name: str = ""

    def matches(self, event: GroundTruthEvent, candidate: PredictionCandidate) -> bool:
        if event.item_id != candidate.item_id or event.domain_id != candidate.domain_id:
            return False
        return self.user_matches(event, candidate)

    @abstractmethod
    def user_matches(self, event: GroundTruthEvent, candidate: PredictionCandidate) -> bool:
        ...


class ItemDomainPolicy(MatchPolicy):
    """Item and domain suffice; the user is ignored"""

    name = "item"

    def user_matches(self, event: GroundTruthEvent, candidate: PredictionCandidate) -> bool:
        return True


class ExactUserPolicy(MatchPolicy):
    """The clicking user must be the user the recommendation was served to"""

    name = "user"

    def user_matches(self, event: GroundTruthEvent, candidate: PredictionCandidate) -> bool:
        return candidate.has_user and event.user_id == candidate.user_id


class UnknownUserWildcardPolicy(MatchPolicy):
    """Exact user match, except that an unknown user never disqualifies a match"""

    name = "unknown-user-wildcard"

    def user_matches(self, event: GroundTruthEvent, candidate: PredictionCandidate) -> bool:
        if not candidate.has_user:
            return True
        return event.user_id == candidate.user_id


POLICIES: Dict[str, Type[MatchPolicy]] = {
    policy.name: policy for policy in (ItemDomainPolicy, ExactUserPolicy, UnknownUserWildcardPolicy)
}

DEFAULT_POLICY = UnknownUserWildcardPolicy.name


def available_policies() -> List[str]:
    return sorted(POLICIES)


def get_policy(name: str = DEFAULT_POLICY) -> MatchPolicy:
    """Instantiate a match policy by name"""
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown match policy '{name}', expected one of {available_policies()}"
        ) from None
