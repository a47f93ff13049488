from typing import Any, Iterable

# Recipe quantities are written for four adults.
BASE_PORTIONS = 4

AGE_GROUP_WEIGHTS = {
    "toddler": 0.5,
    "teenager": 1.1,
    "adult": 1.0,
}


def _age_group(member: Any) -> str:
    if isinstance(member, dict):
        return member.get("age_group") or "adult"
    return getattr(member, "age_group", None) or "adult"


def compute_portion_multiplier(family_members: Iterable[Any]) -> float:
    """Weighted headcount over the four-adult baseline.

    Unknown age groups weigh as adults. Weights are multiples of 0.1 over a
    base of 4, so three decimals keep the ratio exact (3 adults + 1 toddler
    -> 0.875).
    """
    total = sum(AGE_GROUP_WEIGHTS.get(_age_group(m), 1.0) for m in family_members)
    return round(total / BASE_PORTIONS, 3)
