"""Card state machine: New -> Learning/Review, Review <-> Relearning."""
from __future__ import annotations
from ..schemas import CardStateEnum, Rating

LEGAL_TRANSITIONS = {
    CardStateEnum.NEW: frozenset({CardStateEnum.LEARNING, CardStateEnum.REVIEW}),
    CardStateEnum.LEARNING: frozenset({CardStateEnum.LEARNING, CardStateEnum.REVIEW}),
    CardStateEnum.REVIEW: frozenset({CardStateEnum.REVIEW, CardStateEnum.RELEARNING}),
    CardStateEnum.RELEARNING: frozenset({CardStateEnum.RELEARNING, CardStateEnum.REVIEW}),
}


def next_card_state(current: str, rating: int) -> str:
    """FSM position after rating a card in ``current``."""
    if current in (CardStateEnum.NEW, CardStateEnum.LEARNING):
        # Only Easy graduates out of the learning phase
        return CardStateEnum.REVIEW if rating == Rating.Easy else CardStateEnum.LEARNING
    if current == CardStateEnum.REVIEW:
        return CardStateEnum.RELEARNING if rating == Rating.Again else CardStateEnum.REVIEW
    if current == CardStateEnum.RELEARNING:
        return CardStateEnum.REVIEW if rating >= Rating.Good else CardStateEnum.RELEARNING
    raise ValueError(f"Unknown card state: {current}")


def is_legal_transition(current: str, target: str) -> bool:
    return target in LEGAL_TRANSITIONS.get(current, ())


def is_lapse(current: str, target: str) -> bool:
    """A lapse is forgetting a graduated card."""
    return current == CardStateEnum.REVIEW and target == CardStateEnum.RELEARNING
