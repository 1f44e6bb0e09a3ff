from .core import FSRSEngine, format_interval
from .transitions import is_lapse, is_legal_transition, next_card_state

__all__ = ["FSRSEngine", "format_interval", "is_lapse", "is_legal_transition", "next_card_state"]
