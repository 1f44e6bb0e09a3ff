"""
Central Signal Registry for Event-Driven Architecture.

Uses blinker namespaces to enable decoupled communication between modules.

Usage:
    # Publisher (sender)
    from notestack_app.core.signals import card_reviewed
    card_reviewed.send(None, user_id=1, card_state_id=2, ...)

    # Subscriber (receiver)
    @card_reviewed.connect
    def on_card_reviewed(sender, **kwargs):
        ...
"""
from blinker import Namespace

# Create namespace for review-related signals
review_signals = Namespace()

# Signal: Fired after a review commits
# Payload: user_id, card_state_id, rating, review_log_id, previous_state, new_state
card_reviewed = review_signals.signal('card_reviewed')

# Signal: Fired after an undo commits
# Payload: user_id, card_state_id, review_log_id
review_undone = review_signals.signal('review_undone')

# Signal: Fired after a bulk (un)suspend commits
# Payload: user_id, suspend, succeeded, skipped
cards_suspended = review_signals.signal('cards_suspended')

# ============================================
# Content Signals
# ============================================
content_signals = Namespace()

# Signal: Fired after card states of a content unit were removed
# Payload: user_id, block_id, deleted_count
card_states_deleted = content_signals.signal('card_states_deleted')
