"""
Centralized Default Configuration for Notestack.

This file is the "Source of Truth" for the scheduling and review settings.
These values are used as fallbacks when a key is missing from ``app.config``.
"""

DEFAULT_APP_CONFIGS = {
    # --- FSRS Scheduling ---
    'FSRS_DESIRED_RETENTION': 0.9,
    'FSRS_MAX_INTERVAL': 730,
    'FSRS_LEARNING_FLOOR_MINUTES': 1,

    # --- Leech Detection ---
    'LEECH_LAPSE_THRESHOLD': 5,        # leech when lapses > threshold
    'LEECH_RETENTION_THRESHOLD': 40,   # leech when retention % < threshold
    'LEECH_MIN_REVIEWS': 5,            # fewer logs -> retention unknown
    'LEECH_RETENTION_WINDOW': 20,      # most recent logs per card

    # --- Queue Limits ---
    'QUEUE_DUE_LIMIT': 50,
    'QUEUE_NEW_LIMIT': 20,
    'QUEUE_REVIEW_LIMIT': 100,
    'QUEUE_BUCKET_LIMIT': 50,
}
