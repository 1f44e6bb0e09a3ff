# File: notestack_app/modules/fsrs/services/settings_service.py
from __future__ import annotations
from typing import Any, Dict
from flask import current_app
from notestack_app.core.defaults import DEFAULT_APP_CONFIGS
from ..config import FSRSDefaultConfig
from ..engine.core import FSRSEngine


class FSRSSettingsService:
    """Scheduler and leech settings: ``app.config`` first, then defaults."""

    DEFAULTS: Dict[str, Any] = {
        'FSRS_DESIRED_RETENTION': DEFAULT_APP_CONFIGS.get('FSRS_DESIRED_RETENTION', FSRSDefaultConfig.FSRS_DESIRED_RETENTION),
        'FSRS_MAX_INTERVAL': DEFAULT_APP_CONFIGS.get('FSRS_MAX_INTERVAL', FSRSDefaultConfig.FSRS_MAX_INTERVAL),
        'FSRS_GLOBAL_WEIGHTS': DEFAULT_APP_CONFIGS.get('FSRS_GLOBAL_WEIGHTS', FSRSDefaultConfig.FSRS_GLOBAL_WEIGHTS),
        'FSRS_LEARNING_FLOOR_MINUTES': DEFAULT_APP_CONFIGS.get('FSRS_LEARNING_FLOOR_MINUTES', FSRSDefaultConfig.FSRS_LEARNING_FLOOR_MINUTES),
        'LEECH_LAPSE_THRESHOLD': DEFAULT_APP_CONFIGS.get('LEECH_LAPSE_THRESHOLD', 5),
        'LEECH_RETENTION_THRESHOLD': DEFAULT_APP_CONFIGS.get('LEECH_RETENTION_THRESHOLD', 40),
        'LEECH_MIN_REVIEWS': DEFAULT_APP_CONFIGS.get('LEECH_MIN_REVIEWS', 5),
        'LEECH_RETENTION_WINDOW': DEFAULT_APP_CONFIGS.get('LEECH_RETENTION_WINDOW', 20),
        'QUEUE_DUE_LIMIT': DEFAULT_APP_CONFIGS.get('QUEUE_DUE_LIMIT', 50),
        'QUEUE_NEW_LIMIT': DEFAULT_APP_CONFIGS.get('QUEUE_NEW_LIMIT', 20),
        'QUEUE_REVIEW_LIMIT': DEFAULT_APP_CONFIGS.get('QUEUE_REVIEW_LIMIT', 100),
        'QUEUE_BUCKET_LIMIT': DEFAULT_APP_CONFIGS.get('QUEUE_BUCKET_LIMIT', 50),
    }

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        value = current_app.config.get(key)
        if value is not None:
            return value
        if key in cls.DEFAULTS:
            return cls.DEFAULTS[key]
        return default

    @classmethod
    def get_fsrs_params(cls) -> Dict[str, Any]:
        return {
            'desired_retention': float(cls.get('FSRS_DESIRED_RETENTION')),
            'max_interval': float(cls.get('FSRS_MAX_INTERVAL')),
            'w': cls.get('FSRS_GLOBAL_WEIGHTS'),
            'learning_floor_minutes': float(cls.get('FSRS_LEARNING_FLOOR_MINUTES')),
        }

    @classmethod
    def build_engine(cls) -> FSRSEngine:
        """Engine configured from the current app."""
        params = cls.get_fsrs_params()
        return FSRSEngine(
            custom_weights=params['w'],
            desired_retention=params['desired_retention'],
            max_interval=params['max_interval'],
            learning_floor_minutes=params['learning_floor_minutes'],
        )
