# File: notestack_app/modules/fsrs/services/exam_signal.py
"""
Optional exam signal.

An external exam feature can register a provider that flags content units
belonging to an upcoming exam. Queue entries get annotated with the result;
ordering never depends on it.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional
from flask import current_app

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'exam_signal_provider'

# provider(user_id, block_ids) -> {block_id: exam metadata}
ExamSignalProvider = Callable[[int, List[int]], Dict[int, Dict[str, Any]]]


def register_exam_signal_provider(app, provider: Optional[ExamSignalProvider]) -> None:
    """Install (or with ``None`` remove) the exam provider of an app."""
    if provider is None:
        app.extensions.pop(EXTENSION_KEY, None)
    else:
        app.extensions[EXTENSION_KEY] = provider


def get_exam_signals(user_id: int, block_ids: Iterable[int]) -> Dict[int, Dict[str, Any]]:
    provider = current_app.extensions.get(EXTENSION_KEY)
    ids = sorted(set(block_ids))
    if provider is None or not ids:
        return {}
    return provider(user_id, ids) or {}


def annotate_entries(user_id: int, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Set ``exam_priority``/``exam`` on queue entries in place; order untouched."""
    signals = get_exam_signals(user_id, (entry['card_state']['block_id'] for entry in entries))
    for entry in entries:
        meta = signals.get(entry['card_state']['block_id'])
        entry['exam_priority'] = meta is not None
        entry['exam'] = meta
    if signals:
        logger.debug(f"[EXAM] Annotated {sum(1 for e in entries if e['exam_priority'])} entries for user {user_id}")
    return entries
