# File: notestack_app/modules/content/interface.py
from typing import Dict, Iterable, List, Optional
from notestack_app.core.extensions import db
from .models import ContentUnit


class ContentInterface:
    """Read-only gateway to content units for the review engine."""

    @staticmethod
    def get_unit(block_id: int) -> Optional[ContentUnit]:
        return db.session.get(ContentUnit, block_id)

    @staticmethod
    def get_units(block_ids: Iterable[int]) -> Dict[int, ContentUnit]:
        """Bulk fetch units by id; missing ids are absent from the result."""
        ids = list(set(block_ids))
        if not ids:
            return {}
        units = ContentUnit.query.filter(ContentUnit.block_id.in_(ids)).all()
        return {unit.block_id: unit for unit in units}

    @staticmethod
    def get_document_units(document_id: int) -> List[ContentUnit]:
        """Card units of a document in position order."""
        return (
            ContentUnit.query
            .filter_by(document_id=document_id, is_card=True)
            .order_by(ContentUnit.position, ContentUnit.block_id)
            .all()
        )

    @staticmethod
    def is_direction_enabled(unit: Optional[ContentUnit], direction: str) -> bool:
        return unit is not None and direction in unit.enabled_directions
