# File: notestack_app/modules/auth/interface.py
from notestack_app.core.error_handlers import AuthorizationError


class AuthInterface:
    """Access-control gateway used by every public review operation."""

    @staticmethod
    def require_owner(resource_user_id: int, user_id: int, message: str = 'Access denied') -> None:
        """Raise AuthorizationError unless ``user_id`` owns the resource."""
        if resource_user_id != user_id:
            raise AuthorizationError(message)
