from typing import Optional
from ..models import User


class AuthService:

    @staticmethod
    def authenticate_user(username: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, else None."""
        user = User.query.filter_by(username=username).first()
        if user is None or not user.check_password(password):
            return None
        return user
