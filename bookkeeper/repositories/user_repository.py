from sqlalchemy import func
from sqlalchemy.orm import Session
from bookkeeper.models.user import User


class UserRepository:
    """Repository for User model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_or_create_by_auth_id(self, auth_user_id: str, email: str | None = None) -> User:
        """
        Get user by auth_user_id or create if doesn't exist.

        Called on every authenticated request. The stored email follows the
        identity provider: when the token carries an email that differs from
        the stored one, the stored value is refreshed.

        Args:
            auth_user_id: User ID from the JWT 'sub' claim
            email: Email from the JWT 'email' claim, if present

        Returns:
            User object (either existing or newly created)
        """
        normalized = email.strip().lower() if email else None
        user = self.db.query(User).filter(User.auth_user_id == auth_user_id).first()

        if not user:
            user = User(auth_user_id=auth_user_id, email=normalized)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        elif normalized and user.email != normalized:
            user.email = normalized
            self.db.commit()
            self.db.refresh(user)

        return user

    def get_by_id(self, user_id: int) -> User | None:
        """Get user by internal ID"""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> list[User]:
        """Get users whose email matches case-insensitively"""
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .all()
        )
