"""
UserRepository for database operations on User model
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from config import PLAN_FREE, PLAN_LIFETIME, PLAN_INSTITUTION, STATUS_ACTIVE
from database_models import User


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (case-insensitive search)

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_by_firebase_uid(self, firebase_uid: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.firebase_uid == firebase_uid)
        )
        return result.scalar_one_or_none()

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - email: str
                - display_name: str
                Optional:
                - firebase_uid: str
                - photo_url: str
                - any subscription_* column

        Returns:
            Created User object
        """
        user = User(**user_data)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def update_user(self, user: User, updates: dict) -> User:
        """
        Update user fields.

        Args:
            user: User object to update
            updates: Dictionary of fields to update (e.g., {"display_name": "Ada"})

        Returns:
            Updated User object
        """
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)

        return await self.save(user)

    async def save(self, user: User) -> User:
        """Persist pending changes on a single user."""
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def list_institution_users(self, institution_id: int) -> List[User]:
        """Users linked to an institution and flagged as institution users."""
        result = await self.db.execute(
            select(User)
            .where(User.institution_id == institution_id, User.is_institution_user.is_(True))
            .order_by(User.id)
        )
        return list(result.scalars().all())

    async def count_institution_users(self, institution_id: int) -> int:
        result = await self.db.execute(
            select(func.count(User.id))
            .where(User.institution_id == institution_id, User.is_institution_user.is_(True))
        )
        return result.scalar_one()

    async def list_expired_personal_subscriptions(self, now: datetime) -> List[User]:
        """
        Active paid subscriptions whose end date has passed.
        Free, lifetime and institution plans never expire by date.
        """
        result = await self.db.execute(
            select(User).where(
                User.subscription_status == STATUS_ACTIVE,
                # All three plans are excluded together, not just the last one listed
                User.subscription_plan.notin_([PLAN_FREE, PLAN_LIFETIME, PLAN_INSTITUTION]),
                User.subscription_end_date.is_not(None),
                User.subscription_end_date < now,
            )
        )
        return list(result.scalars().all())
