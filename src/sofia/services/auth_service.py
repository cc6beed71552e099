"""Name-based authentication."""

from typing import Optional, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError

from ..repositories.user_repository import UserRepository
from ..repositories.profile_repository import AboutMeRepository
from ..core.security import create_jwt_token
from ..database import User


class AuthService:
    """Finds or creates the user for a name and issues a token."""

    def __init__(self, user_repo: UserRepository, about_me_repo: AboutMeRepository):
        self.user_repo = user_repo
        self.about_me_repo = about_me_repo

    async def authenticate(self, name: str, age: Optional[int] = None) -> Tuple[User, str, bool]:
        """
        Authenticate by name.

        Unknown names get a new user and an empty About Me profile; known
        names get their last visit bumped.

        Returns: (user, token, created)
        """
        name = name.strip()
        user = await self.user_repo.get_by_name(name)
        created = False

        if user:
            await self.user_repo.touch_last_visit(user)
        else:
            try:
                user = await self.user_repo.create(name=name, age=age)
                await self.about_me_repo.create(
                    user_id=user.id,
                    best_life_elements=[],
                    concerns=[],
                )
                created = True
                logger.info(f"Created user {user.id} for name {name!r}")
            except IntegrityError:
                # Concurrent first sign-in with the same name
                await self.user_repo.session.rollback()
                user = await self.user_repo.get_by_name(name)
                if user is None:
                    raise
                await self.user_repo.touch_last_visit(user)

        token = create_jwt_token(user_id=user.id, name=user.name)
        return user, token, created
