import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from adapters.persistence.sqlite.base_repository import SqlAlchemyRepository
from app.models.user import User
from domain.errors import UserNotFound, UsernameConflict

logger = logging.getLogger(__name__)


def normalize_wallet(wallet_address: str) -> str:
    return wallet_address.strip().lower()


class UserRepository(SqlAlchemyRepository[User]):
    def __init__(self, session, level_step: int = 1000):
        super().__init__(session, User)
        self.level_step = level_step

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.get(user_id)

    async def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        stmt = select(User).where(User.wallet_address == normalize_wallet(wallet_address))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_user(self, wallet_address: str) -> User:
        user = User(wallet_address=normalize_wallet(wallet_address), username=None, level=1, total_points=0)
        return await self.add(user)

    async def credit_points(self, user_id: str, delta: int) -> User:
        """
        Server-side increment. Level is recomputed in the same statement so it
        always matches the committed total.
        """
        if delta:
            new_total = User.total_points + delta
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(total_points=new_total, level=1 + new_total // self.level_step)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                raise UserNotFound(user_id)

        user = await self.session.get(User, user_id, populate_existing=True)
        if user is None:
            raise UserNotFound(user_id)
        return user

    async def set_username(self, user_id: str, username: str) -> User:
        user = await self.get(user_id)
        if user is None:
            raise UserNotFound(user_id)

        stmt = select(User.id).where(User.username == username, User.id != user_id)
        if (await self.session.execute(stmt)).first():
            raise UsernameConflict(username)

        user.username = username
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost the race to a concurrent rename
            raise UsernameConflict(username) from e
        return user
