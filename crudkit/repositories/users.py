import logging

from crudkit.db.session import Database
from crudkit.models.user import User
from crudkit.repositories.base import GenericRepository
from crudkit.repositories.table import TableAdapter
from crudkit.schemas.user import UserCreate, UserRead, UserUpdate

USER_TABLE = TableAdapter.for_model(
    User,
    insert_shape=UserCreate,
    update_shape=UserUpdate,
    select_shape=UserRead,
)


class UserRepository(GenericRepository):
    def __init__(self, db: Database, logger: logging.Logger | None = None):
        super().__init__(db, USER_TABLE, logger=logger)
