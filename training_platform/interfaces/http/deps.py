from fastapi import Depends
from sqlalchemy.orm import Session

from ...infrastructure.db import get_db
from ...infrastructure.repositories import SqlAlchemyUnitOfWork
from ...infrastructure.security import PasswordHasher


def get_uow(db: Session = Depends(get_db)) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(db)


def get_hasher() -> PasswordHasher:
    return PasswordHasher()
