from authlane.uow.base import UnitOfWork
from authlane.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

__all__ = ["SQLAlchemyUnitOfWork", "UnitOfWork"]
