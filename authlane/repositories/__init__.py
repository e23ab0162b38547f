from authlane.repositories.records import RecordRepository
from authlane.repositories.token import TokenRepository

__all__ = ["RecordRepository", "TokenRepository"]
