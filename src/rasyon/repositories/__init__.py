from .sqlite_repo import SqliteRepository
from .remote_repo import RemoteDocumentRepository
from .unit_of_work import RepositoryUnitOfWork, UnitOfWork

__all__ = [
    "SqliteRepository",
    "RemoteDocumentRepository",
    "RepositoryUnitOfWork",
    "UnitOfWork",
]
