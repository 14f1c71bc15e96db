from .engine import Base, get_engine, init_db  # noqa: F401
from .repository import Repository, create_repository  # noqa: F401

__all__ = [
    "Base",
    "get_engine",
    "init_db",
    "Repository",
    "create_repository",
]
