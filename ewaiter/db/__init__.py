from ewaiter.db.base import Base
from ewaiter.db.session import build_engine, build_sessionmaker

__all__ = ["Base", "build_engine", "build_sessionmaker"]
