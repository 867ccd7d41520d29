# src/edumanager/db/__init__.py
# Don't create an engine on package import; callers build one via db.session
from .base import Base, new_id, utcnow

__all__ = ["Base", "new_id", "utcnow"]
