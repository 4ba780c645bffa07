# app/models/__init__.py

from models.user import User

__all__ = ["User"]
