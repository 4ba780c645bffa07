# app/exceptions/__init__.py

from exceptions.domain_exceptions import (
    DomainException,
    ValidationException,
    PersistenceException
)

__all__ = [
    'DomainException',
    'ValidationException',
    'PersistenceException'
]
