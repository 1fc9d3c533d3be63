# Core building blocks shared by the e_commerce and inventory modules
from .database import get_db, Base, engine, SessionLocal, transaction, init_db
from .exceptions import (
    CatalogError, NotFound, ValidationFailure, InvalidAdjustmentType,
    InsufficientStock, Conflict, LedgerImmutable
)

__all__ = [
    'Base', 'engine', 'get_db', 'SessionLocal', 'transaction', 'init_db',
    'CatalogError', 'NotFound', 'ValidationFailure', 'InvalidAdjustmentType',
    'InsufficientStock', 'Conflict', 'LedgerImmutable'
]
