from .config import config
from .db import db, session_scope, create_repository
from .logging_setup import logger, get_logger
from .exceptions import (
    FulfillmentError, StorageError, ValidationError, SkuNotRegisteredError,
    InsufficientStockError, MappingNotFoundError, CompositionMissingError
)
from .models import FulfillmentStatus, SupplyStatus, CombinedStatus
from .services.engine import FulfillmentReadinessEngine

__all__ = [
    'config',
    'db',
    'session_scope',
    'create_repository',
    'logger',
    'get_logger',
    'FulfillmentError',
    'StorageError',
    'ValidationError',
    'SkuNotRegisteredError',
    'InsufficientStockError',
    'MappingNotFoundError',
    'CompositionMissingError',
    'FulfillmentStatus',
    'SupplyStatus',
    'CombinedStatus',
    'FulfillmentReadinessEngine'
]
