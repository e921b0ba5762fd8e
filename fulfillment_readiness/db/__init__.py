from fulfillment_readiness.config import config
from .connection import db, session_scope, DatabaseConnection, DatabaseConfig
from .interface import StockRepository
from .sql_repository import SqlAlchemyRepository
from .supabase_repository import SupabaseRepository


def create_repository(connection: DatabaseConnection = None) -> StockRepository:
    """Build the repository for the configured database type.

    Args:
        connection: Connection to use, the process-wide one by default

    Returns:
        SupabaseRepository for ``supabase``, SqlAlchemyRepository otherwise
    """
    connection = connection or db
    if connection.db_type == 'supabase':
        return SupabaseRepository(
            connection.get_supabase(),
            max_retries=config.resolution_config['decrement_max_retries']
        )
    return SqlAlchemyRepository(connection.session_factory)


__all__ = [
    'db',
    'session_scope',
    'DatabaseConnection',
    'DatabaseConfig',
    'StockRepository',
    'SqlAlchemyRepository',
    'SupabaseRepository',
    'create_repository'
]
