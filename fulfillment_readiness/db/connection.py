# fulfillment_readiness/db/connection.py
from typing import Dict, Any, Literal
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from supabase import create_client, Client

from fulfillment_readiness.config import config
from fulfillment_readiness.exceptions import DatabaseError
from fulfillment_readiness.models import Base

DatabaseType = Literal["postgresql", "sqlite", "supabase"]

class DatabaseConfig:
    """Configuration for database connections."""

    @staticmethod
    def get_db_type() -> DatabaseType:
        """Get database type from configuration."""
        db_type = config.get('DATABASE', 'type', default='postgresql').lower()
        # Remove any comments from the value
        db_type = db_type.split('#')[0].strip()
        return db_type

    @staticmethod
    def get_sql_config() -> Dict[str, Any]:
        """Get SQLAlchemy engine configuration."""
        return {
            'pool_size': config.get_int('DATABASE', 'pool_size', default=10),
            'max_overflow': config.get_int('DATABASE', 'max_overflow', default=20),
            'pool_timeout': config.get_int('DATABASE', 'pool_timeout', default=30),
            'pool_recycle': config.get_int('DATABASE', 'pool_recycle', default=1800),
            'echo': config.get_boolean('DATABASE', 'echo', default=False)
        }

    @staticmethod
    def get_supabase_config() -> Dict[str, str]:
        """Get Supabase connection configuration."""
        return config.supabase_config

class DatabaseConnection:
    """Database connection handler for SQL databases and Supabase."""

    def __init__(self, db_type: DatabaseType = None, url: str = None):
        """Create a connection handler.

        Args:
            db_type: Override for the configured database type
            url: Override for the configured SQLAlchemy URL
        """
        self._engine = None
        self._SessionLocal = None
        self._supabase = None
        self._db_type = db_type
        self._url = url

    def initialize(self):
        """Initialize the database connection based on type."""
        db_type = self._db_type or DatabaseConfig.get_db_type()

        if db_type == "supabase":
            self._db_type = "supabase"
            self._initialize_supabase()
        elif db_type in ("postgresql", "sqlite"):
            self._db_type = db_type
            self._initialize_sql()
        else:
            raise DatabaseError(f"Unknown database type: {db_type}")

    def _initialize_sql(self):
        """Initialize a SQLAlchemy engine."""
        try:
            sql_config = DatabaseConfig.get_sql_config()
            connection_string = self._url or config.get_db_url()

            if self._db_type == "sqlite":
                self._engine = create_engine(
                    connection_string,
                    echo=sql_config['echo'],
                    connect_args={'timeout': 30, 'check_same_thread': False}
                )
            else:
                self._engine = create_engine(
                    connection_string,
                    pool_size=sql_config['pool_size'],
                    max_overflow=sql_config['max_overflow'],
                    pool_timeout=sql_config['pool_timeout'],
                    pool_recycle=sql_config['pool_recycle'],
                    echo=sql_config['echo']
                )

            self._SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self._engine
            )

            self._test_sql_connection()

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to initialize {self._db_type} connection: {str(e)}")

    def _initialize_supabase(self):
        """Initialize Supabase connection."""
        try:
            supabase_config = DatabaseConfig.get_supabase_config()

            if not supabase_config['url'] or not supabase_config['key']:
                raise ValueError("Supabase URL and key must be provided")

            self._supabase = create_client(
                supabase_config['url'],
                supabase_config['key']
            )

        except Exception as e:
            raise DatabaseError(f"Failed to initialize Supabase connection: {str(e)}")

    def _test_sql_connection(self):
        """Test SQL connection."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            raise DatabaseError(f"{self._db_type} connection test failed: {str(e)}")

    def _require_sql(self, what):
        if self._db_type is None or (self._db_type != "supabase" and self._engine is None):
            self.initialize()
        if self._db_type == "supabase":
            raise DatabaseError(f"{what} is only available for SQL connections")

    @contextmanager
    def session_scope(self) -> Session:
        """Provide transaction scope for database operations."""
        self._require_sql("session_scope")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @property
    def session_factory(self) -> sessionmaker:
        """Get the session factory (SQL only)."""
        self._require_sql("session_factory")
        return self._SessionLocal

    def get_supabase(self) -> Client:
        """Get Supabase client (Supabase only)."""
        if self._db_type is None:
            self.initialize()
        if self._db_type != "supabase":
            raise DatabaseError("get_supabase is only available for Supabase connections")

        return self._supabase

    @property
    def engine(self):
        """Get SQLAlchemy engine (SQL only)."""
        self._require_sql("engine")
        return self._engine

    @property
    def db_type(self) -> DatabaseType:
        """Get current database type."""
        return self._db_type or DatabaseConfig.get_db_type()

    def create_all_tables(self):
        """Create all tables defined in the models (SQL only)."""
        Base.metadata.create_all(bind=self.engine)

    def drop_all_tables(self):
        """Drop all tables defined in the models (SQL only)."""
        Base.metadata.drop_all(bind=self.engine)

# Process-wide connection, initialized lazily on first use
db = DatabaseConnection()

@contextmanager
def session_scope():
    """Context manager for database sessions."""
    with db.session_scope() as session:
        yield session
