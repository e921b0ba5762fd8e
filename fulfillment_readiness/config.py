import os
import configparser
from pathlib import Path

class Config:
    """Configuration manager for the Fulfillment Readiness engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_dir = Path(os.getenv('FULFILLMENT_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'type': 'postgresql',
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'fulfillment',
            'username': 'postgres',
            'password': 'postgres',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800',
            'echo': 'False'
        }

        self._config['SUPABASE'] = {
            'url': '',
            'key': ''
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True',
            'file_output': 'True'
        }

        self._config['RESOLUTION'] = {
            'max_workers': '8',
            'decrement_max_retries': '5',
            'placeholder_reason': 'auto_detected',
            'location_cache_size': '256',
            'location_cache_ttl_seconds': '300',
            'normalize_skus': 'True'
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_db_url(self):
        """Generate SQLAlchemy database URL.

        A full ``url`` in the DATABASE section wins over the individual parts.
        """
        url = self.get('DATABASE', 'url')
        if url:
            return url

        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')
        database = self.get('DATABASE', 'database', 'fulfillment')

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', True)
        }

    @property
    def supabase_config(self):
        """Get Supabase configuration, environment variables first."""
        return {
            'url': os.getenv('SUPABASE_URL') or self.get('SUPABASE', 'url', ''),
            'key': os.getenv('SUPABASE_KEY') or self.get('SUPABASE', 'key', '')
        }

    @property
    def resolution_config(self):
        """Get resolution engine configuration."""
        return {
            'max_workers': self.get_int('RESOLUTION', 'max_workers', 8),
            'decrement_max_retries': self.get_int('RESOLUTION', 'decrement_max_retries', 5),
            'placeholder_reason': self.get('RESOLUTION', 'placeholder_reason', 'auto_detected'),
            'location_cache_size': self.get_int('RESOLUTION', 'location_cache_size', 256),
            'location_cache_ttl_seconds': self.get_float('RESOLUTION', 'location_cache_ttl_seconds', 300.0),
            'normalize_skus': self.get_boolean('RESOLUTION', 'normalize_skus', True)
        }

# Global config instance
config = Config()
