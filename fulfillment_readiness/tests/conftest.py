"""
Shared test setup: point the engine at a throwaway configuration directory
before the package reads its settings.
"""
import configparser
import os
import tempfile
from pathlib import Path

_config_dir = Path(tempfile.mkdtemp(prefix='fulfillment-config-'))
_settings = configparser.ConfigParser(interpolation=None)
_settings['DATABASE'] = {'type': 'sqlite', 'url': 'sqlite://'}
_settings['LOGGING'] = {
    'level': 'DEBUG',
    'directory': str(_config_dir / 'logs'),
    'console_output': 'False',
    'file_output': 'False'
}
_settings['RESOLUTION'] = {
    'max_workers': '4',
    'decrement_max_retries': '3',
    'placeholder_reason': 'auto_detected',
    'location_cache_size': '32',
    'location_cache_ttl_seconds': '60',
    'normalize_skus': 'True'
}
with open(_config_dir / 'settings.ini', 'w') as settings_file:
    _settings.write(settings_file)

os.environ.setdefault('FULFILLMENT_CONFIG_DIR', str(_config_dir))
