"""
Configuration loader for the Ecocontrol Mesh Server
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ValueError("Configuration root must be a mapping")

        # Apply defaults first so partial files validate against complete sections
        config = _apply_defaults(config)
        _validate_config(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _is_positive_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0

def _validate_config(config: Dict) -> None:
    """Validate configuration values"""
    network = config['network']
    if not network.get('service_fqdn'):
        raise ValueError("network.service_fqdn must not be empty")
    for key in ('request_timeout', 'discovery_timeout', 'max_concurrent_probes'):
        if not _is_positive_number(network[key]):
            raise ValueError(f"network.{key} must be a positive number")
    if not isinstance(network['scan_interval_minutes'], (int, float)) or network['scan_interval_minutes'] < 0:
        raise ValueError("network.scan_interval_minutes must be zero or a positive number")

    polling = config['polling']
    if not _is_positive_number(polling['status_interval_seconds']):
        raise ValueError("polling.status_interval_seconds must be a positive number")

    api = config['api']
    if not isinstance(api['port'], int) or not 0 < api['port'] < 65536:
        raise ValueError("api.port must be a valid TCP port")

    try:
        pytz.timezone(config['logging']['timezone'])
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Unknown logging.timezone: {config['logging']['timezone']}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""
    defaults = {
        'network': {
            'service_fqdn': '_mesh-http._tcp.local',
            'discovery_timeout': 5,
            'request_timeout': 10,
            'max_concurrent_probes': 5,
            'scan_interval_minutes': 30
        },
        'polling': {
            'status_interval_seconds': 300
        },
        'api': {
            'enabled': True,
            'host': '0.0.0.0',
            'port': 8000
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/mesh_server.log',
            'console_output': True,
            'timezone': 'UTC'
        }
    }

    for section, section_defaults in defaults.items():
        if config.get(section) is None:
            config[section] = {}
        for key, default_value in section_defaults.items():
            if key not in config[section]:
                config[section][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, tz_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    tz_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, tz_name)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        if isinstance(handler.formatter, TimezoneFormatter):
            root.removeHandler(handler)
            handler.close()

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={tz_name}, console={log_config.get('console_output', True)}, file={log_file}")
