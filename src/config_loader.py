"""
Configuration loader for the LAN device bridge
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Dict[str, Any]] = {
    'govee': {
        'multicast_group': '239.255.255.250',
        'request_port': 4001,       # devices listen for scan probes here
        'listen_port': 4002,        # devices answer scan probes here
        'control_port': 4003,       # devices accept devStatus and commands here
        'discovery_timeout_ms': 3000,
        'status_timeout_ms': 1500,
        'receive_poll_ms': 100,
        'buffer_size': 2048
    },
    'roku': {
        'multicast_group': '239.255.255.250',
        'ssdp_port': 1900,
        'search_target': 'roku:ecp',
        'mx': 3,
        'discovery_timeout_seconds': 3,
        'receive_poll_ms': 100,
        'buffer_size': 2048,
        'ecp_port': 8060,
        'device_info_path': '/query/device-info',
        'enrichment_timeout_seconds': 2,
        'enrichment_concurrency': 8,
        'request_timeout_seconds': 6
    },
    'cloud': {
        'base_url': 'https://developer-api.govee.com',
        'timeout_seconds': 10,
        'api_key_header': 'Govee-API-Key',
        'ssl_verify': True,
        'ca_cert_path': None
    },
    'network': {
        'probe_address': '239.255.255.250',
        'probe_port': 1900
    },
    'api': {
        'host': '0.0.0.0',
        'port': 8000,
        'cors_origins': ['*']
    },
    'logging': {
        'level': 'INFO',
        'file': 'logs/lan_bridge.log',
        'console_output': True,
        'timezone': 'UTC'
    }
}

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

        _validate_config(config)
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate section types, ports and timeouts"""
    if not isinstance(config, dict):
        raise ValueError("Configuration root must be a mapping")

    for section, values in config.items():
        if section in DEFAULTS and not isinstance(values, dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")

    for section in DEFAULTS:
        values = config.get(section) or {}
        for key, value in values.items():
            if key.endswith('_port') or (section == 'api' and key == 'port'):
                if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 65535:
                    raise ValueError(f"{section}.{key} must be a port number (1-65535), got {value!r}")
            elif 'timeout' in key or key.endswith('_ms') or key == 'enrichment_concurrency':
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    raise ValueError(f"{section}.{key} must be a positive number, got {value!r}")

    if 'cloud' in config:
        _validate_cloud(config['cloud'])

def _validate_cloud(cloud_config: Dict) -> None:
    """Validate cloud API URL and SSL settings"""
    base_url = cloud_config.get('base_url', DEFAULTS['cloud']['base_url'])
    if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
        raise ValueError(f"cloud.base_url must be an http(s) URL, got {base_url!r}")

    if base_url.startswith('http://'):
        logger.warning("cloud.base_url uses http:// - API keys will be sent unencrypted")

    if not cloud_config.get('ssl_verify', True):
        logger.warning("SSL verification disabled for cloud API")

    ca_cert_path = cloud_config.get('ca_cert_path')
    if ca_cert_path and not Path(ca_cert_path).exists():
        logger.warning(f"Cloud CA certificate not found: {ca_cert_path}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""
    for section, section_defaults in DEFAULTS.items():
        if not config.get(section):
            config[section] = {}
        for key, default_value in section_defaults.items():
            if key not in config[section]:
                config[section][key] = list(default_value) if isinstance(default_value, list) else default_value
    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    timezone_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    try:
        formatter = TimezoneFormatter(log_format, timezone_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown logging timezone '{timezone_name}', falling back to UTC")
        formatter = TimezoneFormatter(log_format, 'UTC')

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={formatter.tz.zone}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "govee": {
            "multicast_group": "239.255.255.250",
            "request_port": 4001,
            "listen_port": 4002,
            "control_port": 4003,
            "discovery_timeout_ms": 3000,
            "status_timeout_ms": 1500,
            "receive_poll_ms": 100
        },
        "roku": {
            "search_target": "roku:ecp",
            "discovery_timeout_seconds": 3,
            "ecp_port": 8060,
            "enrichment_timeout_seconds": 2,
            "enrichment_concurrency": 8,
            "request_timeout_seconds": 6
        },
        "cloud": {
            "base_url": "https://developer-api.govee.com",
            "timeout_seconds": 10,
            "ssl_verify": True
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000,
            "cors_origins": ["*"]
        },
        "logging": {
            "level": "INFO",
            "file": "logs/lan_bridge.log",
            "console_output": True,
            "timezone": "America/New_York"
        }
    }
