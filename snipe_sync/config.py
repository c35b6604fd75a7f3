"""Configuration management for the application with type safety and masking."""

import os
import json
import logging
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv, find_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Config:
    """Application configuration handler backed by the environment and .env files."""
    
    # Default values for optional configuration
    DEFAULTS = {
        'LOG_LEVEL': 'INFO',
        'LOG_FILE': 'snipe_sync.log',
        'HTTP_TIMEOUT': 30,
        'SNIPE_IT_PAGE_SIZE': 500,
        'SNIPE_IT_USER_SEARCH_LIMIT': 50,
        'JIRA_LOCATION_FIELD': 'customfield_11213',
        'JIRA_COMPANY_FIELD': 'customfield_11337',
        'JIRA_ACCESSORY_TYPE_FIELD': 'customfield_11745',
        'CUSTOM_FIELD_CATEGORIES': {
            '11720': 'Headphones',
            '11724': 'Keyboard',
            '11726': 'Mouse',
            '11725': 'Monitor',
            '11727': 'Miscellaneous Hardware',
            '11728': 'Offsite Equipment',
        },
        'FIELD_SYNC_WORKERS': 6,
        'JIRA_POST_SUMMARY_COMMENT': False,
        'WEBHOOK_HOST': '0.0.0.0',
        'WEBHOOK_PORT': 8080,
    }
    
    # Required configuration keys
    REQUIRED_VARS = [
        'SNIPE_IT_BASE_URL',
        'SNIPE_IT_TOKEN',
        'JIRA_BASE_URL',
        'JIRA_EMAIL',
        'JIRA_API_TOKEN',
    ]
    
    # Sensitive keys that should be masked in logs
    SENSITIVE_KEYS = [
        'SNIPE_IT_TOKEN',
        'JIRA_API_TOKEN',
        'WEBHOOK_SHARED_SECRET',
    ]
    
    def __init__(self, env_file: Optional[str] = None, reload: bool = False):
        """
        Initialize configuration.
        
        Args:
            env_file: Path to .env file (optional)
            reload: Force reload of environment variables
        """
        self.env_file = env_file or find_dotenv(usecwd=True)
        self._cache: Dict[str, Any] = {}
        
        self.load_env(reload)
        self.validate()
        self._log_config_status()
        
    def load_env(self, reload: bool = False) -> None:
        """
        Load or reload environment variables.
        
        Args:
            reload: Force reload even if already loaded
        """
        if reload:
            self._cache.clear()
            
        if self.env_file:
            load_dotenv(self.env_file, override=reload)
            logger.debug(f"Loaded environment from: {self.env_file}")
    
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value with caching.
        
        Args:
            key: Configuration key
            default: Default value if not found
            
        Returns:
            Configuration value or default
        """
        if key in self._cache:
            return self._cache[key]
            
        value = os.getenv(key, self.DEFAULTS.get(key, default))
        self._cache[key] = value
        return value
        
    def get_int(self, key: str, default: Optional[int] = None) -> int:
        """Get configuration value as integer, falling back to the default on bad input."""
        if default is None:
            default = self.DEFAULTS.get(key, 0)
            
        value = self.get(key, default)
        
        try:
            return int(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid integer value for {key}: {value}, using default: {default}")
            return default
            
    def get_bool(self, key: str, default: Optional[bool] = None) -> bool:
        """Get configuration value as boolean."""
        if default is None:
            default = bool(self.DEFAULTS.get(key, False))
            
        value = self.get(key, default)
        
        if isinstance(value, bool):
            return value
            
        if isinstance(value, str):
            return value.lower() in ('true', '1', 'yes', 'on', 'enabled')
            
        return bool(value)
        
    def get_json(self, key: str, default: Optional[Dict] = None) -> Dict:
        """
        Get configuration value as JSON/dict.
        
        Args:
            key: Configuration key
            default: Default value if not found or invalid JSON
            
        Returns:
            Dictionary value
        """
        if default is None:
            default = self.DEFAULTS.get(key, {})
            
        value = self.get(key)
        
        if value is None:
            return default
            
        if isinstance(value, dict):
            return value
            
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON value for {key}, using default")
                return default
                
        return default

    # ===========================================
    # DOMAIN ACCESSORS
    # ===========================================

    @property
    def field_categories(self) -> Dict[str, str]:
        """Jira custom field id (numeric part) -> Snipe-IT category name."""
        return {str(field_id): name for field_id, name in self.get_json('CUSTOM_FIELD_CATEGORIES').items()}

    @property
    def accessory_fields(self) -> List[str]:
        """Payload keys carrying comma-separated accessory names, in map order."""
        return [f"customfield_{field_id}" for field_id in self.field_categories]
        
    def validate(self) -> None:
        """Validate all required environment variables are set."""
        missing = [var for var in self.REQUIRED_VARS if not self.get(var)]
                
        if missing:
            error_msg = f"Missing required environment variables: {', '.join(missing)}"
            
            if 'JIRA_API_TOKEN' in missing:
                error_msg += "\n\nNote: JIRA_API_TOKEN must be an Atlassian API token for JIRA_EMAIL."
                error_msg += "\nGenerate one at: https://id.atlassian.com/manage-profile/security/api-tokens"
                
            raise ConfigurationError(error_msg)
        
    def _log_config_status(self) -> None:
        """Log configuration status with sensitive data masked."""
        logger.info("Configuration loaded successfully")
        
        if logger.isEnabledFor(logging.DEBUG):
            config_status = {}
            
            for key in self.REQUIRED_VARS:
                value = self.get(key)
                if key in self.SENSITIVE_KEYS and value:
                    config_status[key] = self._mask(value)
                else:
                    config_status[key] = value if value else "NOT SET"
                    
            logger.debug(f"Configuration status: {json.dumps(config_status, indent=2)}")

    @staticmethod
    def _mask(value: str) -> str:
        if len(value) > 8:
            return f"{value[:4]}...{value[-4:]}"
        return "***"
            
    def export_safe_config(self) -> Dict[str, Any]:
        """
        Export non-sensitive configuration for debugging.
        
        Returns:
            Dictionary of safe configuration values
        """
        safe_config = {}
        
        for key, default in self.DEFAULTS.items():
            if key not in self.SENSITIVE_KEYS:
                safe_config[key] = self.get(key, default)
                
        return safe_config
