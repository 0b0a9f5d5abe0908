# app/services/config_manager.py
import json
import os
import logging
from typing import Dict, Any, Tuple
from app.core.config import (
    CONFIG_FILE_PATH, CLIENT_CONFIG_KEYS, SECRET_CONFIG_KEYS, clear_cached_settings, get_app_settings, redact,
)
from app.models_api.service import ConfigUpdateRequest

logger = logging.getLogger(__name__)


class ConfigManager:
    """Reads and writes the client-configurable keys kept in config.json."""

    def __init__(self, config_file_path: str = CONFIG_FILE_PATH):
        self.config_file_path = config_file_path
        self._ensure_config_file_exists()

    def _ensure_config_file_exists(self):
        if not os.path.exists(self.config_file_path):
            logger.warning(f"{self.config_file_path} not found. Creating with current effective/default values.")
            try:
                app_s = get_app_settings()
                default_config: Dict[str, Any] = {
                    key: getattr(app_s, key) for key in sorted(CLIENT_CONFIG_KEYS)
                }
                with open(self.config_file_path, 'w') as f:
                    json.dump(default_config, f, indent=4)
                logger.info(f"Created default {self.config_file_path}. Review and update credentials/settings if necessary.")
            except OSError as e:
                logger.error(f"Could not create default config file {self.config_file_path}: {e}")

    def _read(self) -> Dict[str, Any]:
        with open(self.config_file_path, 'r') as f:
            return json.load(f)

    def get_current_client_config_dict(self, reveal_secrets: bool = False) -> Dict[str, Any]:
        self._ensure_config_file_exists()
        try:
            current_on_disk_config = self._read()
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read or parse {self.config_file_path}: {e}. Returning empty.")
            return {}

        client_display_config = {}
        for key in sorted(CLIENT_CONFIG_KEYS):
            value = current_on_disk_config.get(key)
            if key in SECRET_CONFIG_KEYS and not reveal_secrets:
                value = redact(value)
            client_display_config[key] = value
        return client_display_config

    def update_client_config(self, update_data: ConfigUpdateRequest) -> Tuple[Dict[str, Any], bool]:
        self._ensure_config_file_exists()

        try:
            current_disk_config = self._read()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error reading {self.config_file_path} during update ('{e}'); will create/overwrite.")
            current_disk_config = {}

        updated_fields_summary: Dict[str, Any] = {}
        update_dict = update_data.model_dump(exclude_none=True)

        for key, value in update_dict.items():
            if key in CLIENT_CONFIG_KEYS and current_disk_config.get(key) != value:
                current_disk_config[key] = value
                updated_fields_summary[key] = redact(value) if key in SECRET_CONFIG_KEYS else value

        if not updated_fields_summary:
            logger.info("No client-configurable settings were changed in the update request.")
            return {}, False

        try:
            with open(self.config_file_path, 'w') as f:
                json.dump(current_disk_config, f, indent=4)
        except OSError as e:
            logger.error(f"Failed to write updated client settings to {self.config_file_path}: {e}")
            raise
        logger.info(f"Client settings in {self.config_file_path} updated successfully: {updated_fields_summary}")

        clear_cached_settings()
        return updated_fields_summary, True
