# app/core/config.py
import os
import json
from pydantic import BaseModel, Field
from typing import Optional
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = "config.json"
DOTENV_PATH = ".env"

load_dotenv(DOTENV_PATH)

PLACEHOLDER_SECRET = "please_configure"


class AppSettings(BaseModel):
    # Bhashini speech pipeline
    BHASHINI_AUTH_KEY: str = os.getenv("BHASHINI_AUTH_KEY", PLACEHOLDER_SECRET)
    BHASHINI_CONFIG_ENDPOINT: str = os.getenv(
        "BHASHINI_CONFIG_ENDPOINT", "https://meity-auth.ulcacontrib.org/ulca/apis/v0/model/getModelsPipeline"
    )
    BHASHINI_INFERENCE_ENDPOINT: str = os.getenv(
        "BHASHINI_INFERENCE_ENDPOINT", "https://dhruva-api.bhashini.gov.in/services/inference/pipeline"
    )
    BHASHINI_PIPELINE_ID: str = os.getenv("BHASHINI_PIPELINE_ID", "64392f96daac500b55c543cd")

    # Azure OpenAI chat completions
    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com/")
    AZURE_OPENAI_API_KEY: str = os.getenv("AZURE_OPENAI_API_KEY", PLACEHOLDER_SECRET)
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4.1")
    AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview")

    PORT: int = Field(int(os.getenv("PORT", "8000")), gt=1023, lt=65536)
    HOST: str = os.getenv("HOST", "0.0.0.0")
    API_ACCESS_KEY: str = os.getenv("API_ACCESS_KEY", "CONFIG_ERROR_API_KEY_NOT_IN_ENV")
    DATABASE_FILENAME: str = os.getenv("DATABASE_FILENAME", "bolonyay.db")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    DATA_LOCATION: str = os.getenv("DATA_LOCATION", "bolonyay_data")
    REPORTS_DIRECTORY_NAME: str = os.getenv("REPORTS_DIRECTORY_NAME", "BoloNyayReports")
    REPORT_RETENTION_DAYS: int = Field(int(os.getenv("REPORT_RETENTION_DAYS", "90")), gt=0)
    PDF_UNICODE_FONT_PATH: Optional[str] = os.getenv("PDF_UNICODE_FONT_PATH") or None

    LLM_TIMEOUT_SECONDS: int = Field(int(os.getenv("LLM_TIMEOUT_SECONDS", "180")), gt=0)
    SPEECH_TIMEOUT_SECONDS: int = Field(int(os.getenv("SPEECH_TIMEOUT_SECONDS", "120")), gt=0)

    MAX_RECORDING_SECONDS: int = Field(int(os.getenv("MAX_RECORDING_SECONDS", "30")), gt=0)
    SAMPLE_RATE: int = Field(int(os.getenv("SAMPLE_RATE", "16000")), gt=0)

    @property
    def DATABASE_URL(self) -> str:
        abs_data_path = os.path.abspath(self.DATA_LOCATION)
        return f"sqlite:///{os.path.join(abs_data_path, self.DATABASE_FILENAME)}"

    @property
    def REPORTS_DIRECTORY(self) -> str:
        return os.path.join(os.path.abspath(self.DATA_LOCATION), self.REPORTS_DIRECTORY_NAME)

    @property
    def AZURE_CHAT_COMPLETIONS_URL(self) -> str:
        endpoint = self.AZURE_OPENAI_ENDPOINT.rstrip("/")
        return (f"{endpoint}/openai/deployments/{self.AZURE_OPENAI_DEPLOYMENT}"
                f"/chat/completions?api-version={self.AZURE_OPENAI_API_VERSION}")

    @property
    def MAX_RECORDING_BYTES(self) -> int:
        # 16-bit mono PCM
        return self.MAX_RECORDING_SECONDS * self.SAMPLE_RATE * 2

    def missing_credentials(self) -> list:
        missing = []
        if not self.BHASHINI_AUTH_KEY or self.BHASHINI_AUTH_KEY == PLACEHOLDER_SECRET:
            missing.append("BHASHINI_AUTH_KEY")
        if not self.AZURE_OPENAI_API_KEY or self.AZURE_OPENAI_API_KEY == PLACEHOLDER_SECRET:
            missing.append("AZURE_OPENAI_API_KEY")
        if not self.API_ACCESS_KEY or self.API_ACCESS_KEY == "CONFIG_ERROR_API_KEY_NOT_IN_ENV":
            missing.append("API_ACCESS_KEY")
        return missing

    class Config:
        extra = 'ignore'


_cached_settings: Optional[AppSettings] = None
CLIENT_CONFIG_KEYS = {
    "BHASHINI_AUTH_KEY", "BHASHINI_PIPELINE_ID",
    "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_DEPLOYMENT", "AZURE_OPENAI_API_VERSION",
    "REPORT_RETENTION_DAYS",
}
SECRET_CONFIG_KEYS = {"BHASHINI_AUTH_KEY", "AZURE_OPENAI_API_KEY"}


def redact(value: Optional[str]) -> str:
    if not value:
        return "None"
    return f"{value[:4]}..."


def load_settings() -> AppSettings:
    global _cached_settings
    if _cached_settings is None:
        try:
            current_values = AppSettings()

            if os.path.exists(CONFIG_FILE_PATH):
                try:
                    with open(CONFIG_FILE_PATH, 'r') as f:
                        json_config = json.load(f)
                    for key in CLIENT_CONFIG_KEYS:
                        if key in json_config and json_config[key] is not None:
                            setattr(current_values, key, json_config[key])
                except Exception as e:
                    logger.error(f"Error reading or applying {CONFIG_FILE_PATH}: {e}. Using .env/defaults for client keys.")
            else:
                logger.warning(f"{CONFIG_FILE_PATH} not found. Using .env/defaults for client keys.")

            _cached_settings = current_values

            if _cached_settings.API_ACCESS_KEY == "CONFIG_ERROR_API_KEY_NOT_IN_ENV":
                logger.critical("API_ACCESS_KEY IS NOT SET IN .env! API will be inaccessible.")

            data_loc = os.path.abspath(_cached_settings.DATA_LOCATION)
            if not os.path.exists(data_loc):
                try:
                    os.makedirs(data_loc, exist_ok=True)
                    logger.info(f"Created data directory during settings load: {data_loc}")
                except Exception as e:
                    logger.critical(f"CRITICAL: Could not create data directory {data_loc} during settings load: {e}")

            logger.info("Application settings processed.")
            logger.debug(f"Effective settings (secrets redacted): "
                         f"BhashiniKey='{redact(_cached_settings.BHASHINI_AUTH_KEY)}', "
                         f"AzureKey='{redact(_cached_settings.AZURE_OPENAI_API_KEY)}', "
                         f"Deployment='{_cached_settings.AZURE_OPENAI_DEPLOYMENT}', "
                         f"DataLoc='{_cached_settings.DATA_LOCATION}'")

        except Exception as e:
            logger.critical(f"CRITICAL ERROR initializing AppSettings: {e}.", exc_info=True)
            raise

    return _cached_settings


def get_app_settings() -> AppSettings:
    if _cached_settings is None:
        load_settings()
    if not isinstance(_cached_settings, AppSettings):
        logger.critical("Attempted to get settings, but initial loading failed critically.")
        raise RuntimeError("Application settings are not properly initialized due to a critical failure during startup.")
    return _cached_settings


def clear_cached_settings():
    global _cached_settings
    _cached_settings = None
    logger.info("Cached settings cleared.")


settings = load_settings()
