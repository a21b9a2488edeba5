"""
Configuration Management for md2gdocs.

All settings come from environment variables and are read once per process.
`reload_config()` re-reads them, which tests use after patching the environment.
"""

import logging
import os

DEFAULT_FILE_NAME = "Converted from Markdown"
SUPPORTED_BACKENDS = ("positional", "docx")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class ConverterConfig:
    """
    Centralized configuration for the converter and its HTTP service.
    """

    def __init__(self):
        # Compiler settings
        self.spacing_threshold = int(os.getenv("MD2GDOCS_SPACING_THRESHOLD", "2"))
        if self.spacing_threshold < 1:
            raise ValueError("MD2GDOCS_SPACING_THRESHOLD must be at least 1")

        self.image_max_width = int(os.getenv("MD2GDOCS_IMAGE_MAX_WIDTH", "400"))
        if self.image_max_width < 1:
            raise ValueError("MD2GDOCS_IMAGE_MAX_WIDTH must be a positive pixel count")

        # Service settings
        self.default_file_name = os.getenv("MD2GDOCS_DEFAULT_FILE_NAME", DEFAULT_FILE_NAME)
        self.backend = os.getenv("MD2GDOCS_BACKEND", "positional").strip().lower()
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(f"MD2GDOCS_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)}, got '{self.backend}'")

        # Docx backend also stores the source .docx next to the converted Google Doc
        self.upload_docx_copy = _env_bool("MD2GDOCS_UPLOAD_DOCX_COPY", "true")

        self.environment = os.getenv("MD2GDOCS_ENV", "development").strip().lower()
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.port = int(os.getenv("PORT", "3040"))

    def is_production(self) -> bool:
        """
        Check whether the service runs in production mode.

        Returns:
            True when MD2GDOCS_ENV is "production"
        """
        return self.environment == "production"


_config: ConverterConfig | None = None


def get_config() -> ConverterConfig:
    """Return the process-wide configuration, creating it on first use."""
    global _config
    if _config is None:
        _config = ConverterConfig()
    return _config


def reload_config() -> ConverterConfig:
    """Re-read the environment and replace the process-wide configuration."""
    global _config
    _config = ConverterConfig()
    return _config


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service entry point."""
    logging.basicConfig(
        level=(level or get_config().log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
