"""
Configuration module for stageform.

Handles environment variables and default settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass
class FormEngineConfig:
    """Configuration settings for stageform."""

    # Form host
    form_server_url: str = "http://localhost:9110"
    request_timeout: float = 30.0

    # Submission wire format
    multi_value_delimiter: str = ","
    escape_multi_values: bool = False

    # Upload boundary
    max_upload_bytes: int = 10 * 1024 * 1024

    # MCP Server settings
    mcp_transport: str = "stdio"  # stdio or sse
    mcp_port: int = 8080

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "FormEngineConfig":
        """
        Create configuration from environment variables.

        If an environment variable is not set, uses the class field default value.
        """
        _defaults = cls()

        return cls(
            form_server_url=os.getenv("STAGEFORM_SERVER_URL", _defaults.form_server_url),
            request_timeout=float(os.getenv("STAGEFORM_REQUEST_TIMEOUT", str(_defaults.request_timeout))),
            multi_value_delimiter=os.getenv("STAGEFORM_MULTI_VALUE_DELIMITER", _defaults.multi_value_delimiter),
            escape_multi_values=os.getenv("STAGEFORM_ESCAPE_MULTI_VALUES", str(_defaults.escape_multi_values).lower()).lower() == "true",
            max_upload_bytes=int(os.getenv("STAGEFORM_MAX_UPLOAD_BYTES", str(_defaults.max_upload_bytes))),
            mcp_transport=os.getenv("MCP_TRANSPORT", _defaults.mcp_transport),
            mcp_port=int(os.getenv("MCP_PORT", str(_defaults.mcp_port))),
            log_level=os.getenv("STAGEFORM_LOG_LEVEL", _defaults.log_level),
        )


config = FormEngineConfig.from_env()


def get_config() -> FormEngineConfig:
    """Get the current configuration."""
    return config


def update_config(**kwargs) -> FormEngineConfig:
    """Update configuration settings."""
    global config
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config
