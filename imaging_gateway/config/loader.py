"""
Configuration management and loading.

Handles gateway settings from YAML files and environment variables.
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .prompts import DEFAULT_INSTRUCTION_TEXT

DEFAULT_DAILY_LIMIT = 20
DEFAULT_MODEL = "google/medgemma-27b-it"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_OUTPUT_TOKENS = 500
DEFAULT_REQUEST_TIMEOUT_SECONDS = 120.0
DEFAULT_UPLOAD_FIELD = "image"

# Read at request time by the inference client, never at startup
ENDPOINT_URL_ENV = "HF_ENDPOINT_URL"
TOKEN_ENV = "HF_TOKEN"


@dataclass(frozen=True)
class GatewayConfig:
    """Static per-deployment settings for the analyze pipeline."""
    daily_limit: int = DEFAULT_DAILY_LIMIT
    instruction_text: str = DEFAULT_INSTRUCTION_TEXT
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    request_timeout_seconds: Optional[float] = DEFAULT_REQUEST_TIMEOUT_SECONDS
    upload_field: str = DEFAULT_UPLOAD_FIELD

    def __post_init__(self):
        """Validate settings so a bad deployment fails before serving."""
        if isinstance(self.daily_limit, bool) or not isinstance(self.daily_limit, int):
            raise ValueError("daily_limit must be an integer")
        if self.daily_limit < 0:
            raise ValueError("daily_limit must be >= 0")
        if not self.instruction_text or not self.instruction_text.strip():
            raise ValueError("instruction_text cannot be empty")
        if not self.model or not self.model.strip():
            raise ValueError("model cannot be empty")
        if not 0 <= self.temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be > 0")
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0 or None")
        if not self.upload_field:
            raise ValueError("upload_field cannot be empty")


def load_gateway_config(path: str) -> GatewayConfig:
    """Load and validate gateway configuration from a YAML file.

    Unknown keys are rejected so a typo never silently falls back to a
    default limit or prompt.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated GatewayConfig object

    Raises:
        FileNotFoundError: If config file (or referenced instruction file) doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Gateway config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_keys = {f.name for f in fields(GatewayConfig)} | {'instruction_file'}
    unknown_keys = set(raw_config.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'instruction_text' in raw_config and 'instruction_file' in raw_config:
        raise ValueError("Set only one of 'instruction_text' and 'instruction_file'")

    values: Dict[str, Any] = {}

    if 'daily_limit' in raw_config:
        limit = raw_config['daily_limit']
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValueError("'daily_limit' must be an integer")
        values['daily_limit'] = limit

    if 'instruction_file' in raw_config:
        prompt_path = config_path.parent / str(raw_config['instruction_file'])
        values['instruction_text'] = _read_instruction_file(prompt_path)
    elif 'instruction_text' in raw_config:
        values['instruction_text'] = _require_string(raw_config, 'instruction_text')

    for key in ('model', 'upload_field'):
        if key in raw_config:
            values[key] = _require_string(raw_config, key)

    if 'temperature' in raw_config:
        values['temperature'] = _require_number(raw_config, 'temperature')

    if 'max_output_tokens' in raw_config:
        tokens = raw_config['max_output_tokens']
        if isinstance(tokens, bool) or not isinstance(tokens, int):
            raise ValueError("'max_output_tokens' must be an integer")
        values['max_output_tokens'] = tokens

    if 'request_timeout_seconds' in raw_config:
        timeout = raw_config['request_timeout_seconds']
        values['request_timeout_seconds'] = (
            None if timeout is None else _require_number(raw_config, 'request_timeout_seconds')
        )

    return GatewayConfig(**values)


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> GatewayConfig:
    """Build the gateway configuration from environment variables.

    GATEWAY_CONFIG names an optional YAML file loaded first; the remaining
    GATEWAY_* variables override single fields on top of it.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated GatewayConfig object

    Raises:
        ValueError: If a variable cannot be converted or fails validation
    """
    env = os.environ if environ is None else environ

    config_path = env.get("GATEWAY_CONFIG")
    config = load_gateway_config(config_path) if config_path else GatewayConfig()

    overrides: Dict[str, Any] = {}
    if env.get("GATEWAY_DAILY_LIMIT"):
        overrides['daily_limit'] = _parse_env(env, "GATEWAY_DAILY_LIMIT", int)
    if env.get("GATEWAY_MODEL"):
        overrides['model'] = env["GATEWAY_MODEL"]
    if env.get("GATEWAY_TEMPERATURE"):
        overrides['temperature'] = _parse_env(env, "GATEWAY_TEMPERATURE", float)
    if env.get("GATEWAY_MAX_TOKENS"):
        overrides['max_output_tokens'] = _parse_env(env, "GATEWAY_MAX_TOKENS", int)
    if env.get("GATEWAY_REQUEST_TIMEOUT"):
        raw_timeout = env["GATEWAY_REQUEST_TIMEOUT"].strip().lower()
        if raw_timeout in ("none", "0", "off"):
            overrides['request_timeout_seconds'] = None
        else:
            overrides['request_timeout_seconds'] = _parse_env(env, "GATEWAY_REQUEST_TIMEOUT", float)
    if env.get("GATEWAY_PROMPT_FILE"):
        overrides['instruction_text'] = _read_instruction_file(Path(env["GATEWAY_PROMPT_FILE"]))

    return replace(config, **overrides) if overrides else config


def _read_instruction_file(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"Instruction file not found: {path}")
    return path.read_text(encoding='utf-8').strip()


def _require_string(data: Dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{key}' must be a non-empty string")
    return value


def _require_number(data: Dict, key: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number")
    return float(value)


def _parse_env(env: Mapping[str, str], name: str, convert):
    try:
        return convert(env[name])
    except ValueError:
        raise ValueError(f"{name} must be a valid {convert.__name__}, got {env[name]!r}")
