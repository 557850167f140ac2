"""
Configuration management for helm-release.

Settings are resolved with the precedence CLI arguments > environment
variables > config file > defaults, and collected into a single Config
object.
"""

import os
from dataclasses import dataclass
from typing import Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

from .chart import DEFAULT_TAG_PATH
from .semantic_version import BumpKind

# Load environment variables from .env file
load_dotenv()

DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser('~'), '.helm-release.yaml')

VALID_SOURCES = ['git', 'helm']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def get_config_value(cli_args, field_name: str, env_key: str, default, value_type: type = str):
    """
    Get configuration value with proper precedence: CLI args > env vars > defaults.

    Args:
        cli_args: CLI arguments object or None
        field_name: Name of the CLI argument field
        env_key: Environment variable key
        default: Default value if neither CLI nor env var is set
        value_type: Type to convert the value to (str, int, bool)

    Returns:
        The configuration value converted to the specified type
    """
    cli_value = getattr(cli_args, field_name, None) if cli_args else None
    if cli_value is not None:
        return cli_value

    env_value = os.environ.get(env_key, '')

    if value_type == bool:
        if env_value.strip().lower() in ('true', '1', 'yes'):
            return True
        elif env_value.strip().lower() in ('false', '0', 'no'):
            return False
        return default

    if not env_value:
        return default

    try:
        return value_type(env_value)
    except (ValueError, TypeError):
        return default


def get_config_value_str(cli_args, field_name: str, env_key: str, default: str = '') -> str:
    """Get string configuration value."""
    return get_config_value(cli_args, field_name, env_key, default, str)


def get_config_value_bool(cli_args, field_name: str, env_key: str, default: bool = False) -> bool:
    """Get boolean configuration value."""
    return get_config_value(cli_args, field_name, env_key, default, bool)


@dataclass
class Config:
    """Configuration object containing all application settings."""

    chart_path: str
    tag: str
    tag_path: str
    print_computed_version: bool
    bump: Optional[BumpKind]
    source: str
    strict: bool
    log_level: str
    config_file: Optional[str] = None


def load_config_file(path: str, required: bool, validation_errors: list) -> dict:
    """
    Read the optional YAML config file.

    Args:
        path: Path to the config file
        required: Whether a missing file is an error (explicit --config)
        validation_errors: List to append validation errors

    Returns:
        dict: Settings from the file, empty when absent or invalid
    """
    if not os.path.isfile(path):
        if required:
            validation_errors.append(f'Config file ({path}) does not exist')
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        validation_errors.append(f'Unable to read config file ({path}): {e}')
        return {}

    if data is None:
        data = {}
    if not isinstance(data, dict):
        validation_errors.append(f'Config file ({path}) must contain a mapping of settings')
        return {}

    logger.info(f'Using config file: {path}')
    return data


def _file_bool(file_config: dict, key: str, default: bool, validation_errors: list) -> bool:
    value = file_config.get(key, default)
    if isinstance(value, bool):
        return value
    validation_errors.append(f'Config file setting "{key}" must be true or false (got: {value})')
    return default


def load_config(cli_args=None) -> Optional[Config]:
    """
    Load and validate configuration from CLI arguments, environment and config file.

    Args:
        cli_args: Parsed CLI arguments or None

    Returns:
        Config: Validated configuration object, or None if validation failed
    """
    validation_errors = []

    explicit_config = get_config_value_str(cli_args, 'config', 'HELM_RELEASE_CONFIG', '')
    config_file = explicit_config or DEFAULT_CONFIG_FILE
    file_config = load_config_file(config_file, bool(explicit_config), validation_errors)

    chart_path = getattr(cli_args, 'chart_path', None) if cli_args else None
    chart_path = chart_path or '.'

    tag = get_config_value_str(cli_args, 'tag', 'HELM_RELEASE_TAG', str(file_config.get('tag') or ''))
    tag_path = get_config_value_str(cli_args, 'tag_path', 'HELM_RELEASE_TAG_PATH',
                                    str(file_config.get('path') or DEFAULT_TAG_PATH))
    bump_name = get_config_value_str(cli_args, 'bump', 'HELM_RELEASE_BUMP', str(file_config.get('bump') or ''))
    source = get_config_value_str(cli_args, 'source', 'HELM_RELEASE_SOURCE',
                                  str(file_config.get('source') or 'git')).lower()
    strict = get_config_value_bool(cli_args, 'strict', 'HELM_RELEASE_STRICT',
                                   _file_bool(file_config, 'strict', False, validation_errors))
    print_computed_version = get_config_value_bool(
        cli_args, 'print_computed_version', 'HELM_RELEASE_PRINT_COMPUTED_VERSION',
        _file_bool(file_config, 'print-computed-version', False, validation_errors))
    log_level = get_config_value_str(cli_args, 'log_level', 'LOG_LEVEL',
                                     str(file_config.get('log-level') or 'INFO')).upper()

    if log_level not in VALID_LOG_LEVELS:
        validation_errors.append(f'LOG_LEVEL must be one of {VALID_LOG_LEVELS} (got: {log_level})')

    if source not in VALID_SOURCES:
        validation_errors.append(f'SOURCE must be one of {VALID_SOURCES} (got: {source})')

    bump = None
    try:
        bump = BumpKind.parse(bump_name)
    except ValueError as e:
        validation_errors.append(str(e))

    if source == 'helm' and bump is None and not validation_errors:
        validation_errors.append('--bump must be specified when using a helm source')

    if not tag_path or any(not segment for segment in tag_path.split('.')):
        validation_errors.append(f'Tag path must be a dotted path like "image.tag" (got: {tag_path!r})')

    if not os.path.isdir(chart_path):
        validation_errors.append(f'Chart path ({chart_path}) is not a directory')

    if validation_errors:
        logger.error('❌ Configuration Error:')
        for i, error_msg in enumerate(validation_errors, 1):
            logger.error(f'   {i}. {error_msg}')
        return None

    config = Config(
        chart_path=chart_path,
        tag=tag,
        tag_path=tag_path,
        print_computed_version=print_computed_version,
        bump=bump,
        source=source,
        strict=strict,
        log_level=log_level,
        config_file=config_file if file_config else None,
    )

    logger.debug(f'CHART_PATH = {config.chart_path}')
    logger.debug(f'TAG = {config.tag}')
    logger.debug(f'TAG_PATH = {config.tag_path}')
    logger.debug(f'BUMP = {config.bump.value if config.bump else "auto"}')
    logger.debug(f'SOURCE = {config.source}')
    logger.debug(f'STRICT = {config.strict}')
    logger.debug(f'PRINT_COMPUTED_VERSION = {config.print_computed_version}')

    return config
