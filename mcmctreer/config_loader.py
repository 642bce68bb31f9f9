#!/usr/bin/env python3
"""
Configuration loader for mcmctreer supporting YAML and TOML formats.

This module provides utilities to load and validate configuration files
using the Pydantic models defined in config_models.py.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import toml
import yaml
from pydantic import ValidationError

from .config_models import MCMCTreeRConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def detect_config_format(config_path: Path) -> str:
    """Detect configuration file format based on extension and content."""

    suffix = config_path.suffix.lower()

    # Prioritize file extension for known formats
    if suffix in ['.yaml', '.yml']:
        return 'yaml'
    elif suffix in ['.toml']:
        return 'toml'

    # Try to detect by content only if extension is unknown
    with open(config_path, 'r') as f:
        content = f.read().strip()

    if content.startswith(('---', '%YAML')):
        return 'yaml'

    # TOML tables and key = value pairs
    if '[' in content and ']' in content and '=' in content:
        return 'toml'

    return 'yaml'


def load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration file."""

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        error_msg = f"Error parsing YAML configuration in {config_path}:"
        error_msg += f"\n  → {e}"
        error_msg += "\n  → Make sure the file uses proper YAML syntax (check indentation, colons, etc.)"
        raise ConfigurationError(error_msg, config_file=str(config_path))

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {config_path} must be a mapping",
                                 config_file=str(config_path))
    return data


def load_toml_config(config_path: Path) -> Dict[str, Any]:
    """Load TOML configuration file."""

    try:
        with open(config_path, 'r') as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(f"Error parsing TOML configuration: {e}",
                                 config_file=str(config_path))


def load_configuration(config_path: Union[str, Path]) -> MCMCTreeRConfig:
    """Load and validate configuration from file."""

    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}",
                                 config_file=str(config_path))

    # Detect format and load data
    format_type = detect_config_format(config_path)
    logger.info(f"Loading {format_type.upper()} configuration from: {config_path}")

    if format_type == 'yaml':
        data = load_yaml_config(config_path)
    else:
        data = load_toml_config(config_path)

    # Validate and create configuration object
    try:
        config = MCMCTreeRConfig(**data)
    except ValidationError as e:
        # Provide more helpful error messages based on the type of error
        error_msg = f"Configuration validation failed for {config_path} ({format_type.upper()} format)"

        if "tree_file" in str(e) or "input_file" in str(e):
            error_msg += "\n  → An input file was not found. Please check the file path."
        elif "max_age" in str(e):
            error_msg += "\n  → Every calibration needs max_age greater than min_age."
        elif "taxa" in str(e):
            error_msg += "\n  → Each calibration lists at least two distinct tip names."
        else:
            error_msg += f"\n  → {e}"

        error_msg += "\n  → See the configuration guide for help: Use --generate-config for examples"

        raise ConfigurationError(error_msg, config_file=str(config_path))

    logger.info("Configuration loaded and validated successfully")
    return config


EXAMPLE_CONFIG = {
    'debug': False,
    'read': {
        'input_file': 'FigTree.tre',
        'force_ultrametric': True,
        'tree_output': 'dated_tree.nwk',
        'table_output': 'node_ages.tsv',
    },
    'cauchy': {
        'tree_file': 'species.nwk',
        'plot': False,
        'pdf_output': 'cauchyPlot.pdf',
        'write_mcmctree': True,
        'mcmctree_file': 'cauchyInput.tre',
        'calibrations': [
            {
                'name': 'hominoidea',
                'taxa': ['human', 'chimpanzee', 'bonobo', 'gorilla',
                         'sumatran', 'orangutan', 'gibbon'],
                'min_age': 1.5,
                'max_age': 3.0,
                'offset': 0.5,
            },
            {
                'name': 'homininae',
                'taxa': ['human', 'chimpanzee', 'bonobo', 'gorilla'],
                'min_age': 0.6,
                'max_age': 1.2,
                'offset': 0.5,
            },
        ],
    },
}


def create_example_yaml_config(output_path: Path) -> None:
    """Create an example YAML configuration file."""

    with open(output_path, 'w') as f:
        yaml.dump(EXAMPLE_CONFIG, f, default_flow_style=False, sort_keys=False, indent=2)

    logger.info(f"Example YAML configuration created: {output_path}")


def create_example_toml_config(output_path: Path) -> None:
    """Create an example TOML configuration file."""

    with open(output_path, 'w') as f:
        toml.dump(EXAMPLE_CONFIG, f)

    logger.info(f"Example TOML configuration created: {output_path}")


def generate_config_template(output_path: Union[str, Path]) -> Path:
    """Write an example configuration, TOML for a .toml path and YAML otherwise."""
    output_path = Path(output_path)
    if output_path.suffix.lower() == '.toml':
        create_example_toml_config(output_path)
    else:
        create_example_yaml_config(output_path)
    return output_path
