"""
Configuration for the WorkerSet Controller

This module defines the controller configuration model and loads it from a
YAML file, with environment variable overrides for the operational knobs.
"""

import os
import logging
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from workerset.errors import ConfigError

# Configuration paths
CONFIG_ENV = 'WORKERSET_CONFIG'
BURST_ENV = 'WORKERSET_BURST_REPLICAS'
MIN_AVAILABLE_ENV = 'WORKERSET_MIN_AVAILABLE'

# Logging setup
logger = logging.getLogger(__name__)

# Upper bound of creates or deletes issued by a single reconciliation.
DEFAULT_BURST_REPLICAS = 500

# The number of times we retry updating a WorkerSet's status.
STATUS_UPDATE_RETRIES = 1


class ControllerConfig(BaseModel):
    """Operational settings for the WorkerSet controller."""

    model_config = ConfigDict(extra='forbid')

    burst_replicas: int = Field(default=DEFAULT_BURST_REPLICAS, gt=0)
    min_available_replicas: int = Field(default=1, ge=0)

    @field_validator('burst_replicas', 'min_available_replicas', mode='before')
    @classmethod
    def validate_not_bool(cls, v):
        """YAML reads yes/no as booleans; reject them for counts"""
        if isinstance(v, bool):
            raise ValueError("must be an integer, not a boolean")
        return v


def _env_overrides() -> Dict[str, Any]:
    overrides = {}
    burst = os.environ.get(BURST_ENV)
    if burst:
        overrides["burst_replicas"] = burst
    min_available = os.environ.get(MIN_AVAILABLE_ENV)
    if min_available:
        overrides["min_available_replicas"] = min_available
    return overrides


def load_config(path: Optional[str] = None) -> ControllerConfig:
    """
    Load the controller configuration.

    Args:
        path: YAML file to read; defaults to $WORKERSET_CONFIG

    Returns:
        ControllerConfig object

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    path = path or os.environ.get(CONFIG_ENV)
    data: Dict[str, Any] = {}

    if path:
        if not os.path.exists(path):
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        logger.debug(f"Loaded controller config from {path}")

    data.update(_env_overrides())

    try:
        return ControllerConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid controller config: {e}") from e
