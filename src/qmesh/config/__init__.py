"""
Configuration management for qmesh.

Provides Pydantic-validated configuration schemas and YAML loading utilities.
"""

from .schemas import SimulatorConfig, ServiceConfig, LoggingConfig, Config

__all__ = ["SimulatorConfig", "ServiceConfig", "LoggingConfig", "Config"]
