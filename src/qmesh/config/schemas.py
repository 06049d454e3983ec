"""
Pydantic schemas for configuration validation.

Type-safe configuration classes for the simulator core, the HTTP service and
logging. Configuration values are passed explicitly into constructors, so
several independent simulators can coexist in one process.
"""

from pathlib import Path
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
import yaml


BACKEND_NAMES = ("reference", "numpy", "threaded", "numba")


class SimulatorConfig(BaseModel):
    """Simulation engine parameters (capacity, backend, tolerances)."""
    
    max_qubits: int = Field(
        default=40,
        ge=1,
        le=62,
        description="Configured ceiling on register width"
    )
    backend: str = Field(
        default="numpy",
        description="Compute backend (reference, numpy, threaded, numba)"
    )
    num_threads: Optional[int] = Field(
        default=None,
        ge=1,
        description="Worker threads for parallel backends (None = CPU count)"
    )
    
    # Numerical checks
    norm_tolerance: float = Field(
        default=1e-9,
        gt=0.0,
        lt=1.0,
        description="Allowed deviation of total probability from 1"
    )
    check_norm: bool = Field(
        default=True,
        description="Verify total probability after every gate"
    )
    
    # Memory ceiling
    check_memory: bool = Field(
        default=True,
        description="Reject widths whose state vector does not fit in available memory"
    )
    memory_overhead_factor: float = Field(
        default=1.5,
        ge=1.0,
        description="Minimum ratio of peak memory to state size; backends with larger temporaries raise it"
    )
    
    # Optimizer
    optimize: bool = Field(
        default=True,
        description="Run the circuit optimizer before simulation"
    )
    fuse_rotations: bool = Field(
        default=False,
        description="Fuse adjacent same-axis rotations (optimizer extension)"
    )
    
    # Sampling
    seed: Optional[int] = Field(
        default=None,
        description="Seed for measurement sampling (None = system entropy)"
    )
    sample_batch_size: int = Field(
        default=65536,
        ge=1,
        description="Shots drawn between cancellation checks"
    )
    progress_interval: int = Field(
        default=100,
        ge=1,
        description="Log progress every N applied gates"
    )
    
    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Ensure backend is supported."""
        v = v.lower()
        if v not in BACKEND_NAMES:
            raise ValueError(f"Backend must be one of {set(BACKEND_NAMES)}, got '{v}'")
        return v


class ServiceConfig(BaseModel):
    """HTTP service parameters."""
    
    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    max_qubits: int = Field(
        default=24,
        ge=1,
        description="Widest circuit accepted over HTTP"
    )
    max_shots: int = Field(
        default=1_000_000,
        ge=1,
        description="Largest shot count accepted over HTTP"
    )
    default_shots: Optional[int] = Field(
        default=None,
        ge=1,
        description="Shots used when a request gives none (None = exact distribution)"
    )
    max_stored_circuits: int = Field(
        default=1000,
        ge=1,
        description="Most circuits held by the upload registry at once"
    )


class LoggingConfig(BaseModel):
    """Logging parameters."""
    
    level: str = Field(default="INFO", description="Logging level name")
    json_format: bool = Field(default=False, description="Emit JSON-structured logs")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")
    
    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Ensure level is a standard logging level name."""
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown logging level '{v}'")
        return v


class Config(BaseModel):
    """Top-level configuration combining simulator, service and logging."""
    
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata (deployment name, notes, etc.)"
    )
    
    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
    
    def to_yaml(self, yaml_path: Path) -> None:
        """Save configuration to YAML file."""
        with open(yaml_path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
