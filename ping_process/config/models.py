"""
Configuration models using Pydantic.

This module defines the configuration structure for ping-process.
"""

import sys
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _default_ping_arguments() -> list[str]:
    # Windows ping stops after four echoes on its own; POSIX ping needs a count
    if sys.platform.startswith("win"):
        return []
    return ["-c", "4"]


class PingConfig(BaseModel):
    """Diagnostic executable configuration."""

    executable: str = Field(default="ping", description="Executable name or path")
    arguments: list[str] = Field(
        default_factory=_default_ping_arguments,
        description="Fixed arguments placed before the target",
    )
    working_directory: Optional[Path] = Field(
        default=None, description="Working directory for spawned processes"
    )

    @field_validator("executable")
    @classmethod
    def validate_executable(cls, v: str) -> str:
        """Validate executable is not blank."""
        if not v.strip():
            raise ValueError("executable must not be empty")
        return v


class ExecutorConfig(BaseModel):
    """Worker pool and cleanup configuration."""

    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        le=256,
        description="Default worker pool size (None = ThreadPoolExecutor default)",
    )
    long_running_workers: int = Field(
        default=4, ge=1, le=64, description="Dedicated pool size for long-running runs"
    )
    drain_timeout: float = Field(
        default=5.0, gt=0, le=300, description="Seconds to wait for stream pumps to drain"
    )


class PingProcessConfig(BaseModel):
    """Main ping-process configuration."""

    ping: PingConfig = Field(default_factory=PingConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)

    @classmethod
    def create_default(cls) -> "PingProcessConfig":
        """Create default configuration."""
        return cls()
