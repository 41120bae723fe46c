"""Configuration parsing modules for gbuild."""

from .project_config import ConfigError, PackageSpec, ProjectConfig

__all__ = ["ConfigError", "PackageSpec", "ProjectConfig"]
