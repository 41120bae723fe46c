"""External toolchain interface and the command-template implementation."""

from .base import IToolchain
from .command import CommandToolchain, ToolchainCommands, expand_template

__all__ = [
    "CommandToolchain",
    "IToolchain",
    "ToolchainCommands",
    "expand_template",
]
