"""Dev container configuration discovery."""

from .resolver import (
    ConfigResolution,
    ResolutionStatus,
    find_config_path,
    parse_config_text,
    resolve_config,
    strip_jsonc_comments,
)
from .spec import BuildSpec, ContainerSpec

__all__ = [
    "BuildSpec",
    "ConfigResolution",
    "ContainerSpec",
    "find_config_path",
    "parse_config_text",
    "resolve_config",
    "ResolutionStatus",
    "strip_jsonc_comments",
]
