# twigmod/config/__init__.py
"""
Configuration for twigmod: the TwigmodConfig dataclass and its TOML loader.
"""
from .settings import TwigmodConfig, normalize_namespace_prefix
from .loader import load_config

__all__ = ["TwigmodConfig", "load_config", "normalize_namespace_prefix"]
