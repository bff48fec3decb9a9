# twigmod/core/discovery/__init__.py
"""
Template discovery for `twigmod build`.

Finds template files under the input paths, honouring include/exclude
globs, hidden files and .gitignore rules.
"""
from .walker import discover_templates

__all__ = ["discover_templates"]
