# twigmod/core/resolution/__init__.py
"""
Static dependency resolution for templates.

Resolves template specifiers to files, loads and walks them, and produces
the ordered, deduplicated dependency list a generated module imports.
"""
from .graph import DependencyGraph, DependencyGraphBuilder, DependencyRecord, SkippedDependency
from .path_resolution import PathResolver, resolve_specifier, template_id_for
from .walker import TemplateReference, walk_tokens

__all__ = [
    "DependencyGraph",
    "DependencyGraphBuilder",
    "DependencyRecord",
    "SkippedDependency",
    "PathResolver",
    "resolve_specifier",
    "template_id_for",
    "TemplateReference",
    "walk_tokens",
]
