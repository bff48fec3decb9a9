# twigmod/core/templating/__init__.py
"""
Templating module for twigmod.

Wraps jinja2: the environment with the Twig tag extension, the per-render
template registry, and the token tree the dependency walker reads.
"""
from .environment import TemplateEnvironment, TemplateRegistry, create_environment
from .tokens import ExpressionToken, LogicToken, Token, parse_tokens

__all__ = [
    "TemplateEnvironment",
    "TemplateRegistry",
    "create_environment",
    "ExpressionToken",
    "LogicToken",
    "Token",
    "parse_tokens",
]
