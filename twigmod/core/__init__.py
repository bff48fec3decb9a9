# twigmod/core/__init__.py
"""
Core of twigmod: static dependency resolution, module emission and the
runtime helpers generated modules call.
"""
