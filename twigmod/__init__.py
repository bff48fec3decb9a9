# twigmod/__init__.py
"""
twigmod: compile Twig-style templates into importable Python modules.

    import twigmod
    twigmod.install(twigmod.load_config())
    import pages.home              # pages/home.twig
    html = pages.home.render({"title": "Hello"})
"""
__version__ = "0.1.0"

from twigmod.config import TwigmodConfig, load_config
from twigmod.importer import install, uninstall

__all__ = ["__version__", "TwigmodConfig", "load_config", "install", "uninstall"]
