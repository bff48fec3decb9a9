# twigmod/importer.py
"""
Import hook for template files.

After `twigmod.install()`, a template on the import path is importable like
a module: `pages/home.twig` becomes `import pages.home`, a module exposing
`render(context)`. Dependencies are imported by absolute path through
`twigmod.core.runtime.import_template`, which uses the same loader.
"""
import importlib.abc
import importlib.util
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from twigmod.config.settings import TwigmodConfig
from twigmod.core.resolution.loader import read_template_source
from twigmod.core.transform import TemplateTransformer
from twigmod.util import template_module_name

log = structlog.get_logger(__name__)


class TemplateLoader(importlib.abc.Loader):
    def __init__(self, config: TwigmodConfig, path: Path):
        self.config = config
        self.path = path

    def create_module(self, spec):
        return None  # default module creation

    def exec_module(self, module) -> None:
        transformer = TemplateTransformer(self.config)
        source = read_template_source(self.path)
        code = transformer.transform(source, self.path)
        if code is None:
            raise ImportError(f"{self.path} does not have a template extension", path=str(self.path))
        module.__file__ = str(self.path)
        # tracebacks point at the template file.
        filename = getattr(module.__spec__, "origin", None) or str(self.path)
        # dependents import this template by path; share one module object.
        alias = template_module_name(self.path)
        sys.modules.setdefault(alias, module)
        log.debug("executing_template_module", module=module.__name__, path=str(self.path))
        try:
            exec(compile(code, filename, "exec"), module.__dict__)
        except BaseException:
            if sys.modules.get(alias) is module:
                del sys.modules[alias]
            raise


class TemplateFinder(importlib.abc.MetaPathFinder):
    """Finds `<name><extension>` next to where a `<name>.py` would be."""

    def __init__(self, config: TwigmodConfig):
        self.config = config

    def find_spec(self, fullname: str, path: Optional[Sequence[str]] = None, target=None):
        name = fullname.rpartition(".")[2]
        search_paths = path if path is not None else sys.path
        for entry in search_paths:
            directory = Path(entry or ".")
            for ext in self.config.extensions:
                candidate = directory / f"{name}{ext}"
                if candidate.is_file():
                    candidate = Path(os.path.normpath(os.path.abspath(candidate)))
                    log.debug("template_module_found", module=fullname, path=str(candidate))
                    return importlib.util.spec_from_file_location(
                        fullname, candidate, loader=TemplateLoader(self.config, candidate)
                    )
        return None


def install(config: Optional[TwigmodConfig] = None) -> TemplateFinder:
    """Adds (or replaces) the template finder at the end of sys.meta_path."""
    uninstall()
    finder = TemplateFinder(config or TwigmodConfig())
    sys.meta_path.append(finder)
    log.info("template_import_hook_installed", extensions=finder.config.extensions, root=str(finder.config.root))
    return finder


def uninstall() -> None:
    sys.meta_path[:] = [f for f in sys.meta_path if not isinstance(f, TemplateFinder)]
