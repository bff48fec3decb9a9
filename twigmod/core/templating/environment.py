# twigmod/core/templating/environment.py
"""
Jinja2 environment and the per-render template registry.

Templates are registered under their canonical id (see
`PathResolver.template_id`). `TemplateEnvironment.join_path` maps every
name a template asks for, relative or namespaced, onto that same id, so a
dependency registered by a generated module is found whichever specifier
the including template used.
"""
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateNotFound, Undefined
import structlog

from twigmod.config.settings import TwigmodConfig
from twigmod.core.resolution.loader import read_template_source
from twigmod.core.resolution.path_resolution import PathResolver
from twigmod.exceptions import TemplateRegistrationError

from .extensions import TemplateTagsExtension

log = structlog.get_logger(__name__)


class TemplateEnvironment(Environment):
    def __init__(self, resolver: PathResolver, **options):
        super().__init__(**options)
        self.template_resolver = resolver

    def join_path(self, template: str, parent: str) -> str:
        return self.template_resolver.join(template, parent)


def create_environment(config: TwigmodConfig, loader: Optional[BaseLoader] = None) -> TemplateEnvironment:
    return TemplateEnvironment(
        PathResolver.from_config(config),
        loader=loader,
        extensions=[TemplateTagsExtension],
        autoescape=config.autoescape,
        undefined=StrictUndefined if config.strict_variables else Undefined,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )


class TemplateRegistry(BaseLoader):
    """Loader holding the templates registered for one render.

    A fresh registry is built for every render call, so nothing registered
    for one entry template can collide with another. Names that were never
    registered (dynamic includes the static pass could not see) are
    resolved from disk.
    """

    def __init__(self, config: TwigmodConfig):
        self.config = config
        self.resolver = PathResolver.from_config(config)
        self._templates: Dict[str, Tuple[str, str]] = {}
        self.environment = create_environment(config, loader=self)

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def add(self, template_id: str, source: str, filename: str) -> bool:
        """Registers a template; returns False if the id was already present."""
        existing = self._templates.get(template_id)
        if existing is not None:
            if existing[1] != filename:
                raise TemplateRegistrationError(
                    f"template id '{template_id}' is already registered for {existing[1]}, not {filename}"
                )
            log.debug("template_already_registered", template=template_id)
            return False
        self._templates[template_id] = (source, filename)
        log.debug("template_registered", template=template_id, filename=filename)
        return True

    def get_source(self, environment: Environment, template: str) -> Tuple[str, str, Callable[[], bool]]:
        registered = self._templates.get(template)
        if registered is not None:
            source, filename = registered
            return source, filename, lambda: True

        path = self.resolver.path_for_id(template)
        if not path.is_file():
            raise TemplateNotFound(template)
        log.info("template_resolved_at_runtime", template=template, path=str(path))
        mtime = path.stat().st_mtime
        source = read_template_source(path)
        return source, str(path), lambda: path.is_file() and path.stat().st_mtime == mtime

    def list_templates(self) -> List[str]:
        return sorted(self._templates)
