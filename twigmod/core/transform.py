# twigmod/core/transform.py
"""
The transform hook: template source + path in, generated module source out.

Each call runs one complete static pass with fresh state: parse the entry,
build its dependency graph, hand the result to the emission strategy.
"""
import os
from pathlib import Path
from typing import List, Optional, Union

from jinja2 import TemplateSyntaxError
import structlog

from twigmod.config.settings import TwigmodConfig
from twigmod.core.emitter import ModuleEmitter, TemplateUnit
from twigmod.core.resolution.graph import DependencyGraph, DependencyGraphBuilder
from twigmod.core.resolution.loader import DependencyLoader
from twigmod.core.resolution.path_resolution import PathResolver
from twigmod.core.templating.environment import create_environment
from twigmod.core.templating.tokens import Token, parse_tokens
from twigmod.exceptions import TemplateCompileError

log = structlog.get_logger(__name__)


def _absolute_path(path: Union[str, Path]) -> Path:
    return Path(os.path.normpath(os.path.abspath(path)))


class TemplateTransformer:
    """Compiles template files into module source for the import hook and the CLI.

    `emitter` is the emission strategy; anything with a `compile(unit) -> str`
    method can stand in for the default ModuleEmitter.
    """

    def __init__(self, config: TwigmodConfig, emitter=None):
        self.config = config
        self.resolver = PathResolver.from_config(config)
        self.environment = create_environment(config)
        self.emitter = emitter or ModuleEmitter(config.to_options())

    def matches(self, path: Union[str, Path]) -> bool:
        return self.config.is_template(Path(path))

    def parse(self, source: str, template_id: str, path: Path) -> List[Token]:
        return parse_tokens(self.environment, source, template_id, str(path))

    def build_graph(self, tokens: List[Token], path: Path) -> DependencyGraph:
        # a new builder, and with it a new visited set, for every entry template.
        builder = DependencyGraphBuilder(self.resolver, self.parse, DependencyLoader())
        return builder.build(tokens, path.parent, entry_path=path)

    def compile_unit(self, source: str, path: Union[str, Path]) -> TemplateUnit:
        path = _absolute_path(path)
        template_id = self.resolver.template_id(path)
        log.info("compiling_template", template=template_id, path=str(path))
        try:
            tokens = self.parse(source, template_id, path)
        except TemplateSyntaxError as e:
            raise TemplateCompileError(f"syntax error in {path}:{e.lineno}: {e.message}") from e
        graph = self.build_graph(tokens, path)
        try:
            display_path = path.relative_to(self.config.root).as_posix()
        except ValueError:
            display_path = path.as_posix()
        return TemplateUnit(template_id, path, source, tokens, graph, display_path)

    def transform(self, source: str, path: Union[str, Path]) -> Optional[str]:
        """Returns generated module source, or None for files this hook does not handle."""
        if not self.matches(path):
            log.debug("transform_passthrough", path=str(path))
            return None
        unit = self.compile_unit(source, path)
        return self.emitter.compile(unit)
