# twigmod/core/runtime.py
"""
Helpers called by generated template modules.

`import_template` imports a dependency template by absolute path (compiling
it on first use), `register_template` fills a registry in dependency order,
and `render_template` renders with a fresh registry, turning any failure into
a visible inline error instead of raising.
"""
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, Optional

from jinja2 import Template
from markupsafe import escape
import structlog

from twigmod.config.settings import TwigmodConfig
from twigmod.core.templating.environment import TemplateRegistry
from twigmod.importer import TemplateLoader
from twigmod.util import template_module_name

log = structlog.get_logger(__name__)

ERROR_PAYLOAD = '<div style="color: red"> Error rendering template: in {path}. {error}</div>'


def import_template(path: str, options: Dict[str, Any]) -> ModuleType:
    """Imports the template at `path` as a module, reusing an existing one."""
    template_path = Path(path)
    module_name = template_module_name(template_path)
    existing = sys.modules.get(module_name)
    if existing is not None:
        return existing

    loader = TemplateLoader(TwigmodConfig.from_options(options), template_path)
    spec = importlib.util.spec_from_loader(module_name, loader, origin=str(template_path))
    module = importlib.util.module_from_spec(spec)
    # inserted before execution so cyclic template imports see the partial module.
    sys.modules[module_name] = module
    try:
        loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def register_template(
    registry: TemplateRegistry,
    dependencies: Iterable[ModuleType],
    register_self: Callable[[TemplateRegistry], bool],
    template_id: str,
) -> Template:
    for dependency in dependencies:
        dependency.register_self(registry)
    register_self(registry)
    return registry.environment.get_template(template_id)


def render_error_payload(path: str, error: Exception) -> str:
    return ERROR_PAYLOAD.format(path=escape(path), error=escape(str(error)))


def render_template(
    register: Callable[[TemplateRegistry], Template],
    options: Dict[str, Any],
    template_id: str,
    template_path: str,
    context: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> str:
    values = dict(context or {})
    values.update(extra)
    try:
        registry = TemplateRegistry(TwigmodConfig.from_options(options))
        template = register(registry)
        return template.render(values)
    except Exception as e:
        log.error("template_render_failed", template=template_id, path=template_path, error=str(e), exc_info=True)
        return render_error_payload(template_path, e)
