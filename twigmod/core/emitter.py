# twigmod/core/emitter.py
"""
Module emitter: turns a compiled template unit into Python module source.

The generated module imports every dependency in dependency order (each
under a positional name, since paths are not identifiers), registers them
ahead of itself, and renders the entry template by its template id.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import structlog

from twigmod.core.resolution.graph import DependencyGraph
from twigmod.core.templating.tokens import Token

log = structlog.get_logger(__name__)


@dataclass
class TemplateUnit:
    """Everything known about one entry template after the static pass."""
    template_id: str
    path: Path
    source: str
    tokens: List[Token] = field(repr=False)
    graph: DependencyGraph = field(repr=False)
    display_path: str = ""


MODULE_HEADER = '''\
# Generated by twigmod from {display_path}. Do not edit.
import json

from twigmod.core.runtime import import_template, register_template, render_template

OPTIONS = json.loads({options_json!r})
TEMPLATE_ID = {template_id!r}
TEMPLATE_PATH = {template_path!r}
TEMPLATE_SOURCE = {source!r}
'''

MODULE_FOOTER = '''
DEPENDENCIES = ({dependency_names})
DEPENDENCY_PATHS = ({dependency_paths})


def register_self(registry):
    return registry.add(TEMPLATE_ID, TEMPLATE_SOURCE, TEMPLATE_PATH)


def register(registry):
    """Registers every dependency, then this template; returns the compiled template."""
    return register_template(registry, DEPENDENCIES, register_self, TEMPLATE_ID)


def render(context=None, **extra):
    return render_template(register, OPTIONS, TEMPLATE_ID, TEMPLATE_PATH, context, **extra)
'''


def _comment_text(text: str) -> str:
    # a newline or carriage return in a file name would end the comment.
    return repr(text)[1:-1]


def _tuple_literal(items: List[str]) -> str:
    if not items:
        return ""
    return ", ".join(items) + ("," if len(items) == 1 else "")


class ModuleEmitter:
    """Default emission strategy: compile(unit) -> module source text."""

    def __init__(self, options: Dict[str, Any]):
        self.options = options

    def dependency_name(self, position: int) -> str:
        return f"_dependency_{position}"

    def compile(self, unit: TemplateUnit) -> str:
        records = unit.graph.records
        parts = [MODULE_HEADER.format(
            display_path=_comment_text(unit.display_path or unit.path.as_posix()),
            options_json=json.dumps(self.options, sort_keys=True),
            template_id=unit.template_id,
            template_path=str(unit.path),
            source=unit.source,
        )]
        if records:
            parts.append("")
        for position, record in enumerate(records):
            parts.append(
                f"{self.dependency_name(position)} = import_template({str(record.path)!r}, OPTIONS)"
                f"  # {_comment_text(record.template_id)}"
            )
        parts.append(MODULE_FOOTER.format(
            dependency_names=_tuple_literal([self.dependency_name(i) for i in range(len(records))]),
            dependency_paths=_tuple_literal([repr(str(record.path)) for record in records]),
        ))
        log.debug("module_emitted", template=unit.template_id, dependencies=len(records))
        return "\n".join(parts)
