# twigmod/core/resolution/walker.py
"""
Token walker: finds every template reference in a token tree.

Dispatch is a fixed table from logic subtype to traversal rule. References
are yielded in the order they appear in the source, nested bodies included,
which is what makes the dependency order deterministic.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator

import structlog

from twigmod.core.templating.tokens import LogicToken, Token

log = structlog.get_logger(__name__)


class TraversalRule(Enum):
    BODY = "body"            # recurse into output only
    REFERENCE = "reference"  # visit the stack, all-literal or nothing
    EMBED = "embed"          # visit literal stack entries, then recurse into output
    IMPORT = "import"        # visit literal stack entries unless it names _self


TRAVERSAL_RULES: Dict[str, TraversalRule] = {
    "block": TraversalRule.BODY,
    "if": TraversalRule.BODY,
    "elseif": TraversalRule.BODY,
    "else": TraversalRule.BODY,
    "for": TraversalRule.BODY,
    "spaceless": TraversalRule.BODY,
    "capture": TraversalRule.BODY,
    "macro": TraversalRule.BODY,
    "apply": TraversalRule.BODY,
    "call": TraversalRule.BODY,
    "with": TraversalRule.BODY,
    "scope": TraversalRule.BODY,
    "autoescape": TraversalRule.BODY,
    "extends": TraversalRule.REFERENCE,
    "include": TraversalRule.REFERENCE,
    "embed": TraversalRule.EMBED,
    "import": TraversalRule.IMPORT,
    "from": TraversalRule.IMPORT,
}


@dataclass(frozen=True)
class TemplateReference:
    """A statically known template name found in a token tree."""
    specifier: str
    tag: str
    lineno: int = 0
    optional: bool = False  # include ... ignore missing


def _stack_references(token: LogicToken, require_all: bool = False) -> Iterator[TemplateReference]:
    literals = [expr for expr in token.stack if expr.is_string_literal]
    if len(literals) < len(token.stack):
        # computed template name; the renderer resolves it at runtime.
        log.debug("dynamic_template_reference_skipped", tag=token.subtype, line=token.lineno)
        if require_all:
            return
    for expr in literals:
        yield TemplateReference(expr.value, token.subtype, expr.lineno or token.lineno, token.ignore_missing)


def walk_token(token: Token) -> Iterator[TemplateReference]:
    if not isinstance(token, LogicToken):
        return
    rule = TRAVERSAL_RULES.get(token.subtype)
    if rule is None:
        return
    if rule is TraversalRule.BODY:
        yield from walk_tokens(token.output)
    elif rule is TraversalRule.REFERENCE:
        yield from _stack_references(token, require_all=True)
    elif rule is TraversalRule.EMBED:
        yield from _stack_references(token)
        yield from walk_tokens(token.output)
    elif rule is TraversalRule.IMPORT:
        if any(expr.is_self_reference for expr in token.stack):
            return
        yield from _stack_references(token)


def walk_tokens(tokens: Iterable[Token]) -> Iterator[TemplateReference]:
    """Yields template references in source order, depth first."""
    for token in tokens:
        yield from walk_token(token)
