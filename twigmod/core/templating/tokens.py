# twigmod/core/templating/tokens.py
"""
The token tree the dependency walker reads.

Jinja2 parses a template into its own AST; this module folds that AST into
two token kinds. Logic tokens carry a subtype, an `output` body and a
`stack` of argument expressions (the template name for extends, include,
embed, import and from). Expression tokens are leaves; only string literals
among them can be resolved ahead of time.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from jinja2 import Environment, nodes
import structlog

from .extensions import EMBED_METHOD, SPACELESS_METHOD, TemplateTagsExtension, block_name_from_macro

log = structlog.get_logger(__name__)

SELF_REFERENCE = "_self"

# expression kinds
STRING = "string"
CONSTANT = "constant"
NAME = "name"
TEXT = "text"
EXPRESSION = "expression"


@dataclass
class ExpressionToken:
    kind: str
    value: Any = None
    lineno: int = 0

    @property
    def is_string_literal(self) -> bool:
        return self.kind == STRING and isinstance(self.value, str)

    @property
    def is_self_reference(self) -> bool:
        return self.kind == NAME and self.value == SELF_REFERENCE


@dataclass
class LogicToken:
    subtype: str
    output: List["Token"] = field(default_factory=list)
    stack: List[ExpressionToken] = field(default_factory=list)
    lineno: int = 0
    name: Optional[str] = None
    ignore_missing: bool = False


Token = Union[LogicToken, ExpressionToken]


def expression_token(node: nodes.Node) -> ExpressionToken:
    lineno = getattr(node, "lineno", 0) or 0
    if isinstance(node, nodes.Const):
        kind = STRING if isinstance(node.value, str) else CONSTANT
        return ExpressionToken(kind, node.value, lineno)
    if isinstance(node, nodes.Name):
        return ExpressionToken(NAME, node.name, lineno)
    if isinstance(node, nodes.TemplateData):
        return ExpressionToken(TEXT, node.data, lineno)
    return ExpressionToken(EXPRESSION, type(node).__name__, lineno)


def template_stack(node: nodes.Expr) -> List[ExpressionToken]:
    # {% include ["a.twig", "b.twig"] %} names several candidate templates.
    if isinstance(node, (nodes.List, nodes.Tuple)):
        return [expression_token(item) for item in node.items]
    return [expression_token(node)]


def _extension_call(node: Optional[nodes.Node], method: str) -> Optional[nodes.Call]:
    if (
        isinstance(node, nodes.Call)
        and isinstance(node.node, nodes.ExtensionAttribute)
        and node.node.identifier == TemplateTagsExtension.identifier
        and node.node.name == method
    ):
        return node
    return None


def _embed_call(scope: nodes.Scope) -> Optional[nodes.Call]:
    if not scope.body:
        return None
    last = scope.body[-1]
    if isinstance(last, nodes.Output) and len(last.nodes) == 1:
        return _extension_call(last.nodes[0], EMBED_METHOD)
    return None


def _body(subtype: str, node: nodes.Node, body: List[nodes.Node], name: Optional[str] = None) -> LogicToken:
    return LogicToken(subtype, output=tokens_from_nodes(body), lineno=node.lineno, name=name)


def _if_tokens(node: nodes.If) -> List[Token]:
    tokens: List[Token] = [_body("if", node, node.body)]
    tokens.extend(_body("elseif", branch, branch.body) for branch in node.elif_)
    if node.else_:
        tokens.append(_body("else", node, node.else_))
    return tokens


def _for_tokens(node: nodes.For) -> List[Token]:
    tokens: List[Token] = [_body("for", node, node.body)]
    if node.else_:
        tokens.append(_body("else", node, node.else_))
    return tokens


def _scope_tokens(node: nodes.Scope) -> List[Token]:
    call = _embed_call(node)
    if call is None:
        return [_body("scope", node, node.body)]
    blocks: List[Token] = [
        _body("block", macro, macro.body, name=block_name_from_macro(macro.name))
        for macro in node.body[:-1]
        if isinstance(macro, nodes.Macro)
    ]
    return [LogicToken("embed", output=blocks, stack=template_stack(call.args[0]), lineno=node.lineno)]


def _call_block_tokens(node: nodes.CallBlock) -> List[Token]:
    subtype = "spaceless" if _extension_call(node.call, SPACELESS_METHOD) else "call"
    return [_body(subtype, node, node.body)]


def _reference(subtype: str) -> Callable[[nodes.Node], List[Token]]:
    def convert(node) -> List[Token]:
        return [LogicToken(
            subtype,
            stack=template_stack(node.template),
            lineno=node.lineno,
            ignore_missing=getattr(node, "ignore_missing", False),
        )]
    return convert


def _output_tokens(node: nodes.Output) -> List[Token]:
    return [expression_token(child) for child in node.nodes]


# every jinja statement that can hold a body or name another template;
# anything else carries no cross-template reference and is dropped.
_NODE_CONVERTERS: Dict[type, Callable[[Any], List[Token]]] = {
    nodes.Output: _output_tokens,
    nodes.Block: lambda node: [_body("block", node, node.body, name=node.name)],
    nodes.If: _if_tokens,
    nodes.For: _for_tokens,
    nodes.Macro: lambda node: [_body("macro", node, node.body, name=node.name)],
    nodes.CallBlock: _call_block_tokens,
    nodes.FilterBlock: lambda node: [_body("apply", node, node.body)],
    nodes.AssignBlock: lambda node: [_body("capture", node, node.body)],
    nodes.With: lambda node: [_body("with", node, node.body)],
    nodes.Scope: _scope_tokens,
    nodes.ScopedEvalContextModifier: lambda node: [_body("autoescape", node, node.body)],
    nodes.Extends: _reference("extends"),
    nodes.Include: _reference("include"),
    nodes.Import: _reference("import"),
    nodes.FromImport: _reference("from"),
}


def tokens_from_nodes(body: List[nodes.Node]) -> List[Token]:
    tokens: List[Token] = []
    for node in body:
        converter = _NODE_CONVERTERS.get(type(node))
        if converter is not None:
            tokens.extend(converter(node))
    return tokens


def parse_tokens(
    environment: Environment,
    source: str,
    name: Optional[str] = None,
    filename: Optional[str] = None,
) -> List[Token]:
    """Parses template source with jinja2 and returns its token tree.

    Raises jinja2.TemplateSyntaxError for invalid source.
    """
    template_ast = environment.parse(source, name, filename)
    tokens = tokens_from_nodes(template_ast.body)
    log.debug("template_tokens_parsed", template=name, count=len(tokens))
    return tokens
