# twigmod/core/templating/extensions.py
"""
Jinja2 extension adding the Twig tags the dependency walker understands:

    {% embed "card.twig" with {"title": t} only %}
        {% block body %}...{% endblock %}
    {% endembed %}

    {% spaceless %}<div>  <b>x</b>  </div>{% endspaceless %}

    {% apply upper|trim %}...{% endapply %}

`embed` renders another template with some of its blocks replaced. The
overriding blocks are compiled as local macros inside a scope so they never
clash with the blocks of the enclosing template.
"""
import re
from typing import Any, Callable, Dict, Iterator, Optional

from jinja2 import nodes, pass_context
from jinja2.ext import Extension
from markupsafe import Markup
import structlog

log = structlog.get_logger(__name__)

EMBED_METHOD = "_render_embed"
SPACELESS_METHOD = "_strip_whitespace"

_BETWEEN_TAGS = re.compile(r">\s+<")
EMBED_MACRO_PREFIX = "__embed_"


def embed_macro_name(lineno: int, block_name: str) -> str:
    return f"{EMBED_MACRO_PREFIX}{lineno}_{block_name}"


def block_name_from_macro(macro_name: str) -> str:
    # inverse of embed_macro_name; block names may contain underscores.
    return macro_name[len(EMBED_MACRO_PREFIX):].split("_", 1)[-1]


def _macro_as_block(macro: Callable[[], Any]) -> Callable[[Any], Iterator[str]]:
    # block functions are generators taking the render context.
    def render_block(context) -> Iterator[str]:
        yield macro()
    return render_block


class TemplateTagsExtension(Extension):
    tags = {"embed", "spaceless", "apply"}

    def parse(self, parser):
        token = next(parser.stream)
        if token.value == "embed":
            return self._parse_embed(parser, token.lineno)
        if token.value == "spaceless":
            return self._parse_spaceless(parser, token.lineno)
        return self._parse_apply(parser, token.lineno)

    def _parse_embed(self, parser, lineno: int) -> nodes.Scope:
        template = parser.parse_expression()
        variables: nodes.Expr = nodes.Const(None)
        only = False
        if parser.stream.skip_if("name:with"):
            variables = parser.parse_expression()
        if parser.stream.skip_if("name:only"):
            only = True
        body = parser.parse_statements(("name:endembed",), drop_needle=True)

        scope_body = []
        overrides = []
        for node in body:
            # like a child template: anything outside a block is dropped.
            if not isinstance(node, nodes.Block):
                continue
            macro_name = embed_macro_name(lineno, node.name)
            scope_body.append(nodes.Macro(macro_name, [], [], node.body, lineno=node.lineno))
            overrides.append(nodes.Pair(nodes.Const(node.name), nodes.Name(macro_name, "load")))

        call = self.call_method(
            EMBED_METHOD,
            [template, nodes.Dict(overrides), variables, nodes.Const(only)],
            lineno=lineno,
        )
        scope_body.append(nodes.Output([call], lineno=lineno))
        return nodes.Scope(scope_body, lineno=lineno)

    def _parse_spaceless(self, parser, lineno: int) -> nodes.CallBlock:
        body = parser.parse_statements(("name:endspaceless",), drop_needle=True)
        return nodes.CallBlock(self.call_method(SPACELESS_METHOD), [], [], body, lineno=lineno)

    def _parse_apply(self, parser, lineno: int) -> nodes.FilterBlock:
        # same shape as jinja's own {% filter %} block.
        node = nodes.FilterBlock(lineno=lineno)
        node.filter = parser.parse_filter(None, start_inline=True)
        node.body = parser.parse_statements(("name:endapply",), drop_needle=True)
        return node

    @pass_context
    def _render_embed(
        self,
        context,
        template_name: str,
        overrides: Dict[str, Callable[[], Any]],
        variables: Optional[Dict[str, Any]],
        only: bool,
    ) -> Markup:
        template = self.environment.get_template(template_name, parent=context.name)
        values = {} if only else dict(context.get_all())
        if variables:
            values.update(variables)
        embedded = template.new_context(values)
        for block_name, macro in overrides.items():
            embedded.blocks.setdefault(block_name, []).insert(0, _macro_as_block(macro))
        log.debug("rendering_embed", template=template.name, parent=context.name, blocks=sorted(overrides))
        return Markup("".join(template.root_render_func(embedded)))

    def _strip_whitespace(self, caller):
        result = caller()
        stripped = _BETWEEN_TAGS.sub("><", str(result).strip())
        return Markup(stripped) if isinstance(result, Markup) else stripped
