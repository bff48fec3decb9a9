import pytest
from pathlib import Path
from structlog.testing import capture_logs

from twigmod.config.settings import TwigmodConfig
from twigmod.core.resolution.graph import DependencyGraphBuilder
from twigmod.core.resolution.loader import DependencyLoader
from twigmod.core.transform import TemplateTransformer
from twigmod.exceptions import DependencyLoadError


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Creates an empty template project with a src/ namespace directory."""
    proj_dir = tmp_path / "proj"
    (proj_dir / "src" / "pages").mkdir(parents=True)
    (proj_dir / "src" / "partials").mkdir(parents=True)
    return proj_dir

@pytest.fixture
def transformer(project: Path) -> TemplateTransformer:
    return TemplateTransformer(TwigmodConfig(root=project, namespaces={"ns": "src"}))

def write(project: Path, relative: str, content: str) -> Path:
    path = project / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path

def graph_for(transformer: TemplateTransformer, entry: Path):
    return transformer.compile_unit(entry.read_text(), entry).graph

def relative_paths(graph, project: Path):
    return [p.relative_to(project).as_posix() for p in graph.paths]


def test_no_references_means_no_dependencies(project, transformer):
    entry = write(project, "src/pages/home.twig", "<h1>{{ title }}</h1>{% if x %}plain{% endif %}")
    graph = graph_for(transformer, entry)
    assert graph.records == []
    assert len(graph) == 0

def test_same_dependency_twice_is_recorded_once(project, transformer):
    write(project, "src/partials/card.twig", "card")
    entry = write(
        project,
        "src/pages/home.twig",
        '{% include "@ns/partials/card.twig" %}'
        '{% include "../partials/card.twig" %}'
        '{% include "src/partials/card.twig" %}',
    )
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/partials/card.twig"]
    assert graph.records[0].specifier == "@ns/partials/card.twig"
    assert graph.records[0].template_id == "@ns/partials/card.twig"

def test_cycle_terminates_with_one_record_each(project, transformer):
    write(project, "src/a.twig", '{% include "./b.twig" %}')
    write(project, "src/b.twig", '{% include "./a.twig" %}')
    entry = write(project, "src/entry.twig", '{% include "@ns/a.twig" %}')
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/a.twig", "src/b.twig"]

def test_entry_is_never_its_own_dependency(project, transformer):
    write(project, "src/b.twig", '{% include "./entry.twig" %}')
    entry = write(project, "src/entry.twig", '{% include "./b.twig" %}')
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/b.twig"]
    assert entry in graph.visited

def test_depth_first_pre_order(project, transformer):
    write(project, "src/x.twig", '{% include "./z.twig" %}')
    write(project, "src/y.twig", "y")
    write(project, "src/z.twig", "z")
    entry = write(project, "src/entry.twig", '{% include "./x.twig" %}{% include "./y.twig" %}')
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/x.twig", "src/z.twig", "src/y.twig"]

def test_nested_control_flow_and_embed_order(project, transformer):
    write(project, "src/layouts/base.twig", "{% block content %}{% endblock %}")
    write(project, "src/partials/card.twig", "{% block body %}{% endblock %}")
    write(project, "src/partials/icon.twig", "*")
    write(project, "src/macros.twig", "{% macro b() %}b{% endmacro %}")
    entry = write(
        project,
        "src/pages/home.twig",
        '{% extends "@ns/layouts/base.twig" %}'
        '{% from "@ns/macros.twig" import b %}'
        '{% block content %}{% for i in items %}{% if i %}'
        '{% embed "@ns/partials/card.twig" %}{% block body %}{% include "@ns/partials/icon.twig" %}{% endblock %}{% endembed %}'
        '{% endif %}{% endfor %}{% endblock %}',
    )
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == [
        "src/layouts/base.twig",
        "src/macros.twig",
        "src/partials/card.twig",
        "src/partials/icon.twig",
    ]
    assert [r.lineno for r in graph.records] == [1, 1, 1, 1]
    assert graph.records[-1].referrer == entry

def test_dynamic_reference_is_not_an_error(project, transformer):
    entry = write(project, "src/entry.twig", '{% include page %}{% include "@ns/" ~ name %}')
    graph = graph_for(transformer, entry)
    assert graph.records == []
    assert graph.skipped == []

def test_missing_dependency_aborts_with_specifier_and_path(project, transformer):
    entry = write(project, "src/pages/home.twig", '\n{% include "@ns/partials/missing.twig" %}')
    with pytest.raises(DependencyLoadError) as excinfo:
        graph_for(transformer, entry)
    error = excinfo.value
    message = str(error)
    assert error.specifier == "@ns/partials/missing.twig"
    assert error.path == project / "src" / "partials" / "missing.twig"
    assert "@ns/partials/missing.twig" in message
    assert str(project / "src" / "partials" / "missing.twig") in message
    assert f"{entry}:2" in message
    assert isinstance(error.cause, FileNotFoundError)

def test_unrepresentable_file_name_is_a_load_failure(project, transformer):
    write(project, "src/fine.twig", "fine")
    # jinja unescapes the \x00 inside the string literal into a NUL byte.
    entry = write(project, "src/entry.twig", '{% include "./a\\x00b.twig" %}{% include "./fine.twig" %}')
    with pytest.raises(DependencyLoadError) as excinfo:
        graph_for(transformer, entry)
    assert excinfo.value.specifier == "./a\x00b.twig"
    assert isinstance(excinfo.value.cause, ValueError)
    assert excinfo.value.referrer == entry

def test_missing_dependency_deep_in_the_tree_aborts(project, transformer):
    write(project, "src/a.twig", '{% include "./gone.twig" %}')
    entry = write(project, "src/entry.twig", '{% include "./a.twig" %}')
    with pytest.raises(DependencyLoadError) as excinfo:
        graph_for(transformer, entry)
    assert excinfo.value.referrer == project / "src" / "a.twig"

def test_empty_dependency_is_skipped_with_warning(project, transformer):
    write(project, "src/empty.twig", "")
    write(project, "src/blank.twig", "  \n\t\n")
    write(project, "src/after.twig", "after")
    entry = write(
        project,
        "src/entry.twig",
        '{% include "./empty.twig" %}{% include "./blank.twig" %}{% include "./after.twig" %}',
    )
    with capture_logs() as logs:
        graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/after.twig"]
    assert [(s.path.name, s.reason) for s in graph.skipped] == [("empty.twig", "empty"), ("blank.twig", "empty")]
    warnings = [e for e in logs if e["event"] == "empty_dependency_skipped"]
    assert [(e["log_level"], e["specifier"]) for e in warnings] == [
        ("warning", "./empty.twig"),
        ("warning", "./blank.twig"),
    ]

def test_parse_failure_is_isolated(project, transformer):
    write(project, "src/broken.twig", '{% if %}{% include "./never.twig" %}')
    write(project, "src/fine.twig", "fine")
    entry = write(project, "src/entry.twig", '{% include "./broken.twig" %}{% include "./fine.twig" %}')
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/fine.twig"]
    (skipped,) = graph.skipped
    assert skipped.reason == "error"
    assert skipped.specifier == "./broken.twig"

def test_ignore_missing_include_is_skipped(project, transformer):
    write(project, "src/present.twig", "here")
    entry = write(
        project,
        "src/entry.twig",
        '{% include ["./absent.twig", "./present.twig"] ignore missing %}',
    )
    graph = graph_for(transformer, entry)
    assert relative_paths(graph, project) == ["src/present.twig"]
    assert [(s.path.name, s.reason) for s in graph.skipped] == [("absent.twig", "missing")]

def test_each_build_starts_with_a_fresh_visited_set(project, transformer):
    write(project, "src/shared.twig", "shared")
    first = write(project, "src/first.twig", '{% include "./shared.twig" %}')
    second = write(project, "src/second.twig", '{% include "./shared.twig" %}')
    assert relative_paths(graph_for(transformer, first), project) == ["src/shared.twig"]
    assert relative_paths(graph_for(transformer, second), project) == ["src/shared.twig"]

def test_builder_accepts_any_token_parser(project):
    # the builder only needs resolver + parse callable; no jinja involved here.
    from twigmod.core.resolution.path_resolution import PathResolver
    from twigmod.core.templating.tokens import LogicToken, ExpressionToken, STRING

    write(project, "src/one.twig", "one")
    parsed = []

    def fake_parse(source, template_id, path):
        parsed.append(template_id)
        return []

    builder = DependencyGraphBuilder(PathResolver({"@ns": project / "src"}, project), fake_parse, DependencyLoader())
    entry_tokens = [LogicToken("include", stack=[ExpressionToken(STRING, "@ns/one.twig")])]
    graph = builder.build(entry_tokens, project / "src")
    assert graph.paths == [project / "src" / "one.twig"]
    assert parsed == ["@ns/one.twig"]
