import pytest
from pathlib import Path

from twigmod.config.settings import TwigmodConfig
from twigmod.core.emitter import ModuleEmitter
from twigmod.core.transform import TemplateTransformer
from twigmod.exceptions import TemplateCompileError


@pytest.fixture
def project(tmp_path: Path) -> Path:
    proj_dir = tmp_path / "emit_proj"
    (proj_dir / "src").mkdir(parents=True)
    (proj_dir / "src" / "x.twig").write_text('{% include "./z.twig" %}')
    (proj_dir / "src" / "y.twig").write_text("y")
    (proj_dir / "src" / "z.twig").write_text("z")
    (proj_dir / "src" / "entry.twig").write_text('{% include "@app/x.twig" %}{% include "./y.twig" %}')
    return proj_dir

@pytest.fixture
def transformer(project: Path) -> TemplateTransformer:
    return TemplateTransformer(TwigmodConfig(root=project, namespaces={"app": "src"}))


def test_generated_module_is_valid_python(project, transformer):
    entry = project / "src" / "entry.twig"
    code = transformer.transform(entry.read_text(), entry)
    compile(code, str(entry), "exec")

def test_one_import_per_dependency_in_dependency_order(project, transformer):
    entry = project / "src" / "entry.twig"
    code = transformer.transform(entry.read_text(), entry)
    import_lines = [line for line in code.splitlines() if line.startswith("_dependency_")]
    assert import_lines == [
        f"_dependency_0 = import_template({str(project / 'src' / 'x.twig')!r}, OPTIONS)  # @app/x.twig",
        f"_dependency_1 = import_template({str(project / 'src' / 'z.twig')!r}, OPTIONS)  # @app/z.twig",
        f"_dependency_2 = import_template({str(project / 'src' / 'y.twig')!r}, OPTIONS)  # @app/y.twig",
    ]
    assert "DEPENDENCIES = (_dependency_0, _dependency_1, _dependency_2)" in code

def test_module_uses_template_id_not_path(project, transformer):
    entry = project / "src" / "entry.twig"
    code = transformer.transform(entry.read_text(), entry)
    assert "TEMPLATE_ID = '@app/entry.twig'" in code
    assert f"TEMPLATE_PATH = {str(entry)!r}" in code

def test_single_dependency_tuple_literal(project, transformer):
    entry = project / "src" / "x.twig"
    code = transformer.transform(entry.read_text(), entry)
    assert "DEPENDENCIES = (_dependency_0,)" in code

def test_no_dependencies(project, transformer):
    entry = project / "src" / "y.twig"
    code = transformer.transform(entry.read_text(), entry)
    assert "DEPENDENCIES = ()" in code
    assert "_dependency_" not in code

def test_generated_namespace_exposes_render_api(project, transformer):
    entry = project / "src" / "y.twig"
    namespace = {}
    exec(compile(transformer.transform(entry.read_text(), entry), str(entry), "exec"), namespace)
    assert namespace["OPTIONS"]["namespaces"] == {"@app": (project / "src").as_posix()}
    assert namespace["TEMPLATE_SOURCE"] == "y"
    for name in ("register_self", "register", "render"):
        assert callable(namespace[name])

def test_non_template_files_pass_through(project, transformer):
    assert transformer.transform("print('hi')", project / "src" / "script.py") is None

def test_entry_syntax_error_is_a_compile_error(project, transformer):
    broken = project / "src" / "broken.twig"
    broken.write_text("{% for %}")
    with pytest.raises(TemplateCompileError) as excinfo:
        transformer.transform(broken.read_text(), broken)
    assert str(broken) in str(excinfo.value)

def test_emitter_strategy_is_pluggable(project):
    class RecordingEmitter:
        def __init__(self):
            self.units = []

        def compile(self, unit):
            self.units.append(unit)
            return "# custom"

    emitter = RecordingEmitter()
    transformer = TemplateTransformer(TwigmodConfig(root=project), emitter=emitter)
    entry = project / "src" / "x.twig"
    assert transformer.transform(entry.read_text(), entry) == "# custom"
    (unit,) = emitter.units
    assert unit.template_id == "src/x.twig"
    assert [r.template_id for r in unit.graph.records] == ["src/z.twig"]

def test_dependency_names_are_positional():
    emitter = ModuleEmitter({})
    assert [emitter.dependency_name(i) for i in range(3)] == ["_dependency_0", "_dependency_1", "_dependency_2"]

def test_line_breaks_in_file_names_stay_inside_comments(project, transformer):
    (project / "src" / "dep\nboom_dep = 1\n.twig").write_text("dep")
    entry = project / "src" / "x\nboom = undefined_name\n.twig"
    entry.write_text('{% include "./dep\\nboom_dep = 1\\n.twig" %}')
    code = transformer.transform(entry.read_text(), entry)
    compile(code, "generated", "exec")
    assert not any(line.startswith("boom") for line in code.splitlines())
    assert "# Generated by twigmod from src/x\\nboom = undefined_name\\n.twig. Do not edit." in code
    assert code.count("_dependency_0 = import_template(") == 1
