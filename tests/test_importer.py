import importlib
import sys
import pytest
from pathlib import Path

import twigmod
from twigmod.config.settings import TwigmodConfig
from twigmod.importer import TemplateFinder
from twigmod.util import template_module_name


@pytest.fixture
def import_root(tmp_path: Path):
    """Puts a directory of templates on sys.path with the import hook installed."""
    root = tmp_path / "importable"
    (root / "tpl_site").mkdir(parents=True)
    (root / "tpl_site" / "layout.twig").write_text("[{% block body %}{% endblock %}]")
    (root / "tpl_site" / "home.twig").write_text(
        '{% extends "./layout.twig" %}{% block body %}{{ title }}{% endblock %}'
    )
    (root / "tpl_top.twig").write_text("top {{ n }}")
    (root / "tpl_plain.txt").write_text("not a template")

    sys.path.insert(0, str(root))
    importlib.invalidate_caches()
    twigmod.install(TwigmodConfig(root=root))
    modules_before = set(sys.modules)
    yield root
    twigmod.uninstall()
    sys.path.remove(str(root))
    for name in set(sys.modules) - modules_before:
        if name.startswith(("tpl_", "twigmod_template_")):
            del sys.modules[name]


def test_template_in_package_is_importable(import_root: Path):
    module = importlib.import_module("tpl_site.home")
    assert module.render({"title": "Hi"}) == "[Hi]"
    assert module.__file__ == str(import_root / "tpl_site" / "home.twig")
    assert module.TEMPLATE_ID == "tpl_site/home.twig"

def test_top_level_template_is_importable(import_root: Path):
    module = importlib.import_module("tpl_top")
    assert module.render(n=3) == "top 3"

def test_module_is_shared_with_path_imports(import_root: Path):
    module = importlib.import_module("tpl_site.layout")
    assert sys.modules[template_module_name(import_root / "tpl_site" / "layout.twig")] is module

def test_non_template_files_are_not_found(import_root: Path):
    with pytest.raises(ModuleNotFoundError):
        importlib.import_module("tpl_plain")

def test_install_replaces_existing_finder(import_root: Path):
    twigmod.install(TwigmodConfig(root=import_root))
    assert sum(isinstance(f, TemplateFinder) for f in sys.meta_path) == 1
    twigmod.uninstall()
    assert not any(isinstance(f, TemplateFinder) for f in sys.meta_path)

def test_generated_code_is_attributed_to_the_template(import_root: Path):
    module = importlib.import_module("tpl_top")
    assert module.render.__code__.co_filename == str(import_root / "tpl_top.twig")
    dependency = importlib.import_module("tpl_site.home").DEPENDENCIES[0]
    assert dependency.register_self.__code__.co_filename == str(import_root / "tpl_site" / "layout.twig")
