from pathlib import Path
from twigmod.util import module_file_name, strip_template_extension, strip_utf8_bom, template_module_name

def test_strip_template_extension_prefers_longest():
    assert strip_template_extension("card.html.twig", [".twig", ".html.twig"]) == "card"
    assert strip_template_extension("card.twig", [".html.twig", ".twig"]) == "card"
    assert strip_template_extension("card.txt", [".twig"]) == "card.txt"

def test_module_file_name_is_an_identifier():
    assert module_file_name(Path("card.html.twig"), [".twig"]) == "card_html.py"
    assert module_file_name(Path("404.twig"), [".twig"]) == "_404.py"
    assert module_file_name(Path("my-page.twig"), [".twig"]) == "my_page.py"

def test_template_module_name_is_stable():
    path = Path("/proj/src/a.twig")
    assert template_module_name(path) == template_module_name(Path("/proj/src/a.twig"))
    assert template_module_name(path) != template_module_name(Path("/proj/src/b.twig"))
    assert template_module_name(path).isidentifier()

def test_strip_utf8_bom():
    assert strip_utf8_bom(b"\xef\xbb\xbfhello") == b"hello"
    assert strip_utf8_bom(b"hello") == b"hello"
