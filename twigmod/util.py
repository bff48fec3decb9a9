import hashlib
import re
from pathlib import Path
from typing import Sequence

utf8_bom = b"\xef\xbb\xbf"
_non_identifier_chars = re.compile(r"\W+")

def strip_utf8_bom(data: bytes) -> bytes:
    # removes the utf-8 byte order mark from byte data if present.
    if data.startswith(utf8_bom):
        return data[len(utf8_bom):]
    return data

def strip_template_extension(file_name: str, extensions: Sequence[str]) -> str:
    # drops the first matching template extension, longest first (".html.twig" before ".twig").
    for ext in sorted(extensions, key=len, reverse=True):
        if ext and file_name.endswith(ext):
            return file_name[: -len(ext)]
    return file_name

def module_file_name(template_path: Path, extensions: Sequence[str]) -> str:
    # "card.html.twig" -> "card_html.py"; file names are not valid identifiers in general.
    stem = strip_template_extension(template_path.name, extensions)
    identifier = _non_identifier_chars.sub("_", stem).strip("_") or "template"
    if identifier[0].isdigit():
        identifier = f"_{identifier}"
    return f"{identifier}.py"

def template_module_name(template_path: Path) -> str:
    # stable sys.modules key for a template imported by absolute path.
    digest = hashlib.sha1(str(template_path).encode("utf-8")).hexdigest()[:16]
    return f"twigmod_template_{digest}"
