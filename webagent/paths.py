from __future__ import annotations

import re

DEFAULT_EXTENSION = ".html"

_SLASH_RUN_RE = re.compile(r"/+")


def normalize(raw_path: str, extension: str = DEFAULT_EXTENSION) -> str:
    """Canonicalize a page identifier into a collection key.

    "about" -> "/about.html", "/" -> "/index.html", "//x//y" -> "/x/y.html".
    Idempotent for every input.
    """
    path = raw_path or ""
    if not path.startswith("/"):
        path = "/" + path
    path = _SLASH_RUN_RE.sub("/", path)
    if not path.endswith(extension):
        path = f"/index{extension}" if path == "/" else f"{path}{extension}"
    return path
