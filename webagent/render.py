from __future__ import annotations

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
    keep_trailing_newline=True,
)


def render_placeholder_page(
    headline: str = "Create your masterpiece...",
    title: str = "Cyber Dark Theme Placeholder",
    subtitle: Optional[str] = None,
) -> str:
    """HTML for the page every new web app or game session starts with."""
    tpl = _env.get_template("placeholder.html")
    return tpl.render(headline=headline, title=title, subtitle=subtitle)


def render_starter_program(greeting: str = "Hello, Solana!") -> str:
    tpl = _env.get_template("lib.rs")
    return tpl.render(greeting=greeting)
