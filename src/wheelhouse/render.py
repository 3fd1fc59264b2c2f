"""HTML rendering of simple index pages."""

from html import escape
from urllib.parse import quote

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta name="pypi:repository-version" content="1.0">
    <title>{title}</title>
  </head>
  <body>
{body}
  </body>
</html>
"""


def _page(title: str, links: list[tuple[str, str]]) -> str:
    body = "\n".join(
        f'    <a href="{escape(href)}">{escape(text)}</a><br/>' for href, text in links
    )
    return _PAGE_TEMPLATE.format(title=escape(title), body=body)


def render_homepage() -> str:
    return _page("Wheelhouse", [("/simple/", "Simple")])


def render_root(projects: list[tuple[str, str]]) -> str:
    """Render the project list from ``(normalized, canonical)`` pairs."""
    links = [
        (f"/simple/{quote(normalized)}/", canonical) for normalized, canonical in projects
    ]
    return _page("Simple index", links)


def render_project(normalized_name: str, canonical_name: str, file_names: list[str]) -> str:
    """Render the file list of one project."""
    links = [
        (f"/simple/{quote(normalized_name)}/{quote(file_name)}", file_name)
        for file_name in file_names
    ]
    return _page(f"Links for {canonical_name}", links)
