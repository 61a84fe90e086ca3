"""
HTML and CSS helpers for generated pages.

Pages arrive from the server either as complete documents or as body
fragments with a separate stylesheet; these helpers move between the two
shapes without a DOM.
"""

import re
from collections.abc import Iterable

_STYLE_RE = re.compile(r"<style[^>]*>([\s\S]*?)</style>", re.IGNORECASE)
_BODY_RE = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)

# Navigation order used wherever pages are listed
PAGE_ORDER = ("home", "about", "services", "contact")


def extract_css(full_html: str | None) -> str:
    """Concatenate the contents of every <style> block in a document."""
    if not full_html:
        return ""
    blocks = [match.strip() for match in _STYLE_RE.findall(full_html) if match.strip()]
    return "\n".join(blocks).strip()


def extract_body_content(full_html: str | None) -> str:
    """Return the inner HTML of <body>, or the input itself for fragments."""
    if not full_html:
        return ""
    match = _BODY_RE.search(full_html)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return full_html.strip()


def combine_css(*css_strings: str | None) -> str:
    """Join non-empty stylesheets with a blank line between them."""
    return "\n\n".join(css.strip() for css in css_strings if css and css.strip())


def create_full_html(body_content: str, css: str = "", title: str = "Generated Website") -> str:
    """Wrap body content and CSS in a complete HTML5 document."""
    style = f"<style>{css}</style>" if css else ""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"    <title>{title}</title>\n"
        f"    {style}\n"
        "</head>\n"
        "<body>\n"
        f"    {body_content}\n"
        "</body>\n"
        "</html>"
    )


def ensure_full_document(html: str, css: str = "", title: str = "Page") -> str:
    """Return a standalone document for a page, embedding its CSS if needed.

    Complete documents are kept as they are unless they carry no styles at all,
    in which case the CSS is injected before </head>. Fragments are wrapped.
    """
    if "<!DOCTYPE" in html or "<html" in html:
        if "<style" in html or "<link" in html or not css:
            return html
        return html.replace("</head>", f"<style>{css}</style>\n</head>", 1)
    return create_full_html(html, css, title=title)


def format_page_name(page_name: str) -> str:
    """Turn a page key into a display name ('about_us' -> 'About Us')."""
    return " ".join(word[:1].upper() + word[1:] for word in page_name.split("_"))


def order_page_names(page_names: Iterable[str]) -> list[str]:
    """Known pages first in navigation order, then the rest as given."""
    names = list(page_names)
    ordered = [name for name in PAGE_ORDER if name in names]
    return ordered + [name for name in names if name not in PAGE_ORDER]
