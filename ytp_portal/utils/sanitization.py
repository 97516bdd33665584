import html
import re
from typing import Optional

import bleach

# Rich text accepted from the portal editor (document bodies, bridge messages)
ALLOWED_TAGS = [
    "a",
    "b",
    "blockquote",
    "br",
    "code",
    "em",
    "h1",
    "h2",
    "h3",
    "h4",
    "hr",
    "i",
    "li",
    "ol",
    "p",
    "pre",
    "span",
    "strong",
    "table",
    "tbody",
    "td",
    "th",
    "thead",
    "tr",
    "u",
    "ul",
]
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "rel", "target"],
    "span": ["class"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def _safe_link_rel(attrs, new=False):
    attrs[(None, "rel")] = "noopener noreferrer"
    return attrs


def sanitize_html(value: Optional[str]) -> str:
    """
    Clean user supplied HTML down to the allow-listed tags, attributes and
    URL protocols. Disallowed tags are stripped, their text is kept, and
    every link gets rel="noopener noreferrer".
    """
    if not value:
        return ""
    cleaned = bleach.clean(
        _CONTROL_CHARS.sub("", str(value)),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    return bleach.linkify(cleaned, callbacks=[_safe_link_rel], skip_tags=["pre", "code"], parse_email=False)


def html_to_text(value: Optional[str]) -> str:
    """Visible text of an HTML fragment, used to reject messages that are only markup"""
    if not value:
        return ""
    return html.unescape(bleach.clean(value, tags=[], strip=True)).strip()
