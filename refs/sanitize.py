"""Allowlist sanitizing for rich-text post content."""
import nh3

from .linkify import process_html_content_with_refs

ALLOWED_TAGS = {
    'p', 'br', 'strong', 'em', 'u', 's', 'a', 'ul', 'ol', 'li',
    'blockquote', 'code', 'pre', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'img', 'hr',
}

ALLOWED_ATTRIBUTES = {
    '*': {'href', 'src', 'alt', 'title', 'target', 'rel'},
}


def sanitize_post_content(html):
    """Strip every tag and attribute outside the rich-text allowlist."""
    if not html:
        return html
    # rel is allowed as authored, so nh3 must not force its own
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        link_rel=None,
    )


def render_post_html(html):
    """Sanitize untrusted rich text, then linkify its references."""
    return process_html_content_with_refs(sanitize_post_content(html))
