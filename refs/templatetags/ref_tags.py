"""Template tags for @mention, u/ and t/ reference handling."""
from django import template
from django.conf import settings
from django.utils.safestring import mark_safe

from refs.highlight import highlight_all_refs
from refs.highlight import highlight_mentions as _highlight_mentions
from refs.linkify import escape_text, parse_content_with_refs, process_html_content_with_refs
from refs.validation import strip_html_tags, truncate_text

register = template.Library()


@register.filter(name='highlight_mentions')
def highlight_mentions(text):
    """Escape text and highlight @username for editor previews."""
    if not text:
        return text
    return mark_safe(_highlight_mentions(escape_text(str(text))))


@register.filter(name='highlight_refs')
def highlight_refs(text):
    """Escape text and highlight every reference kind."""
    if not text:
        return text
    return mark_safe(highlight_all_refs(escape_text(str(text))))


@register.filter(name='linkify_refs')
def linkify_refs(text):
    """Convert references in plain user text to links."""
    if not text:
        return text
    return mark_safe(parse_content_with_refs(str(text)))


@register.filter(name='linkify_html_refs')
def linkify_html_refs(html):
    """Convert references in sanitized rich-text HTML to links."""
    if not html:
        return html
    return mark_safe(process_html_content_with_refs(str(html)))


@register.filter(name='ref_excerpt')
def ref_excerpt(html, length=None):
    """Plain-text excerpt of rich-text HTML."""
    if not html:
        return html
    if length is None:
        length = settings.REFS_EXCERPT_LENGTH
    return truncate_text(strip_html_tags(str(html)), int(length))
