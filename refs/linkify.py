"""
Conversion of references into anchors.

Two entry points exist for rendered output:

- ``parse_content_with_refs`` for untrusted plain text. The text is escaped
  before any anchor is inserted.
- ``process_html_content_with_refs`` for rich text that was already
  sanitized. Nothing is escaped; references inside ``href`` values or inside
  existing anchor content are left alone.

Neither path is idempotent: linkifying already-linkified plain output again
nests anchors.
"""
import logging
import re

from .patterns import MENTION_PATTERN, TOPIC_REF_PATTERN, USER_REF_PATTERN

logger = logging.getLogger(__name__)

MENTION_LINK = r'<a href="/u/\1" class="mention">@\1</a>'
USER_REF_LINK = r'<a href="/u/\1" class="user-ref">u/\1</a>'
TOPIC_REF_LINK = r'<a href="/t/\1" class="topic-ref">t/\1</a>'

# A match is already anchor content when only non-tag text separates it
# from the next closing </a>.
_NOT_IN_ANCHOR = r'(?![^<]*</a>)'

_HTML_MENTION_PATTERN = re.compile(MENTION_PATTERN.pattern + _NOT_IN_ANCHOR)
_HTML_USER_REF_PATTERN = re.compile(USER_REF_PATTERN.pattern + _NOT_IN_ANCHOR)
_HTML_TOPIC_REF_PATTERN = re.compile(TOPIC_REF_PATTERN.pattern + _NOT_IN_ANCHOR)


def linkify_user_refs(text):
    """Replace u/username and /u/username with profile links."""
    if not text:
        return text
    return USER_REF_PATTERN.sub(USER_REF_LINK, text)


def linkify_topic_refs(text):
    """Replace t/topicname and /t/topicname with topic links."""
    if not text:
        return text
    return TOPIC_REF_PATTERN.sub(TOPIC_REF_LINK, text)


def linkify_mentions(text):
    """Replace @username with profile links."""
    if not text:
        return text
    return MENTION_PATTERN.sub(MENTION_LINK, text)


def linkify_all_refs(text):
    """Linkify user refs, then topic refs, then mentions."""
    result = linkify_user_refs(text)
    result = linkify_topic_refs(result)
    return linkify_mentions(result)


def escape_text(text):
    """Escape &, < and > (ampersand first so entities are not escaped twice)."""
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def parse_content_with_refs(text):
    """Escape plain user text, then linkify every reference kind."""
    if not text:
        return text
    return linkify_all_refs(escape_text(text))


def parse_mentions(text):
    """Escape plain user text, then linkify @mentions only."""
    if not text:
        return text
    return linkify_mentions(escape_text(text))


def _in_href_value(text, pos):
    """Whether ``pos`` falls inside a quoted href="..." or href='...' value."""
    quote = max(text.rfind('"', 0, pos), text.rfind("'", 0, pos))
    return quote >= 5 and text.startswith('href=', quote - 5)


def _linkify_html(pattern, template, html):
    linked = 0

    def replace_ref(match):
        nonlocal linked
        if _in_href_value(match.string, match.start()):
            return match.group(0)
        linked += 1
        return match.expand(template)

    result = pattern.sub(replace_ref, html)
    logger.debug(f'Linked {linked} reference(s) with {pattern.pattern!r}')
    return result


def process_html_content_with_refs(html):
    """
    Linkify references in sanitized rich-text HTML without escaping it.

    The guards are textual, not an HTML parser: a match is skipped when the
    text since the last quote starts an ``href=`` value, or when it is
    followed by tag-free text and a closing ``</a>``. Multi-line or reordered
    attributes, self-closing tags and nested quotes can fool them.
    """
    if not html:
        return html

    result = _linkify_html(_HTML_USER_REF_PATTERN, USER_REF_LINK, html)
    result = _linkify_html(_HTML_TOPIC_REF_PATTERN, TOPIC_REF_LINK, result)
    return _linkify_html(_HTML_MENTION_PATTERN, MENTION_LINK, result)
