"""Mention, user reference and topic reference handling for forum text."""
from .cursor import MentionInsert, get_mention_at_cursor, insert_mention
from .highlight import (
    highlight_all_refs,
    highlight_mentions,
    highlight_topic_refs,
    highlight_user_refs,
)
from .linkify import (
    escape_text,
    linkify_all_refs,
    linkify_mentions,
    linkify_topic_refs,
    linkify_user_refs,
    parse_content_with_refs,
    parse_mentions,
    process_html_content_with_refs,
)
from .patterns import (
    RefKind,
    RefToken,
    collect_mention_targets,
    extract_mentions,
    find_refs,
    has_mentions,
)
from .sanitize import render_post_html, sanitize_post_content
