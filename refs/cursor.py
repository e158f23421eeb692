"""Cursor-aware @mention autocomplete helpers."""
import re
from typing import NamedTuple

PARTIAL_USERNAME_PATTERN = re.compile(r'[a-zA-Z0-9_]*')


class MentionInsert(NamedTuple):
    new_text: str
    new_cursor_position: int


def _char_at(text, index):
    # Offsets past the end of the text read as no character
    return text[index] if index < len(text) else ''


def get_mention_at_cursor(text, cursor_position):
    """
    Return the partial username being typed after an @ at the cursor.

    Scans backwards from the cursor and stops at an @, a space or the start
    of the text. Returns '' right after a bare @, and None when the current
    word holds no @ or the fragment is not a valid partial username.
    """
    start = cursor_position - 1
    while start >= 0 and _char_at(text, start) not in ('@', ' '):
        start -= 1

    if start < 0 or text[start] != '@':
        return None

    fragment = text[start + 1:cursor_position]
    if PARTIAL_USERNAME_PATTERN.fullmatch(fragment):
        return fragment
    return None


def insert_mention(text, cursor_position, username):
    """
    Complete the mention before the cursor with ``username``.

    Unlike ``get_mention_at_cursor`` the backwards scan does not stop at
    spaces. Without any @ before the cursor a new ``@username `` is inserted
    at the cursor; otherwise everything from the @ up to the cursor is
    replaced. Text from the cursor onwards is always kept as is.
    """
    start = cursor_position - 1
    while start >= 0 and _char_at(text, start) != '@':
        start -= 1

    after = text[max(cursor_position, 0):]
    mention = f'@{username} '

    if start < 0:
        before = text[:max(cursor_position, 0)]
        return MentionInsert(
            new_text=f'{before}{mention}{after}',
            new_cursor_position=cursor_position + len(username) + 2,
        )

    before = text[:start]
    return MentionInsert(
        new_text=f'{before}{mention}{after}',
        new_cursor_position=start + len(username) + 2,
    )
