"""Reference grammars and match primitives.

Three inline reference kinds are recognised:

- ``@username`` mentions
- ``u/username`` (or ``/u/username``) user references
- ``t/topicname`` (or ``/t/topicname``) topic references
"""
import logging
import re
from typing import NamedTuple

from django.db import models
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)

# Pattern to match @username (ASCII alphanumeric and underscores, 3-20 chars)
MENTION_PATTERN = re.compile(r'@([a-zA-Z0-9_]{3,20})')

# u/username or /u/username
USER_REF_PATTERN = re.compile(r'/?u/([a-zA-Z0-9_]{3,20})')

# t/topicname or /t/topicname, hyphens allowed
TOPIC_REF_PATTERN = re.compile(r'/?t/([a-zA-Z0-9_-]{3,50})')

DEFAULT_MAX_MENTIONS = 5


class RefKind(models.TextChoices):
    MENTION = 'mention', _('Mention')
    USER_REF = 'user_ref', _('User reference')
    TOPIC_REF = 'topic_ref', _('Topic reference')


PATTERNS = {
    RefKind.MENTION: MENTION_PATTERN,
    RefKind.USER_REF: USER_REF_PATTERN,
    RefKind.TOPIC_REF: TOPIC_REF_PATTERN,
}


class RefToken(NamedTuple):
    kind: str
    identifier: str
    start: int
    end: int


def find_refs(text, kind):
    """Return every token of one reference kind, left to right."""
    if not text:
        return []

    pattern = PATTERNS[RefKind(kind)]
    return [
        RefToken(RefKind(kind), match.group(1), match.start(), match.end())
        for match in pattern.finditer(text)
    ]


def extract_mentions(text):
    """Extract distinct @usernames in order of first occurrence."""
    if not text:
        return []

    # dict keeps insertion order, so it doubles as an ordered set
    mentions = dict.fromkeys(MENTION_PATTERN.findall(text))
    return list(mentions)


def has_mentions(text):
    """Check if text contains at least one @username mention."""
    if not text:
        return False
    return MENTION_PATTERN.search(text) is not None


def collect_mention_targets(text, limit=None):
    """
    Split the mentioned usernames into the ones to notify and the overflow.

    Usernames are lowercased and de-duplicated; only the first ``limit``
    (``REFS_MAX_MENTIONS`` from settings when not given) are accepted.
    """
    if limit is None:
        from django.conf import settings
        limit = getattr(settings, 'REFS_MAX_MENTIONS', DEFAULT_MAX_MENTIONS)

    usernames = list(dict.fromkeys(name.lower() for name in extract_mentions(text)))
    accepted, overflow = usernames[:limit], usernames[limit:]

    if overflow:
        logger.info(f'Ignoring {len(overflow)} mention(s) over the limit of {limit}')
    return accepted, overflow
