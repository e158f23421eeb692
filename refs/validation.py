"""Validation helpers for usernames, topic names and links."""
import re

from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator, URLValidator, validate_email
from django.utils.translation import gettext_lazy as _

# Lowercase alphanumeric and underscores, 3-20 characters, no underscore at
# either end
USERNAME_PATTERN = re.compile(r'^[a-z0-9][a-z0-9_]{1,18}[a-z0-9]\Z')

TOPIC_NAME_PATTERN = re.compile(r'^[a-z0-9]{3,30}\Z')

HTML_TAG_PATTERN = re.compile(r'<[^>]*>')

validate_username = RegexValidator(
    USERNAME_PATTERN,
    _('Use 3-20 lowercase letters, digits or underscores, '
      'not starting or ending with an underscore.'),
    code='invalid_username',
)

validate_topic_name = RegexValidator(
    TOPIC_NAME_PATTERN,
    _('Use 3-30 lowercase letters or digits.'),
    code='invalid_topic_name',
)

_validate_http_url = URLValidator(schemes=['http', 'https'])


def is_valid_username(username):
    return bool(USERNAME_PATTERN.match(username))


def normalize_username(username):
    """Lowercase, trim and strip a username down to its allowed characters."""
    if not username or not isinstance(username, str):
        raise ValueError('Username is required')

    normalized = re.sub(r'[^a-z0-9_]', '', username.lower().strip())
    return normalized[:20]


def is_valid_topic_name(name):
    return bool(TOPIC_NAME_PATTERN.match(name))


def is_valid_email(email):
    try:
        validate_email(email)
    except ValidationError:
        return False
    return True


def is_valid_url(url):
    """Check for an absolute http(s) URL without raising."""
    try:
        _validate_http_url(url)
    except ValidationError:
        return False
    return True


def strip_html_tags(html):
    return HTML_TAG_PATTERN.sub('', html)


def truncate_text(text, max_length):
    """Cut text to ``max_length`` characters, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[:max_length].strip() + '...'
