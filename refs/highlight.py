"""Display-only highlighting of references for editor overlays."""
from .patterns import MENTION_PATTERN, TOPIC_REF_PATTERN, USER_REF_PATTERN


def highlight_mentions(text):
    """Wrap @username in a highlight span."""
    if not text:
        return text
    return MENTION_PATTERN.sub(r'<span class="mention-highlight">@\1</span>', text)


def highlight_user_refs(text):
    """Wrap u/username in a highlight span."""
    if not text:
        return text
    return USER_REF_PATTERN.sub(r'<span class="user-ref-highlight">u/\1</span>', text)


def highlight_topic_refs(text):
    """Wrap t/topicname in a highlight span."""
    if not text:
        return text
    return TOPIC_REF_PATTERN.sub(r'<span class="topic-ref-highlight">t/\1</span>', text)


def highlight_all_refs(text):
    """Highlight user refs, then topic refs, then mentions."""
    result = highlight_user_refs(text)
    result = highlight_topic_refs(result)
    return highlight_mentions(result)
