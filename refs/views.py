import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .cursor import get_mention_at_cursor, insert_mention
from .forms import CursorForm, MentionInsertForm, PreviewForm
from .highlight import highlight_all_refs
from .linkify import escape_text, parse_content_with_refs
from .patterns import collect_mention_targets
from .sanitize import render_post_html
from .validation import strip_html_tags, truncate_text

logger = logging.getLogger(__name__)

RENDERERS = {
    PreviewForm.PLAIN: parse_content_with_refs,
    PreviewForm.HTML: render_post_html,
    # Editor overlays show the raw buffer, so escape before wrapping
    PreviewForm.HIGHLIGHT: lambda text: highlight_all_refs(escape_text(text)),
}


def _form_errors(form):
    logger.info(f'Rejected reference request: {form.errors.as_json()}')
    return JsonResponse({'errors': form.errors.get_json_data()}, status=400)


@require_POST
def preview(request):
    """API endpoint to render text with its references linked."""
    form = PreviewForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    text = form.cleaned_data['text']
    mode = form.cleaned_data['mode']
    mentions, overflow = collect_mention_targets(text, limit=settings.REFS_MAX_MENTIONS)

    plain = strip_html_tags(text) if mode == PreviewForm.HTML else text
    return JsonResponse({
        'html': RENDERERS[mode](text),
        'mentions': mentions,
        'ignored_mentions': overflow,
        'excerpt': truncate_text(plain, settings.REFS_EXCERPT_LENGTH),
    })


@require_GET
def mention_at_cursor(request):
    """API endpoint for the partial @mention under the cursor."""
    form = CursorForm(request.GET)
    if not form.is_valid():
        return _form_errors(form)

    return JsonResponse({
        'mention': get_mention_at_cursor(form.cleaned_data['text'], form.cleaned_data['cursor']),
    })


@require_POST
def mention_insert(request):
    """API endpoint to complete an @mention picked from autocomplete."""
    form = MentionInsertForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    result = insert_mention(
        form.cleaned_data['text'],
        form.cleaned_data['cursor'],
        form.cleaned_data['username'],
    )
    return JsonResponse({
        'text': result.new_text,
        'cursor': result.new_cursor_position,
    })
