from django import forms
from django.utils.translation import gettext_lazy as _

from .validation import validate_username


class PreviewForm(forms.Form):
    """Text to render with references linked or highlighted."""

    PLAIN = 'plain'
    HTML = 'html'
    HIGHLIGHT = 'highlight'
    MODE_CHOICES = [
        (PLAIN, _('Plain text')),
        (HTML, _('Rich text (HTML)')),
        (HIGHLIGHT, _('Editor highlight')),
    ]

    text = forms.CharField(label=_('Text'), strip=False, required=False)
    mode = forms.ChoiceField(label=_('Mode'), choices=MODE_CHOICES, required=False)

    def clean_mode(self):
        return self.cleaned_data['mode'] or self.PLAIN


class CursorForm(forms.Form):
    """Text buffer with a zero-based cursor offset."""

    text = forms.CharField(label=_('Text'), strip=False, required=False)
    cursor = forms.IntegerField(label=_('Cursor position'), min_value=0)


class MentionInsertForm(CursorForm):
    username = forms.CharField(
        label=_('Username'),
        max_length=20,
        validators=[validate_username],
    )
