import sys

from django.core.management.base import BaseCommand, CommandError

from refs.highlight import highlight_all_refs
from refs.linkify import escape_text, parse_content_with_refs
from refs.patterns import extract_mentions
from refs.sanitize import render_post_html

MODES = {
    'plain': parse_content_with_refs,
    'html': render_post_html,
    'highlight': lambda text: highlight_all_refs(escape_text(text)),
}


class Command(BaseCommand):
    help = 'Render @mentions, u/ and t/ references in a text file as HTML'

    def add_arguments(self, parser):
        parser.add_argument(
            'path',
            nargs='?',
            default='-',
            help='File to read, or - for stdin',
        )
        parser.add_argument(
            '--mode',
            choices=sorted(MODES),
            default='plain',
            help=(
                'plain and highlight escape the text first, '
                'html sanitizes it to the rich-text allowlist'
            ),
        )
        parser.add_argument(
            '--mentions',
            action='store_true',
            help='List the mentioned usernames instead of rendering',
        )

    def handle(self, *args, **options):
        text = self.read_source(options['path'])

        if options['mentions']:
            usernames = extract_mentions(text)
            if not usernames:
                self.stderr.write(self.style.WARNING('No mentions found.'))
                return
            for username in usernames:
                self.stdout.write(username)
            return

        self.stdout.write(MODES[options['mode']](text), ending='')

    def read_source(self, path):
        if path == '-':
            return sys.stdin.read()
        try:
            with open(path, encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise CommandError(f'Cannot read {path}: {e}')
