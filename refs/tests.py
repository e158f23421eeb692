import io
import os
import tempfile
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import CommandError, call_command
from django.template import Context, Template
from django.test import SimpleTestCase, override_settings
from django.urls import reverse

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
from .patterns import RefKind, RefToken, collect_mention_targets, extract_mentions, find_refs, has_mentions
from .sanitize import render_post_html, sanitize_post_content
from .validation import (
    is_valid_email,
    is_valid_topic_name,
    is_valid_url,
    is_valid_username,
    normalize_username,
    strip_html_tags,
    truncate_text,
    validate_username,
)


class PatternTest(SimpleTestCase):
    def test_extract_mentions_dedupes_in_order(self):
        self.assertEqual(
            extract_mentions('@alice saw @bob and @alice again'),
            ['alice', 'bob'],
        )

    def test_extract_mentions_is_case_sensitive(self):
        self.assertEqual(extract_mentions('@Alice and @alice'), ['Alice', 'alice'])

    def test_no_mentions(self):
        for text in ['', 'plain text', 'mail a@b.nl', '@ab is too short', '@ alone']:
            self.assertEqual(extract_mentions(text), [])
            self.assertFalse(has_mentions(text))

    def test_has_mentions(self):
        self.assertTrue(has_mentions('thanks @carol_9'))
        # Repeated calls give the same answer
        self.assertTrue(has_mentions('thanks @carol_9'))

    def test_mention_identifier_is_capped_at_twenty_chars(self):
        self.assertEqual(extract_mentions('@' + 'a' * 25), ['a' * 20])

    def test_find_refs(self):
        text = 'see u/alice and /t/python-tips'
        self.assertEqual(
            find_refs(text, RefKind.USER_REF),
            [RefToken(RefKind.USER_REF, 'alice', 4, 11)],
        )
        self.assertEqual(
            find_refs(text, 'topic_ref'),
            [RefToken(RefKind.TOPIC_REF, 'python-tips', 16, 30)],
        )
        self.assertEqual(find_refs(text, RefKind.MENTION), [])

    def test_find_refs_is_non_overlapping(self):
        tokens = find_refs('@bob@bob', RefKind.MENTION)
        self.assertEqual([(t.start, t.end) for t in tokens], [(0, 4), (4, 8)])

    def test_short_refs_do_not_match(self):
        self.assertEqual(find_refs('u/ab t/xy', RefKind.USER_REF), [])
        self.assertEqual(find_refs('u/ab t/xy', RefKind.TOPIC_REF), [])

    def test_collect_mention_targets(self):
        accepted, overflow = collect_mention_targets(
            '@Alice @alice @bob @carl @dave @erin @fred', limit=5
        )
        self.assertEqual(accepted, ['alice', 'bob', 'carl', 'dave', 'erin'])
        self.assertEqual(overflow, ['fred'])

    @override_settings(REFS_MAX_MENTIONS=2)
    def test_collect_mention_targets_uses_settings_limit(self):
        with self.assertLogs('refs.patterns', level='INFO'):
            accepted, overflow = collect_mention_targets('@alice @bob @carl')
        self.assertEqual(accepted, ['alice', 'bob'])
        self.assertEqual(overflow, ['carl'])


class HighlightTest(SimpleTestCase):
    def test_highlight_mentions(self):
        self.assertEqual(
            highlight_mentions('hi @alice'),
            'hi <span class="mention-highlight">@alice</span>',
        )

    def test_highlight_user_refs_drops_leading_slash(self):
        self.assertEqual(
            highlight_user_refs('see /u/alice'),
            'see <span class="user-ref-highlight">u/alice</span>',
        )

    def test_highlight_topic_refs(self):
        self.assertEqual(
            highlight_topic_refs('t/django-tips'),
            '<span class="topic-ref-highlight">t/django-tips</span>',
        )

    def test_highlight_all_refs(self):
        self.assertEqual(
            highlight_all_refs('@bob in t/python by u/alice'),
            '<span class="mention-highlight">@bob</span> in '
            '<span class="topic-ref-highlight">t/python</span> by '
            '<span class="user-ref-highlight">u/alice</span>',
        )

    def test_text_without_refs_is_unchanged(self):
        text = 'nothing to see, u/ab and t/x'
        self.assertEqual(highlight_all_refs(text), text)


class LinkifyTest(SimpleTestCase):
    def test_linkify_mentions(self):
        self.assertEqual(
            linkify_mentions('hi @alice!'),
            'hi <a href="/u/alice" class="mention">@alice</a>!',
        )

    def test_linkify_user_refs(self):
        self.assertEqual(
            linkify_user_refs('/u/alice'),
            '<a href="/u/alice" class="user-ref">u/alice</a>',
        )

    def test_linkify_topic_refs(self):
        self.assertEqual(
            linkify_topic_refs('t/python'),
            '<a href="/t/python" class="topic-ref">t/python</a>',
        )

    def test_linkify_all_refs(self):
        self.assertEqual(
            linkify_all_refs('u/alice posted in t/python, cc @bob'),
            '<a href="/u/alice" class="user-ref">u/alice</a> posted in '
            '<a href="/t/python" class="topic-ref">t/python</a>, cc '
            '<a href="/u/bob" class="mention">@bob</a>',
        )

    def test_linkify_all_refs_is_not_idempotent(self):
        once = linkify_all_refs('u/alice')
        self.assertNotEqual(linkify_all_refs(once), once)

    def test_plain_text_keeps_visible_characters(self):
        text = 'just some words'
        self.assertEqual(linkify_all_refs(text), text)
        self.assertEqual(parse_content_with_refs(text), text)

    def test_escape_text_escapes_ampersand_first(self):
        self.assertEqual(escape_text('&lt; <b>'), '&amp;lt; &lt;b&gt;')

    def test_parse_content_escapes_before_linking(self):
        self.assertEqual(
            parse_content_with_refs('<script>@bob</script>'),
            '&lt;script&gt;<a href="/u/bob" class="mention">@bob</a>&lt;/script&gt;',
        )

    def test_parse_content_with_ampersand(self):
        self.assertEqual(
            parse_content_with_refs('Tom & Jerry <3 u/tom_cat'),
            'Tom &amp; Jerry &lt;3 <a href="/u/tom_cat" class="user-ref">u/tom_cat</a>',
        )

    def test_parse_mentions_only_links_mentions(self):
        self.assertEqual(
            parse_mentions('<b>@alice</b> u/bob'),
            '&lt;b&gt;<a href="/u/alice" class="mention">@alice</a>&lt;/b&gt; u/bob',
        )


class HtmlLinkifyTest(SimpleTestCase):
    def test_links_refs_in_rich_text(self):
        self.assertEqual(
            process_html_content_with_refs('<p>Hello @alice and u/bob in t/python</p>'),
            '<p>Hello <a href="/u/alice" class="mention">@alice</a> and '
            '<a href="/u/bob" class="user-ref">u/bob</a> in '
            '<a href="/t/python" class="topic-ref">t/python</a></p>',
        )

    def test_existing_anchor_content_is_left_alone(self):
        self.assertEqual(
            process_html_content_with_refs('<p><a href="/u/alice">@alice</a> says hi to @bob</p>'),
            '<p><a href="/u/alice">@alice</a> says hi to '
            '<a href="/u/bob" class="mention">@bob</a></p>',
        )

    def test_href_values_are_left_alone(self):
        html = '<a href="https://forum.example/t/python"><strong>docs</strong></a>'
        self.assertEqual(process_html_content_with_refs(html), html)

    def test_single_quoted_href_values_are_left_alone(self):
        html = "<a href='/u/dave'><em>dave</em></a>"
        self.assertEqual(process_html_content_with_refs(html), html)

    def test_markup_is_not_escaped(self):
        self.assertEqual(
            process_html_content_with_refs('<p>a &amp; b @alice</p>'),
            '<p>a &amp; b <a href="/u/alice" class="mention">@alice</a></p>',
        )

    def test_empty_input(self):
        self.assertEqual(process_html_content_with_refs(''), '')

    def test_href_at_start_of_text(self):
        html = 'href="/t/python"'
        self.assertEqual(process_html_content_with_refs(html), html)

    def test_many_refs_in_long_body(self):
        html = '<p>' + ' '.join(f'@user{i:03d}' for i in range(500)) + '</p>'
        result = process_html_content_with_refs(html)
        self.assertEqual(result.count('class="mention"'), 500)


class SanitizeTest(SimpleTestCase):
    def test_allowed_markup_is_kept(self):
        html = '<p><strong>hi</strong> <em>there</em></p>'
        self.assertEqual(sanitize_post_content(html), html)

    def test_scripts_and_event_handlers_are_removed(self):
        cleaned = sanitize_post_content(
            '<p onclick="steal()">ok</p><script>steal()</script><img src="x" onerror="alert(1)">'
        )
        self.assertNotIn('<script', cleaned)
        self.assertNotIn('steal', cleaned)
        self.assertNotIn('onerror', cleaned)
        self.assertIn('<p>ok</p>', cleaned)
        self.assertIn('<img src="x">', cleaned)

    def test_render_post_html_links_after_sanitizing(self):
        result = render_post_html('<script>steal()</script><p>hi @alice</p>')
        self.assertNotIn('<script', result)
        self.assertIn('<p>hi <a href="/u/alice" class="mention">@alice</a></p>', result)

    def test_empty_input(self):
        self.assertEqual(sanitize_post_content(''), '')


class CursorTest(SimpleTestCase):
    def test_mention_at_cursor(self):
        self.assertEqual(get_mention_at_cursor('hello @al', 9), 'al')

    def test_space_before_at_stops_scan(self):
        self.assertIsNone(get_mention_at_cursor('hello @al world', 14))

    def test_bare_at_gives_empty_fragment(self):
        self.assertEqual(get_mention_at_cursor('hello @', 7), '')

    def test_no_at(self):
        self.assertIsNone(get_mention_at_cursor('hello', 5))
        self.assertIsNone(get_mention_at_cursor('@alice', 0))

    def test_invalid_fragment(self):
        self.assertIsNone(get_mention_at_cursor('mail a@b-c', 10))

    def test_cursor_past_end_of_text(self):
        self.assertEqual(get_mention_at_cursor('hi @bo', 10), 'bo')

    def test_insert_completes_partial_mention(self):
        self.assertEqual(
            insert_mention('hi @a', 5, 'alice'),
            MentionInsert(new_text='hi @alice ', new_cursor_position=10),
        )

    def test_insert_without_at(self):
        result = insert_mention('hello ', 6, 'bob')
        self.assertEqual(result.new_text, 'hello @bob ')
        self.assertEqual(result.new_cursor_position, 11)

    def test_insert_without_at_keeps_text_after_cursor(self):
        result = insert_mention('ab cd', 2, 'carol')
        self.assertEqual(result.new_text, 'ab@carol  cd')
        self.assertEqual(result.new_cursor_position, 9)

    def test_insert_scans_past_spaces(self):
        result = insert_mention('@al is here', 11, 'alice')
        self.assertEqual(result.new_text, '@alice ')
        self.assertEqual(result.new_cursor_position, 7)

    def test_insert_mid_word_keeps_tail_from_cursor(self):
        result = insert_mention('hey @alberto!', 7, 'alice')
        self.assertEqual(result.new_text, 'hey @alice berto!')
        self.assertEqual(result.new_cursor_position, 11)


class ValidationTest(SimpleTestCase):
    def test_valid_usernames(self):
        for username in ['ab2', 'alice', 'a_b_c', 'a' * 20]:
            self.assertTrue(is_valid_username(username), username)

    def test_invalid_usernames(self):
        for username in ['_abc', 'abc_', 'ab', 'a' * 21, 'Alice', 'al ice', 'abc\n']:
            self.assertFalse(is_valid_username(username), username)

    def test_validate_username_raises(self):
        with self.assertRaises(ValidationError):
            validate_username('_abc')

    def test_normalize_username(self):
        self.assertEqual(normalize_username('  Alice.Smith! '), 'alicesmith')
        self.assertEqual(normalize_username('x' * 30), 'x' * 20)

    def test_normalize_username_requires_value(self):
        with self.assertRaises(ValueError):
            normalize_username('')

    def test_topic_names(self):
        self.assertTrue(is_valid_topic_name('python3'))
        self.assertFalse(is_valid_topic_name('py'))
        self.assertFalse(is_valid_topic_name('py-thon'))

    def test_urls(self):
        self.assertTrue(is_valid_url('https://example.com/t/python'))
        self.assertFalse(is_valid_url('ftp://example.com/file'))
        self.assertFalse(is_valid_url('not a url'))

    def test_emails(self):
        self.assertTrue(is_valid_email('user@example.com'))
        self.assertFalse(is_valid_email('user@'))

    def test_strip_and_truncate(self):
        self.assertEqual(strip_html_tags('<p>Hi <b>there</b></p>'), 'Hi there')
        self.assertEqual(truncate_text('hello world', 6), 'hello...')
        self.assertEqual(truncate_text('short', 10), 'short')


class RefTagsTest(SimpleTestCase):
    def render(self, template, body):
        return Template('{% load ref_tags %}' + template).render(Context({'body': body}))

    def test_linkify_refs_escapes_plain_text(self):
        self.assertEqual(
            self.render('{{ body|linkify_refs }}', '<i>@alice</i>'),
            '&lt;i&gt;<a href="/u/alice" class="mention">@alice</a>&lt;/i&gt;',
        )

    def test_linkify_html_refs(self):
        self.assertEqual(
            self.render('{{ body|linkify_html_refs }}', '<p>@alice</p>'),
            '<p><a href="/u/alice" class="mention">@alice</a></p>',
        )

    def test_highlight_refs(self):
        self.assertEqual(
            self.render('{{ body|highlight_refs }}', 'u/alice <b>'),
            '<span class="user-ref-highlight">u/alice</span> &lt;b&gt;',
        )

    def test_highlight_mentions(self):
        self.assertEqual(
            self.render('{{ body|highlight_mentions }}', '@alice & u/bob'),
            '<span class="mention-highlight">@alice</span> &amp; u/bob',
        )

    def test_ref_excerpt(self):
        self.assertEqual(self.render('{{ body|ref_excerpt:5 }}', '<p>Hello world</p>'), 'Hello...')

    def test_empty_values(self):
        self.assertEqual(self.render('{{ body|linkify_refs }}', ''), '')


class RefViewTest(SimpleTestCase):
    def test_preview_plain(self):
        response = self.client.post(reverse('refs:preview'), {
            'text': '<b>hi</b> @alice',
            'mode': 'plain',
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(
            data['html'],
            '&lt;b&gt;hi&lt;/b&gt; <a href="/u/alice" class="mention">@alice</a>',
        )
        self.assertEqual(data['mentions'], ['alice'])
        self.assertEqual(data['excerpt'], '<b>hi</b> @alice')

    def test_preview_defaults_to_plain(self):
        response = self.client.post(reverse('refs:preview'), {'text': '<i>t/python</i>'})
        self.assertEqual(
            response.json()['html'],
            '&lt;i&gt;<a href="/t/python" class="topic-ref">t/python</a>&lt;/i&gt;',
        )

    def test_preview_html(self):
        response = self.client.post(reverse('refs:preview'), {
            'text': '<p>ping @Bob</p>',
            'mode': 'html',
        })
        data = response.json()
        self.assertEqual(data['html'], '<p>ping <a href="/u/Bob" class="mention">@Bob</a></p>')
        self.assertEqual(data['mentions'], ['bob'])
        self.assertEqual(data['excerpt'], 'ping @Bob')

    def test_preview_html_sanitizes_untrusted_markup(self):
        response = self.client.post(reverse('refs:preview'), {
            'text': '<img src=x onerror="alert(1)"><script>steal()</script> @alice',
            'mode': 'html',
        })
        self.assertEqual(response.status_code, 200)
        html = response.json()['html']
        self.assertNotIn('<script', html)
        self.assertNotIn('onerror', html)
        self.assertIn('<a href="/u/alice" class="mention">@alice</a>', html)

    def test_preview_url_has_no_language_prefix(self):
        self.assertEqual(reverse('refs:preview'), '/refs/preview/')

    def test_preview_highlight(self):
        response = self.client.post(reverse('refs:preview'), {
            'text': '@alice <3',
            'mode': 'highlight',
        })
        self.assertEqual(
            response.json()['html'],
            '<span class="mention-highlight">@alice</span> &lt;3',
        )

    @override_settings(REFS_MAX_MENTIONS=1)
    def test_preview_reports_ignored_mentions(self):
        response = self.client.post(reverse('refs:preview'), {'text': '@alice @bob'})
        data = response.json()
        self.assertEqual(data['mentions'], ['alice'])
        self.assertEqual(data['ignored_mentions'], ['bob'])

    def test_preview_rejects_unknown_mode(self):
        response = self.client.post(reverse('refs:preview'), {'text': 'x', 'mode': 'markdown'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('mode', response.json()['errors'])

    def test_preview_requires_post(self):
        response = self.client.get(reverse('refs:preview'))
        self.assertEqual(response.status_code, 405)

    def test_mention_at_cursor(self):
        response = self.client.get(reverse('refs:mention_at_cursor'), {
            'text': 'hello @al',
            'cursor': 9,
        })
        self.assertEqual(response.json(), {'mention': 'al'})

    def test_mention_at_cursor_without_mention(self):
        response = self.client.get(reverse('refs:mention_at_cursor'), {
            'text': 'hello @al world',
            'cursor': 14,
        })
        self.assertEqual(response.json(), {'mention': None})

    def test_mention_at_cursor_rejects_negative_cursor(self):
        response = self.client.get(reverse('refs:mention_at_cursor'), {
            'text': 'hello',
            'cursor': -1,
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('cursor', response.json()['errors'])

    def test_mention_insert(self):
        response = self.client.post(reverse('refs:mention_insert'), {
            'text': 'hi @a',
            'cursor': 5,
            'username': 'alice',
        })
        self.assertEqual(response.json(), {'text': 'hi @alice ', 'cursor': 10})

    def test_mention_insert_rejects_invalid_username(self):
        response = self.client.post(reverse('refs:mention_insert'), {
            'text': 'hi @a',
            'cursor': 5,
            'username': '_alice',
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('username', response.json()['errors'])


class RenderRefsCommandTest(SimpleTestCase):
    def run_command(self, *args, stdin='', **options):
        out = io.StringIO()
        with mock.patch('sys.stdin', io.StringIO(stdin)):
            call_command('render_refs', *args, stdout=out, stderr=io.StringIO(), **options)
        return out.getvalue()

    def test_renders_plain_text_from_stdin(self):
        self.assertEqual(
            self.run_command(stdin='<b>@alice</b>'),
            '&lt;b&gt;<a href="/u/alice" class="mention">@alice</a>&lt;/b&gt;',
        )

    def test_renders_html_mode(self):
        self.assertEqual(
            self.run_command('-', mode='html', stdin='<p>t/python</p>'),
            '<p><a href="/t/python" class="topic-ref">t/python</a></p>',
        )

    def test_html_mode_sanitizes(self):
        output = self.run_command(mode='html', stdin='<p onclick="x()">t/python</p><script>x()</script>')
        self.assertEqual(output, '<p><a href="/t/python" class="topic-ref">t/python</a></p>')

    def test_highlight_mode_escapes(self):
        self.assertEqual(
            self.run_command(mode='highlight', stdin='@alice <3'),
            '<span class="mention-highlight">@alice</span> &lt;3',
        )

    def test_no_mentions_warns(self):
        err = io.StringIO()
        with mock.patch('sys.stdin', io.StringIO('nobody here')):
            call_command('render_refs', mentions=True, stdout=io.StringIO(), stderr=err)
        self.assertIn('No mentions found.', err.getvalue())

    def test_lists_mentions(self):
        self.assertEqual(
            self.run_command(mentions=True, stdin='@alice @bob @alice'),
            'alice\nbob\n',
        )

    def test_reads_file(self):
        with tempfile.NamedTemporaryFile('w', suffix='.txt', delete=False, encoding='utf-8') as f:
            f.write('see u/alice')
        self.addCleanup(os.remove, f.name)

        self.assertEqual(
            self.run_command(f.name, mode='highlight'),
            'see <span class="user-ref-highlight">u/alice</span>',
        )

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            self.run_command('/nonexistent/refs.txt')
