"""
Unit tests for classifying a draft into its multipart shape.
"""

from itertools import product

import pytest

from ezcompose.mailtype import DECISION_TABLE, MailType, classify


class TestClassify:

    @pytest.mark.parametrize("is_html, alt, inline, attachments, expected", [
        (False, "", 0, 0, MailType.PLAIN),
        (False, "", 0, 2, MailType.PLAIN_ATTACH),
        (True, "", 0, 0, MailType.HTML),
        (True, "alt", 0, 0, MailType.HTML_ALT),
        (True, "", 1, 0, MailType.HTML_INLINE),
        (True, "", 0, 1, MailType.HTML_ATTACH),
        (True, "alt", 1, 0, MailType.HTML_ALT_INLINE),
        (True, "alt", 0, 1, MailType.HTML_ALT_ATTACH),
        (True, "", 1, 1, MailType.HTML_INLINE_ATTACH),
        (True, "alt", 1, 1, MailType.HTML_ALT_INLINE_ATTACH),
    ])
    def test_decision_table(self, is_html, alt, inline, attachments, expected):
        assert classify(is_html, alt, inline, attachments) is expected

    def test_plain_ignores_alt_and_inline(self):
        assert classify(False, "alt", 3, 0) is MailType.PLAIN
        assert classify(False, "alt", 3, 1) is MailType.PLAIN_ATTACH

    def test_whitespace_alt_body_does_not_count(self):
        assert classify(True, "  \n\t", 0, 0) is MailType.HTML

    def test_string_values(self):
        assert MailType.HTML_ALT_INLINE_ATTACH.value == "html_alt_inline_attach"
        assert MailType("plain_attach") is MailType.PLAIN_ATTACH


class TestDecisionTable:

    def test_covers_every_flag_combination(self):
        assert set(DECISION_TABLE) == set(product((False, True), repeat=4))

    def test_every_type_reachable(self):
        assert set(DECISION_TABLE.values()) == set(MailType)

    def test_only_plain_and_html_are_single_part(self):
        single = {mail_type for mail_type in MailType if not mail_type.is_multipart}
        assert single == {MailType.PLAIN, MailType.HTML}
