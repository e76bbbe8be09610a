from __future__ import annotations

import re
import unittest

from lazyfinder.highlight import (
    DEFAULT_STYLE,
    fit_to_width,
    normalize_style,
    render_match_line,
    sanitize_terminal_text,
)

_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")


class HighlightTests(unittest.TestCase):
    def test_sanitize_escapes_control_bytes(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\x1b[2Jb"), "a\\x1b[2Jb")
        self.assertEqual(sanitize_terminal_text("tab\tok"), "tab\tok")
        self.assertEqual(sanitize_terminal_text("plain"), "plain")

    def test_fit_to_width_counts_wide_characters(self) -> None:
        self.assertEqual(fit_to_width("abcdef", 4), "abcd")
        self.assertEqual(fit_to_width("ああa", 3), "あ")
        self.assertEqual(fit_to_width("abc", 0), "")

    def test_unknown_style_falls_back_to_default(self) -> None:
        self.assertEqual(normalize_style("definitely-not-a-style"), DEFAULT_STYLE)
        self.assertEqual(normalize_style("native"), "native")

    def test_no_color_returns_clipped_plain_line(self) -> None:
        line = "3:src/app.py:10:def main():\tpass"
        self.assertEqual(render_match_line(line, 20, no_color=True), "3:src/app.py:10:def ")

    def test_colour_only_adds_sgr_sequences(self) -> None:
        line = "0:src/app.py:1:def main(): return 1"
        rendered = render_match_line(line, 80)

        self.assertIn("\x1b[", rendered)
        self.assertTrue(rendered.startswith("0:src/app.py:1:"))
        self.assertEqual(_SGR_RE.sub("", rendered), line)

    def test_lines_without_source_prefix_stay_plain(self) -> None:
        self.assertEqual(render_match_line("0:foo", 80), "0:foo")


if __name__ == "__main__":
    unittest.main()
