from __future__ import annotations

from overlay import highlight_phrase


def test_highlight_marks_last_occurrence() -> None:
    markup = highlight_phrase("camera me, Camera Me", "camera me")

    assert markup.startswith("camera me, <span")
    assert ">Camera Me</span>" in markup


def test_highlight_escapes_text() -> None:
    assert highlight_phrase("a <b> & c", "zzz") == "a &lt;b&gt; &amp; c"
    assert highlight_phrase("<i>", "") == "&lt;i&gt;"
