from kbvault.services.content_extraction import (
    TRUNCATION_MARKER,
    cap_content,
    derive_keywords,
    extract_text_from_html,
)


def test_extract_text_strips_scripts_styles_and_tags():
    html = (
        "<html><head><style>.x { color: red }</style></head>"
        "<body><h1>Title</h1><p>Body&nbsp;text &amp; more</p>"
        "<script>var secret = 1;</script></body></html>"
    )
    text = extract_text_from_html(html)
    assert text == "Title Body text & more"
    assert "secret" not in text
    assert "color" not in text


def test_extract_text_decodes_entities():
    text = extract_text_from_html("<p>&lt;tag&gt; &quot;quoted&quot; it&#39;s</p>")
    assert text == "<tag> \"quoted\" it's"


def test_extract_text_is_capped_at_8000_characters():
    html = "<p>" + ("word " * 5000) + "</p>"
    text = extract_text_from_html(html)
    assert len(text) == 8000


def test_extract_text_respects_custom_limit():
    assert extract_text_from_html("<p>abcdefghij</p>", max_chars=4) == "abcd"


def test_cap_content_leaves_small_content_untouched():
    content, truncated = cap_content("<p>small</p>")
    assert content == "<p>small</p>"
    assert truncated is False


def test_cap_content_at_exact_limit_is_not_truncated():
    html = "a" * 1024 * 1024
    content, truncated = cap_content(html)
    assert content == html
    assert truncated is False


def test_cap_content_truncates_and_appends_marker():
    html = "a" * (1024 * 1024 + 10)
    content, truncated = cap_content(html)
    assert truncated is True
    assert content.endswith(TRUNCATION_MARKER)
    assert content.startswith("a" * 1024 * 1024)
    assert len(content) == 1024 * 1024 + len(TRUNCATION_MARKER)


def test_derive_keywords_filters_short_words_and_limits_count():
    text = " ".join(["a", "bb", "ccc"] + [f"word{i}" for i in range(20)])
    keywords = derive_keywords(text)
    assert len(keywords) == 15
    assert keywords[0] == "word0"
    assert all(len(k) >= 4 for k in keywords)
