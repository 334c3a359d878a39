"""Session Titles tests: fallback titles and model title cleanup."""

from agentweb.core.session_titles import clean_model_title, fallback_title


def test_fallback_title_flattens_newlines():
    assert fallback_title("  fix\nthe\r\nbuild  ") == "fix the build"


def test_fallback_title_cuts_long_messages():
    title = fallback_title("a" * 80)
    assert len(title) == 50
    assert title.endswith("...")


def test_clean_model_title_strips_quotes_and_punctuation():
    assert clean_model_title('"Fixing the build."') == "Fixing the build"
    assert clean_model_title("「调试登录问题」。") == "调试登录问题"


def test_clean_model_title_length_bounds():
    assert clean_model_title("x") is None
    assert clean_model_title("y" * 31) is None
    assert clean_model_title("") is None
    assert clean_model_title(None) is None


def test_clean_model_title_nothing_left():
    assert clean_model_title('"!"') is None
