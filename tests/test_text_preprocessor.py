import pytest

from shared.knowledge.TextPreprocessor import TextPreprocessor, STOP_WORDS


@pytest.fixture
def preprocessor(helper_config):
    return TextPreprocessor(helper_config=helper_config)


SAMPLES = [
    "```python\nprint('hi')\n```\nHello   World",
    "# Getting Started\n\nRun `make` first.",
    "[Docs](https://example.com/docs) and ![logo](img/logo.png)",
    "Visit https://www.example.com/path?q=1 today",
    "<div class='x'>Hi</div> <@!1234> there",
    "line one\n---\nline two",
    "code /* block\ncomment */ here // trailing note",
    "[<b>bold link</b>](http://a.b/c)",
    "こんにちは 世界",
    "  MiXeD   CaSe \n\n\n\n text  ",
    "#" * 60 + "title",
    "www." * 12 + "example.com/page",
]


class TestPreprocess:
    def test_strips_code_fences_and_collapses_whitespace(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[0]) == "hello world"

    def test_headers_keep_label_and_inline_code_is_removed(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[1]) == "getting started run first."

    def test_links_and_images_keep_label(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[2]) == "docs and logo"

    def test_urls_are_reduced_to_host_and_path(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[3]) == "visit example.com/path?q=1 today"

    def test_tags_and_mentions_are_removed(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[4]) == "hi there"

    def test_horizontal_rules_are_removed(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[5]) == "line one line two"

    def test_comments_are_removed(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[6]) == "code here"

    def test_non_latin_scripts_survive(self, preprocessor):
        assert preprocessor.preprocess(SAMPLES[8]) == "こんにちは 世界"
        assert preprocessor.preprocess("Привет Мир") == "привет мир"

    @pytest.mark.parametrize("raw", ["", None, 42, ["a"]])
    def test_invalid_input_returns_empty_string(self, preprocessor, raw):
        assert preprocessor.preprocess(raw) == ""

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_is_idempotent(self, preprocessor, raw):
        once = preprocessor.preprocess(raw)
        assert preprocessor.preprocess(once) == once

    def test_long_marker_runs_are_fully_stripped(self, preprocessor):
        assert preprocessor.preprocess("#" * 60 + "title") == "title"
        assert preprocessor.preprocess("www." * 12 + "example.com/page") == "example.com/page"


class TestQueryTerms:
    def test_drops_short_tokens_and_stop_words(self, preprocessor):
        terms = preprocessor.get_query_terms("how does the python asyncio loop work in it")
        assert terms == {"python", "asyncio", "loop", "work"}

    def test_is_case_insensitive(self, preprocessor):
        assert preprocessor.get_query_terms("Python PYTHON python") == {"python"}

    def test_empty_query(self, preprocessor):
        assert preprocessor.get_query_terms("") == set()

    def test_stop_word_list(self):
        assert {"the", "would", "your", "which"} <= STOP_WORDS
        assert "python" not in STOP_WORDS
