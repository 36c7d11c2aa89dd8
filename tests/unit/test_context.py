"""
Tests for prescient.context module.
"""

import pytest

from prescient.context import (
    DEFAULT_CONTEXT_TYPE,
    ContextConfig,
    ContextEngine,
    render_template,
)


class TestRenderTemplate:

    def test_substitutes_placeholders(self):
        assert render_template("%{a} and %{b}", {"a": 1, "b": "two"}) == "1 and two"

    def test_missing_placeholder_returns_none(self):
        assert render_template("%{a} and %{missing}", {"a": 1}) is None

    def test_percent_escape(self):
        assert render_template("100%% of %{a}", {"a": "it"}) == "100% of it"

    def test_plain_text_untouched(self):
        assert render_template("no placeholders", {}) == "no placeholders"

    def test_extra_values_ignored(self):
        assert render_template("%{a}", {"a": "x", "b": "y"}) == "x"


class TestDetectContextType:

    @pytest.fixture
    def engine(self, document_context_configs):
        return ContextEngine(document_context_configs)

    def test_explicit_type_wins(self, engine):
        # Fields look like a document but the record says product
        item = {"type": "product", "title": "T", "author": "A", "content": "C"}
        assert engine.detect_context_type(item) == "product"

    def test_context_type_field(self, engine):
        assert engine.detect_context_type({"context_type": "faq"}) == "faq"

    def test_model_type_lowercased(self, engine):
        assert engine.detect_context_type({"model_type": "Article"}) == "article"

    def test_false_type_ignored(self, engine):
        item = {"type": False, "title": "T", "author": "A", "content": "C"}
        assert engine.detect_context_type(item) == "document"

    def test_match_at_half_of_fields(self):
        engine = ContextEngine({"doc": {"fields": ["a", "b", "c", "d"]}})
        assert engine.detect_context_type({"a": 1, "b": 2, "z": 3}) == "doc"

    def test_below_half_falls_back(self):
        fields = [f"f{i}" for i in range(100)]
        engine = ContextEngine({"doc": {"fields": fields}})

        item = {name: "x" for name in fields[:49]}
        assert engine.detect_context_type(item) == DEFAULT_CONTEXT_TYPE

        item = {name: "x" for name in fields[:50]}
        assert engine.detect_context_type(item) == "doc"

    def test_tie_keeps_first_configured(self):
        engine = ContextEngine({
            "first": {"fields": ["a", "b"]},
            "second": {"fields": ["a", "c"]},
        })
        assert engine.detect_context_type({"a": 1}) == "first"

    def test_best_score_wins(self):
        engine = ContextEngine({
            "first": {"fields": ["a", "b"]},
            "second": {"fields": ["a", "c"]},
        })
        assert engine.detect_context_type({"a": 1, "c": 2}) == "second"

    def test_no_configs(self):
        assert ContextEngine().detect_context_type({"title": "x"}) == DEFAULT_CONTEXT_TYPE

    def test_string_item(self, engine):
        assert engine.detect_context_type("plain text") == DEFAULT_CONTEXT_TYPE

    def test_field_match_score(self):
        assert ContextEngine.field_match_score({"a", "b"}, ["a", "b", "c", "d"]) == 0.5
        assert ContextEngine.field_match_score({"a"}, []) == 0.0


class TestFormatContextItem:

    def test_configured_format(self, document_context_configs, document_item):
        engine = ContextEngine(document_context_configs)
        assert engine.format_context_item(document_item) == "AI Guide by John Doe: Intro"

    def test_fallback_without_format(self):
        engine = ContextEngine({"note": {"fields": ["title", "body"]}})
        item = {"type": "note", "title": "T", "body": "B", "id": 7}

        formatted = engine.format_context_item(item)

        assert formatted == "type: note, title: T, body: B, id: 7"

    def test_fallback_when_field_missing(self, document_context_configs):
        engine = ContextEngine(document_context_configs)
        item = {"type": "document", "title": "AI Guide", "content": "Intro"}

        formatted = engine.format_context_item(item)

        assert formatted == "type: document, title: AI Guide, content: Intro"

    def test_fallback_for_unknown_placeholder(self):
        engine = ContextEngine({"doc": {"fields": ["title"], "format": "%{title} %{nope}"}})
        assert engine.format_context_item({"type": "doc", "title": "T"}) == "type: doc, title: T"

    def test_default_type_uses_fallback(self):
        assert ContextEngine().format_context_item({"a": 1, "b": "x"}) == "a: 1, b: x"

    def test_string_item_verbatim(self):
        assert ContextEngine().format_context_item("just text") == "just text"

    def test_config_objects_accepted(self):
        engine = ContextEngine({"doc": ContextConfig(fields=["title"], format="# %{title}")})
        assert engine.format_context_item({"type": "doc", "title": "Hi"}) == "# Hi"


class TestExtractEmbeddingText:

    def test_embedding_fields_in_order(self, document_context_configs, document_item):
        engine = ContextEngine(document_context_configs)
        assert engine.extract_embedding_text(document_item) == "AI Guide Intro"

    def test_denylist_without_config(self):
        item = {"title": "T", "content": "C", "created_at": "X"}
        text = ContextEngine().extract_embedding_text(item)

        assert text == "T C"
        assert "X" not in text

    def test_denylist_case_insensitive(self):
        item = {"ID": 5, "Status": "draft", "body": "words"}
        assert ContextEngine().extract_embedding_text(item) == "words"

    def test_skips_blank_and_non_text_values(self):
        item = {"a": "  ", "b": None, "c": True, "d": ["x"], "e": 3, "f": 1.5, "g": "ok"}
        assert ContextEngine().extract_embedding_text(item) == "3 1.5 ok"

    def test_embedding_fields_skip_absent(self, document_context_configs):
        engine = ContextEngine(document_context_configs)
        item = {"type": "document", "title": "Only title"}

        assert engine.extract_embedding_text(item) == "Only title"

    def test_explicit_context_type(self, document_context_configs):
        engine = ContextEngine(document_context_configs)
        item = {"name": "Widget", "category": "tools", "title": "ignored"}

        assert engine.extract_embedding_text(item, "product") == "Widget tools"

    def test_string_item(self):
        assert ContextEngine().extract_embedding_text("  raw text ") == "  raw text "
