"""Unit tests for catalog loading, browsing, validation and documents."""
import json

import pytest

from app.catalog import documents
from app.catalog.schemas import ToolStatus
from app.catalog.store import (
    filter_tools,
    list_categories,
    load_catalog,
    render_catalog_markdown,
    tool_from_entry,
    validate_catalog_dir,
    validate_catalog_file,
    validate_entries,
)
from app.prompts import related_summary, tools_context
from app.models import MatchResult, UserLevel

VALID_ENTRY = {
    "name": "Supabase",
    "description": "Postgres | auth",
    "link": "https://supabase.com",
    "type": "freemium",
    "category": "Backend & Databases",
    "tags": ["database"],
    "popularity": 9,
    "tutorial": "https://supabase.com/docs",
}


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "a_array.json").write_text(json.dumps([VALID_ENTRY]))
    (tmp_path / "b_wrapped.json").write_text(
        json.dumps({"tools": [{"name": "Vercel", "pricing": "paid", "website": "https://vercel.com"}]})
    )
    (tmp_path / "c_broken.json").write_text("{not json")
    (tmp_path / "d_partial.json").write_text(json.dumps([{"description": "no name"}, "junk"]))
    return tmp_path


class TestLoading:
    def test_aggregates_both_document_shapes(self, data_dir):
        tools = load_catalog(data_dir)
        assert [t.name for t in tools] == ["Supabase", "Vercel"]

    def test_entry_mapping(self, data_dir):
        supabase, vercel = load_catalog(data_dir)
        assert supabase.id == "supabase"
        assert supabase.status == ToolStatus.freemium
        assert supabase.popularity == 9.0
        assert vercel.status == ToolStatus.paid
        assert vercel.link == "https://vercel.com"

    def test_unknown_status_defaults_to_freemium(self):
        tool = tool_from_entry({"name": "X", "type": "open source", "exampleProjectLink": "/examples/x"})
        assert tool.status == ToolStatus.freemium
        assert tool.example_project_link == "/examples/x"

    def test_missing_directory(self, tmp_path):
        assert load_catalog(tmp_path / "missing") == []

    def test_records_are_frozen(self, data_dir):
        tool = load_catalog(data_dir)[0]
        with pytest.raises(Exception):
            tool.name = "changed"


class TestValidation:
    def test_valid_document(self):
        assert validate_entries([VALID_ENTRY]) == []

    def test_missing_keys_and_bad_tags(self):
        entry = dict(VALID_ENTRY, tags="database")
        del entry["tutorial"]
        errors = validate_entries([entry], source="x.json")
        assert errors == ["x.json[0] missing key: tutorial", "x.json[0] tags must be an array"]

    def test_wrapped_document_is_validated_like_an_array(self):
        assert validate_entries({"tools": [VALID_ENTRY]}, source="x.json") == []
        assert validate_entries({"tools": [{"name": "X"}]}, source="x.json")[0] == (
            "x.json[0] missing key: description"
        )

    @pytest.mark.parametrize("raw", [{"items": []}, {"tools": "nope"}, "text", 3])
    def test_other_shapes_are_rejected(self, raw):
        assert validate_entries(raw, source="x.json") == ["Expected array in x.json"]

    def test_unreadable_file_is_reported(self, tmp_path):
        # a directory named like a data file cannot be opened for reading
        (tmp_path / "folder.json").mkdir()
        errors = validate_catalog_file(tmp_path / "folder.json")
        assert errors[0].startswith("Unreadable file: folder.json")

    def test_directory_report(self, data_dir):
        report = validate_catalog_dir(data_dir)
        assert report["a_array.json"] == []
        assert report["c_broken.json"][0].startswith("Invalid JSON: c_broken.json")
        assert "d_partial.json[1] is not an object" in report["d_partial.json"]


class TestBrowsing:
    def test_filter_by_category(self, catalog):
        assert [t.name for t in filter_tools(catalog, category="AI & LLM APIs")] == ["OpenRouter", "Ollama"]
        assert len(filter_tools(catalog, category="All")) == len(catalog)

    def test_filter_by_text(self, catalog):
        assert [t.name for t in filter_tools(catalog, q="LLM")] == ["OpenRouter", "Ollama"]
        assert [t.name for t in filter_tools(catalog, q="postgres")] == ["Supabase"]

    def test_filter_combined(self, catalog):
        assert filter_tools(catalog, q="local", category="Hosting") == []

    def test_categories(self, catalog):
        categories = list_categories(catalog)
        assert categories[0] == "All"
        assert categories[1:] == sorted(set(t.category for t in catalog))

    def test_render_markdown(self, data_dir):
        text = render_catalog_markdown(load_catalog(data_dir))
        assert "## Backend & Databases (1)" in text
        assert "| [Supabase](https://supabase.com) | Postgres \\| auth | freemium |" in text


class TestPromptContext:
    def test_tools_context_line(self, catalog):
        first = tools_context(catalog).splitlines()[0]
        assert first == (
            "Supabase (Backend & Databases): Postgres database with auth. "
            "Status: freemium. Link: https://supabase.example"
        )

    def test_related_summary_lists_documents(self, catalog):
        summary = related_summary(
            MatchResult(tools=catalog[:1], guides=["run-llm-locally.md"], level=UserLevel.expert)
        )
        assert "User level: expert" in summary
        assert "/guides/run-llm-locally" in summary
        assert "Related example projects: none" in summary


class TestDocuments:
    def test_titles_from_headings(self):
        refs = {r.slug: r for r in documents.list_documents("guides")}
        assert refs["run-llm-locally"].title == "Run an LLM Locally"
        assert len(refs) == len(documents.GUIDE_FILES)

    def test_title_falls_back_to_slug(self, tmp_path):
        refs = documents.list_documents("examples", content_dir=tmp_path)
        assert refs[0].title == "ai-chatbot-with-supabase"

    def test_read_known_document(self):
        text = documents.read_document("examples", "analytics-dashboard")
        assert text.startswith("# Analytics Dashboard")

    @pytest.mark.parametrize("slug", ["../../pyproject", "unknown", ""])
    def test_unknown_slugs_are_rejected(self, slug):
        assert documents.read_document("guides", slug) is None

    def test_document_title(self):
        assert documents.document_title("intro\n# Title  \nbody", "fallback") == "Title"
        assert documents.document_title("no heading", "fallback") == "fallback"
