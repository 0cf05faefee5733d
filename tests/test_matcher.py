"""Unit tests for the content matcher."""
from hypothesis import given, settings
from hypothesis import strategies as st

from app.matcher import detect_level, match, match_names, match_tools, score_tool, tokenize
from app.models import UserLevel
from tests.conftest import make_tool


class TestTokenize:
    def test_drops_short_tokens_and_splits_on_punctuation(self):
        assert tokenize("How do I use an API, e.g. Supabase?") == ["how", "use", "api", "supabase"]

    def test_empty_query(self):
        assert tokenize("") == []


class TestToolMatching:
    def test_empty_query_matches_nothing(self, catalog):
        result = match("", catalog)
        assert result.tools == []
        assert result.guides == []
        assert result.examples == []

    def test_short_tokens_only_match_nothing(self, catalog):
        assert match_tools("an a to of", catalog) == []

    def test_scores_by_token_overlap(self, catalog):
        tools = match_tools("deploy my serverless app", catalog)
        assert tools[0].name == "Vercel"

    def test_category_bonus_ranks_category_match_first(self):
        tagged = make_tool("Tagger", "Other", tags=["hosting"])
        hosted = make_tool("Hoster", "Hosting")
        # both overlap on "hosting" once; only Hoster's category is in the query
        tools = match_tools("hosting", [tagged, hosted])
        assert [t.name for t in tools] == ["Hoster", "Tagger"]

    def test_category_bonus_skipped_for_blank_query(self):
        tool = make_tool("Empty", "")
        assert score_tool(tool, [], "") == 0
        assert score_tool(make_tool("X", "Hosting"), [], "   ") == 0

    def test_ties_keep_catalog_order(self, catalog):
        tools = match_tools("llm", catalog)
        assert [t.name for t in tools] == ["OpenRouter", "Ollama"]

    def test_result_is_capped_at_eight(self):
        catalog = [make_tool(f"Tool {i}", "Widgets", tags=["widget"]) for i in range(20)]
        assert len(match_tools("widget tools", catalog)) == 8

    @settings(max_examples=100, deadline=None)
    @given(st.text(max_size=80))
    def test_at_most_eight_sorted_by_score(self, query):
        catalog = [
            make_tool(f"Tool {i}", cat, tags=[tag])
            for i, (cat, tag) in enumerate(
                [("Hosting", "deploy"), ("Analytics", "tracking"), ("AI", "llm")] * 4
            )
        ]
        tools = match_tools(query, catalog)
        lowered = query.lower()
        tokens = tokenize(lowered)
        scores = [score_tool(t, tokens, lowered) for t in tools]
        assert len(tools) <= 8
        assert all(s > 0 for s in scores)
        assert scores == sorted(scores, reverse=True)


class TestDocumentMatching:
    def test_guides_match_on_filename_tokens(self):
        guides = match_names("payments with paystack", ["run-llm-locally.md", "accept-payments-with-paystack.md"])
        assert guides == ["accept-payments-with-paystack.md"]

    def test_sorted_by_match_count(self):
        names = ["get-started.md", "connect-supabase-vercel.md"]
        assert match_names("supabase vercel started", names) == [
            "connect-supabase-vercel.md",
            "get-started.md",
        ]


class TestLevel:
    def test_beginner(self):
        assert detect_level("I'm new to coding") == UserLevel.beginner

    def test_expert(self):
        assert detect_level("optimize my api architecture") == UserLevel.expert

    def test_intermediate(self):
        assert detect_level("which database should I pick") == UserLevel.intermediate

    def test_beginner_wins_over_expert(self):
        assert detect_level("explain the architecture") == UserLevel.beginner


class TestScenarios:
    def test_supabase_question(self, catalog):
        result = match("help me understand how does supabase work", catalog)
        assert result.level == UserLevel.beginner
        assert "connect-supabase-vercel.md" in result.guides
        assert result.tools[0].name == "Supabase"

    def test_architecture_question(self, catalog):
        assert match("optimize my api architecture", catalog).level == UserLevel.expert
