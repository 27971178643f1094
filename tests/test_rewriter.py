"""Tests for the conversational query rewriter."""
import asyncio

import pytest

from hybrid_search.core.services.rewriter_service import (
    REWRITER_SYSTEM_PROMPT,
    QueryRewriter,
    build_rewriter_message,
    clean_rewritten,
    format_history,
)

from conftest import FailingLLM, FakeLLM, ListRewriteLog, SlowLLM, turns

HISTORY = turns(
    ("user", "KYC for indusind"),
    ("assistant", "Min KYC steps for IndusInd..."),
)


class TestPassThrough:
    """No rewrite without history or on failure."""

    @pytest.mark.parametrize("query", ["KYC for indusind", "  padded query  ", "x"])
    def test_empty_history_skips_llm(self, query):
        llm = FakeLLM("should not be used")
        result = asyncio.run(QueryRewriter(llm).rewrite(query, []))

        assert result.original == query.strip()
        assert result.rewritten == query.strip()
        assert result.was_rewritten is False
        assert llm.calls == []

    def test_llm_failure_falls_back(self):
        llm = FailingLLM()
        result = asyncio.run(
            QueryRewriter(llm, retries=1).rewrite("Can I do full KYC also?", HISTORY)
        )

        assert result.rewritten == "Can I do full KYC also?"
        assert result.was_rewritten is False
        assert len(llm.calls) == 2

    def test_llm_timeout_falls_back(self):
        rewriter = QueryRewriter(SlowLLM(), timeout=0.01, retries=0)
        result = asyncio.run(rewriter.rewrite("And the fee?", HISTORY))

        assert result.rewritten == "And the fee?"
        assert result.was_rewritten is False

    def test_disabled(self):
        llm = FakeLLM("How to do full KYC for IndusInd Bank?")
        result = asyncio.run(
            QueryRewriter(llm, enabled=False).rewrite("Can I do full KYC also?", HISTORY)
        )

        assert result.was_rewritten is False
        assert llm.calls == []

    def test_no_llm_configured(self):
        result = asyncio.run(QueryRewriter(None).rewrite("Can I do full KYC also?", HISTORY))
        assert result.was_rewritten is False


class TestRewrite:
    """Follow-ups are resolved against history."""

    def test_follow_up_is_rewritten(self):
        llm = FakeLLM("How to do full KYC for IndusInd Bank?")
        log = ListRewriteLog()
        rewriter = QueryRewriter(llm, rewrite_log=log)

        result = asyncio.run(rewriter.rewrite("Can i Do full KYC also", HISTORY, session_id="s1"))

        assert result.was_rewritten is True
        assert "full kyc" in result.rewritten.lower()
        assert "indusind" in result.rewritten.lower()
        assert result.model == "fake-rewriter"
        assert result.latency_ms is not None and result.latency_ms >= 0
        assert log.records == [(result, "s1")]

    def test_new_topic_passes_through(self):
        llm = FakeLLM("What is the RTGS limit?")
        result = asyncio.run(QueryRewriter(llm).rewrite("What is the RTGS limit?", HISTORY))

        assert result.was_rewritten is False
        assert result.rewritten == "What is the RTGS limit?"

    def test_call_parameters(self):
        llm = FakeLLM("x y z")
        asyncio.run(
            QueryRewriter(llm, max_tokens=42, temperature=0.3).rewrite("and that?", HISTORY)
        )

        call = llm.calls[0]
        assert call["system_prompt"] == REWRITER_SYSTEM_PROMPT
        assert call["max_tokens"] == 42
        assert call["temperature"] == 0.3
        assert call["user_message"] == (
            "History:\nUser: KYC for indusind\nAssistant: Min KYC steps for IndusInd..."
            "\n\nLatest: and that?\n→"
        )

    def test_rejected_output_is_logged_as_not_rewritten(self):
        log = ListRewriteLog()
        rewriter = QueryRewriter(FakeLLM("Sure! Here you go"), rewrite_log=log)

        result = asyncio.run(rewriter.rewrite("and that?", HISTORY))

        assert result.was_rewritten is False
        assert log.records[0][0].was_rewritten is False


class TestCleanRewritten:
    """Output sanitization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("→ What are the timings for video KYC?", "What are the timings for video KYC?"),
            ("Rewritten: KYC for HDFC", "KYC for HDFC"),
            ("REWRITTEN: KYC for HDFC", "KYC for HDFC"),
            ('"KYC for HDFC"', "KYC for HDFC"),
            ("'KYC for HDFC'", "KYC for HDFC"),
            ('KYC for "HDFC" bank', 'KYC for "HDFC" bank'),
            ("  KYC for HDFC  ", "KYC for HDFC"),
        ],
    )
    def test_strips_markers(self, raw, expected):
        assert clean_rewritten(raw, "original") == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            '""',
            "I think you mean KYC",
            "Sure, the query is KYC",
            "yes",
            "No idea",
            "The answer is 42",
            "x" * 201,
        ],
    )
    def test_rejects_unusable_output(self, raw):
        assert clean_rewritten(raw, "original") == "original"

    def test_max_chars_boundary(self):
        assert clean_rewritten("x" * 200, "original") == "x" * 200


class TestFormatHistory:
    """Transcript formatting."""

    def test_empty(self):
        assert format_history([]) == ""

    def test_window_keeps_last_two_n_messages(self):
        history = turns(*[("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(10)])
        lines = format_history(history, last_n=3).split("\n")

        assert len(lines) == 6
        assert lines[0] == "User: m4"
        assert lines[-1] == "Assistant: m9"

    def test_assistant_truncated(self):
        history = turns(("user", "u" * 300), ("assistant", "a" * 300))
        lines = format_history(history).split("\n")

        assert lines[0] == "User: " + "u" * 300
        assert lines[1] == "Assistant: " + "a" * 150 + "..."

    def test_assistant_at_limit_not_truncated(self):
        lines = format_history(turns(("assistant", "a" * 150)))
        assert lines == "Assistant: " + "a" * 150


class TestBuildMessage:
    def test_with_history(self):
        assert build_rewriter_message("User: hi\n", "next?") == (
            "History:\nUser: hi\n\nLatest: next?\n→"
        )

    def test_without_history(self):
        assert build_rewriter_message("  ", "next?") == "History: [none]\n\nLatest: next?\n→"


class TestClientFallback:
    """Clients are tried in order until one returns text."""

    def test_second_client_used_when_first_fails(self):
        primary = FailingLLM(name="primary")
        fallback = FakeLLM("How to do full KYC for IndusInd Bank?", name="fallback")
        rewriter = QueryRewriter([primary, fallback], retries=0)

        result = asyncio.run(rewriter.rewrite("Can I do full KYC also?", HISTORY))

        assert result.was_rewritten is True
        assert result.model == "fallback"
        assert len(primary.calls) == 1
        assert len(fallback.calls) == 1

    def test_second_client_used_when_first_returns_nothing(self):
        primary = FakeLLM("   ", name="primary")
        fallback = FakeLLM("KYC fees for IndusInd Bank", name="fallback")

        result = asyncio.run(
            QueryRewriter([primary, fallback]).rewrite("and the fees?", HISTORY)
        )

        assert result.rewritten == "KYC fees for IndusInd Bank"
        assert result.model == "fallback"

    def test_first_answer_wins(self):
        primary = FakeLLM("KYC fees for IndusInd Bank", name="primary")
        fallback = FakeLLM("unused", name="fallback")

        result = asyncio.run(
            QueryRewriter([primary, fallback]).rewrite("and the fees?", HISTORY)
        )

        assert result.model == "primary"
        assert fallback.calls == []

    def test_all_clients_failing_passes_through(self):
        log = ListRewriteLog()
        rewriter = QueryRewriter(
            [FailingLLM(name="a"), FailingLLM(name="b")], retries=0, rewrite_log=log
        )

        result = asyncio.run(rewriter.rewrite("and the fees?", HISTORY))

        assert result.rewritten == "and the fees?"
        assert result.was_rewritten is False
        assert log.records == []

    def test_all_clients_empty_is_logged_as_not_rewritten(self):
        log = ListRewriteLog()
        rewriter = QueryRewriter(
            [FakeLLM("", name="a"), FakeLLM("", name="b")], rewrite_log=log
        )

        result = asyncio.run(rewriter.rewrite("and the fees?", HISTORY))

        assert result.was_rewritten is False
        assert result.model == "a"
        assert len(log.records) == 1

    def test_empty_client_list_passes_through(self):
        result = asyncio.run(QueryRewriter([]).rewrite("and the fees?", HISTORY))
        assert result.was_rewritten is False
