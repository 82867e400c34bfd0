"""Tests for the incremental summarization engine."""
import json
from datetime import date

import pytest

from clientpulse.models.schemas import ClientStatus, Section
from clientpulse.services.generation_exceptions import (
    GenerationAPIError,
    GenerationPayloadTooLargeError,
    GenerationTimeoutError,
)
from clientpulse.services.prompts import NO_HISTORY, SCORING_RUBRIC
from clientpulse.services.sequencer import build_sections
from clientpulse.services.status_classifier import classify_score
from clientpulse.services.summarization_engine import (
    SummarizationEngine,
    SummarizationError,
    parse_report,
    summarize_sections,
)
from tests.conftest import FINAL_JSON, RoleGenerator, ScriptedGenerator, make_document


def _sections(*titles, text="notas da reunião"):
    return [Section(title=title, raw_text=f"{text} {title}") for title in titles]


def _memory_of(context):
    return context.split("\n\nREUNIÃO:\n")[0][len("MEMÓRIA:\n"):]


def _meeting_of(context):
    return context.split("\n\nREUNIÃO:\n", 1)[1]


class TestEndToEnd:
    def test_ordered_run_produces_classified_report(self):
        sections = build_sections(make_document().sections, today=date(2025, 6, 1))
        generator = RoleGenerator()

        report = SummarizationEngine(generator).summarize(sections, company_name="Acme")

        assert [section.title for section in sections] == ["sem data", "14 jan", "02 fev"]
        assert report.sentimento_score == 9
        assert report.proximos_passos == ["Enviar proposta"]
        assert classify_score(report.sentimento_score) == ClientStatus.EXTREMELY_SATISFIED

    def test_memory_is_carried_between_calls(self):
        generator = RoleGenerator()
        SummarizationEngine(generator).run(_sections("a", "b", "c"), company_name="Acme")

        contexts = [context for _, context in generator.calls]
        assert _memory_of(contexts[0]) == NO_HISTORY
        assert _memory_of(contexts[1]) == "memória após chamada 1"
        assert _memory_of(contexts[2]) == "memória após chamada 2"

    def test_only_final_call_asks_for_json_with_rubric(self):
        generator = RoleGenerator()
        SummarizationEngine(generator).run(_sections("a", "b", "c"))

        instructions = [instruction for instruction, _ in generator.calls]
        assert all("JSON estrito" not in instruction for instruction in instructions[:-1])
        assert "JSON estrito" in instructions[-1]
        assert SCORING_RUBRIC in instructions[-1]

    def test_single_section_is_final(self):
        generator = ScriptedGenerator([FINAL_JSON])
        run = SummarizationEngine(generator).run(_sections("único"))

        assert len(generator.calls) == 1
        assert "JSON estrito" in generator.calls[0][0]
        assert run.parsed is True
        assert run.sections_succeeded == 1

    def test_same_inputs_give_same_report(self):
        first = SummarizationEngine(RoleGenerator()).summarize(_sections("a", "b"))
        second = SummarizationEngine(RoleGenerator()).summarize(_sections("a", "b"))
        assert first == second

    def test_summarize_sections_helper(self):
        report = summarize_sections(_sections("a", "b"), RoleGenerator(), company_name="Acme")
        assert report.resumo_executivo == "ok"

    def test_empty_input_is_rejected(self):
        with pytest.raises(ValueError):
            SummarizationEngine(RoleGenerator()).run([])


class TestBudgets:
    def test_memory_is_clipped_per_role(self):
        generator = ScriptedGenerator(["x" * 2000, "y" * 2000, FINAL_JSON])
        SummarizationEngine(generator).run(_sections("a", "b", "c"))

        assert _memory_of(generator.calls[1][1]) == "x" * 1200
        assert _memory_of(generator.calls[2][1]) == "y" * 700

    def test_section_text_is_compressed(self):
        sections = [Section(title="longa", raw_text="palavra " * 1000)]
        generator = ScriptedGenerator([FINAL_JSON])
        SummarizationEngine(generator, max_payload_chars=1700).run(sections)

        assert len(_meeting_of(generator.calls[0][1])) <= 1700 + len("\n[...]\n")


class TestFailureHandling:
    def test_failed_section_is_skipped_and_memory_kept(self):
        generator = ScriptedGenerator([
            "mem A",
            GenerationTimeoutError("timeout"),
            GenerationTimeoutError("timeout again"),
            FINAL_JSON,
        ])
        run = SummarizationEngine(generator).run(_sections("a", "b", "c"))

        assert len(generator.calls) == 4
        assert _memory_of(generator.calls[3][1]) == "mem A"
        assert run.sections_succeeded == 2
        assert run.sections_skipped == 1
        assert run.report.sentimento_score == 9

    def test_other_errors_retry_with_same_context(self):
        generator = ScriptedGenerator([GenerationAPIError("boom", status_code=500), FINAL_JSON])
        run = SummarizationEngine(generator).run(_sections("a"))

        assert generator.calls[0] == generator.calls[1]
        assert run.sections_skipped == 0

    def test_payload_too_large_retries_with_degraded_context(self):
        sections = [Section(title="a", raw_text="z" * 5000)]
        generator = ScriptedGenerator([GenerationPayloadTooLargeError("413"), FINAL_JSON])
        run = SummarizationEngine(generator, degraded_context_chars=600).run(sections)

        first, retry = generator.calls[0][1], generator.calls[1][1]
        assert len(retry) < len(first)
        assert _meeting_of(retry) == "z" * 450
        assert _memory_of(retry) == NO_HISTORY[:150]
        assert run.parsed is True

    def test_empty_response_counts_as_skip(self):
        generator = ScriptedGenerator(["   ", FINAL_JSON])
        run = SummarizationEngine(generator).run(_sections("a", "b"))

        assert _memory_of(generator.calls[1][1]) == NO_HISTORY
        assert run.sections_skipped == 1

    def test_failed_final_section_uses_carried_memory(self):
        generator = ScriptedGenerator([
            "cliente tranquilo",
            GenerationTimeoutError("t"),
            GenerationTimeoutError("t"),
        ])
        run = SummarizationEngine(generator).run(_sections("a", "b"))

        assert run.parsed is False
        assert run.report.resumo_executivo == "cliente tranquilo"
        assert run.report.sentimento_score == 5

    def test_unexpected_exception_skips_only_that_section(self):
        generator = ScriptedGenerator(["mem A", RuntimeError("boom"), RuntimeError("boom"), FINAL_JSON])
        run = SummarizationEngine(generator).run(_sections("a", "b", "c"))

        assert len(generator.calls) == 4
        assert generator.calls[1] == generator.calls[2]
        assert _memory_of(generator.calls[3][1]) == "mem A"
        assert run.sections_skipped == 1
        assert run.report.sentimento_score == 9

    def test_non_text_response_counts_as_skip(self):
        generator = ScriptedGenerator([None, {"resumo": "x"}, FINAL_JSON])
        run = SummarizationEngine(generator).run(_sections("a", "b", "c"))

        assert _memory_of(generator.calls[2][1]) == NO_HISTORY
        assert run.sections_skipped == 2
        assert run.parsed is True

    def test_all_sections_failing_raises(self):
        generator = ScriptedGenerator([GenerationTimeoutError("t")] * 4)
        with pytest.raises(SummarizationError):
            SummarizationEngine(generator).run(_sections("a", "b"))


class TestParseReport:
    def test_malformed_json_falls_back_to_raw_text(self):
        report, parsed = parse_report("não é json {")

        assert parsed is False
        assert report.resumo_executivo == "não é json {"
        assert report.sentimento_score == 5
        assert report.proximos_passos == []

    def test_fallback_summary_is_truncated(self):
        report, _ = parse_report("a" * 1000)
        assert len(report.resumo_executivo) == 600

    def test_json_inside_prose(self):
        report, parsed = parse_report(f"Segue o relatório:\n```json\n{FINAL_JSON}\n```")

        assert parsed is True
        assert report.resumo_executivo == "ok"

    @pytest.mark.parametrize("raw,expected", [
        ("9", 9), (7.6, 8), ("7/10", 7), (15, 10), (-2, 0), ("alto", 5), (None, 5),
        (float("inf"), 5), (float("-inf"), 5), (float("nan"), 5), ("inf", 5), ("1e400", 5), (True, 5),
    ])
    def test_score_coercion(self, raw, expected):
        report, _ = parse_report(f'{{"sentimento_score": {json.dumps(raw)}}}')
        assert report.sentimento_score == expected

    def test_string_fields_become_lists(self):
        report, _ = parse_report('{"proximos_passos": "Ligar na sexta", "checkpoints_feitos": null}')

        assert report.proximos_passos == ["Ligar na sexta"]
        assert report.checkpoints_feitos == []


