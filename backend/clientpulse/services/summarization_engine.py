"""Incremental, memory-carrying summarization of chronologically ordered sections."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from clientpulse.models.schemas import Section, StructuredReport
from clientpulse.services.compressor import DEFAULT_MAX_PAYLOAD_CHARS, PayloadCompressor
from clientpulse.services.generation_exceptions import (
    GenerationClientError,
    GenerationPayloadTooLargeError,
)
from clientpulse.services.prompts import (
    NO_HISTORY,
    build_carry_instruction,
    build_context,
    build_final_instruction,
)
from clientpulse.utils.json_extract import extract_json_object

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, str], str]

FALLBACK_SUMMARY_CHARS = 600


class SummarizationError(Exception):
    """Raised when no section produced any usable generation output."""
    pass


class RunningMemory:
    """The accumulated understanding carried from one section to the next."""

    def __init__(self, initial: str = NO_HISTORY):
        self._initial = initial
        self._value = initial

    @property
    def value(self) -> str:
        return self._value

    @property
    def is_empty(self) -> bool:
        return self._value == self._initial

    def clip(self, max_chars: int) -> str:
        return self._value[:max_chars]

    def replace(self, text: str) -> None:
        self._value = text


@dataclass
class SummaryRun:
    report: StructuredReport
    sections_succeeded: int
    sections_skipped: int
    parsed: bool


def parse_report(text: str) -> Tuple[StructuredReport, bool]:
    """
    Parse the final response into a StructuredReport.

    Returns:
        (report, parsed) where ``parsed`` is False when the fallback report
        built from the raw text was used
    """
    payload = extract_json_object(text)
    if payload is not None:
        try:
            return StructuredReport.model_validate(payload), True
        except ValueError as exc:
            logger.warning("Report JSON failed validation: %s", exc)

    return StructuredReport(resumo_executivo=(text or "").strip()[:FALLBACK_SUMMARY_CHARS]), False


class SummarizationEngine:
    """
    Walk sections oldest to newest with one generation call each.

    Non-final sections update the running memory; the final section asks for
    the strict-JSON report. A section whose call fails (after one retry) is
    skipped and leaves the memory untouched.
    """

    def __init__(
        self,
        generate: GenerateFn,
        max_payload_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
        carry_memory_chars: int = 1200,
        final_memory_chars: int = 700,
        degraded_context_chars: int = 600,
        compressor: Optional[PayloadCompressor] = None,
    ):
        self.generate = generate
        self.compressor = compressor or PayloadCompressor(max_chars=max_payload_chars)
        self.carry_memory_chars = carry_memory_chars
        self.final_memory_chars = final_memory_chars
        self.degraded_context_chars = degraded_context_chars

    def run(self, sections: Sequence[Section], company_name: str = "") -> SummaryRun:
        if not sections:
            raise ValueError("At least one section is required")

        memory = RunningMemory()
        succeeded = 0
        skipped = 0
        final_ok = False
        last_index = len(sections) - 1

        for index, section in enumerate(sections):
            is_final = index == last_index
            section_text = self.compressor.compress(section.raw_text)

            if is_final:
                instruction = build_final_instruction(company_name, section.title)
                memory_budget = self.final_memory_chars
            else:
                instruction = build_carry_instruction(company_name, section.title, self.carry_memory_chars)
                memory_budget = self.carry_memory_chars

            logger.info(
                "Section %d/%d '%s' (%s): %d chars after compression",
                index + 1,
                len(sections),
                section.title,
                "final" if is_final else "carry",
                len(section_text),
            )

            response = self._call_with_retry(instruction, memory, memory_budget, section_text)
            response = response.strip() if isinstance(response, str) else ""
            if not response:
                skipped += 1
                logger.warning("Skipping section '%s'; memory left unchanged", section.title)
                continue

            memory.replace(response)
            succeeded += 1
            final_ok = is_final

        if memory.is_empty:
            raise SummarizationError(f"All {len(sections)} generation calls failed")

        if not final_ok:
            logger.warning("Final section failed; building report from carried memory")

        report, parsed = parse_report(memory.value)
        if not parsed:
            logger.warning("Final response was not valid JSON; using fallback report")

        return SummaryRun(
            report=report,
            sections_succeeded=succeeded,
            sections_skipped=skipped,
            parsed=parsed,
        )

    def summarize(self, sections: Sequence[Section], company_name: str = "") -> StructuredReport:
        return self.run(sections, company_name=company_name).report

    def _call_with_retry(
        self,
        instruction: str,
        memory: RunningMemory,
        memory_budget: int,
        section_text: str,
    ) -> str:
        context = build_context(memory.clip(memory_budget), section_text)
        try:
            return self.generate(instruction, context)
        except GenerationPayloadTooLargeError as exc:
            logger.warning("Payload too large (%s); retrying with degraded context", exc)
            retry_context = self._degraded_context(memory, section_text)
        except GenerationClientError as exc:
            logger.warning("Generation failed (%s); retrying once", exc)
            retry_context = context
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected generation failure; retrying once")
            retry_context = context

        try:
            return self.generate(instruction, retry_context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Retry failed: %s", exc)
            return ""

    def _degraded_context(self, memory: RunningMemory, section_text: str) -> str:
        memory_share = self.degraded_context_chars // 4
        return build_context(
            memory.clip(memory_share),
            section_text[:self.degraded_context_chars - memory_share],
        )


def summarize_sections(
    sections: List[Section],
    generate: GenerateFn,
    company_name: str = "",
    **engine_kwargs,
) -> StructuredReport:
    """Convenience wrapper building a one-off engine."""
    return SummarizationEngine(generate, **engine_kwargs).summarize(sections, company_name=company_name)
