"""Section payload compression ("sniper") for size-limited generation calls."""
import re
from typing import Iterable, Optional, Pattern, Tuple

DEFAULT_MAX_PAYLOAD_CHARS = 1700
OMISSION_MARKER = "\n[...]\n"

# Leading decoration allowed before a heading marker ("## Transcrição", "**Transcript**")
HEADING_PREFIX = r"^[ \t#*>_\-]*"


def _alternation(words: Iterable[str]) -> str:
    return "|".join(re.escape(word) for word in words)


class PayloadCompressor:
    """Strip boilerplate from a section and cut it down to a character budget."""

    # Headings that open an appended transcript; only matched at a line start
    TRAILER_HEADINGS = (
        "transcrição",
        "transcricao",
        "transcription",
        "transcript",
        "gravação da reunião",
        "gravacao da reuniao",
        "meeting recording",
    )

    # Auto-generated footer sentences; matched anywhere
    TRAILER_PHRASES = (
        "esta transcrição foi gerada",
        "você deve revisar as anotações do gemini",
        "as anotações do gemini podem conter erros",
    )

    # Synonyms for "next steps" / "action items"
    NEXT_STEP_KEYWORDS = (
        "próximos passos",
        "proximos passos",
        "próximas etapas",
        "proximas etapas",
        "encaminhamentos",
        "itens de ação",
        "itens de acao",
        "pendências",
        "next steps",
        "action items",
    )

    # Markers this close to the start are titles, not trailers
    MIN_TRAILER_OFFSET = 50

    # Share of the budget kept before the omission marker
    KEYWORD_HEAD_RATIO = 0.47
    SANDWICH_HEAD_RATIO = 0.56

    def __init__(
        self,
        max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
        trailer_headings: Optional[Iterable[str]] = None,
        trailer_phrases: Optional[Iterable[str]] = None,
        next_step_keywords: Optional[Iterable[str]] = None,
        omission_marker: str = OMISSION_MARKER,
    ):
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self.max_chars = max_chars
        self.trailer_pattern = self._trailer_pattern(
            self.TRAILER_HEADINGS if trailer_headings is None else trailer_headings,
            self.TRAILER_PHRASES if trailer_phrases is None else trailer_phrases,
        )
        self.keyword_pattern = re.compile(
            _alternation(next_step_keywords or self.NEXT_STEP_KEYWORDS),
            re.IGNORECASE,
        )
        self.omission_marker = omission_marker

    @staticmethod
    def _trailer_pattern(headings: Iterable[str], phrases: Iterable[str]) -> Optional[Pattern[str]]:
        alternatives = []
        headings = tuple(headings)
        phrases = tuple(phrases)
        if headings:
            alternatives.append(rf"{HEADING_PREFIX}(?:{_alternation(headings)})(?!\w)")
        if phrases:
            alternatives.append(_alternation(phrases))
        if not alternatives:
            return None
        return re.compile("|".join(alternatives), re.IGNORECASE | re.MULTILINE)

    def compress(self, text: str) -> str:
        """
        Compress raw section text.

        The text is cut at the earliest trailer marker, whitespace is
        collapsed, and only when the result still exceeds ``max_chars`` it is
        reduced to a head window plus either a window anchored on the last
        "next steps" keyword or a plain tail window.
        """
        if not text:
            return ""

        cleaned = collapse_whitespace(self.strip_trailer(text))
        if len(cleaned) <= self.max_chars:
            return cleaned

        keyword_at = self.find_last_keyword(cleaned)
        if keyword_at is not None:
            head_chars, window_chars = self._split_budget(self.KEYWORD_HEAD_RATIO)
            if keyword_at < head_chars:
                # A plain prefix already holds the keyword and what follows it
                return cleaned[:self.max_chars]
            window = cleaned[keyword_at:keyword_at + window_chars]
            return f"{cleaned[:head_chars]}{self.omission_marker}{window}"

        head_chars, tail_chars = self._split_budget(self.SANDWICH_HEAD_RATIO)
        return f"{cleaned[:head_chars]}{self.omission_marker}{cleaned[-tail_chars:]}"

    def strip_trailer(self, text: str) -> str:
        if self.trailer_pattern is None:
            return text
        match = self.trailer_pattern.search(text, self.MIN_TRAILER_OFFSET)
        return text if match is None else text[:match.start()]

    def find_last_keyword(self, text: str) -> Optional[int]:
        last = None
        for match in self.keyword_pattern.finditer(text):
            last = match.start()
        return last

    def _split_budget(self, head_ratio: float) -> Tuple[int, int]:
        head_chars = max(1, int(self.max_chars * head_ratio))
        return head_chars, max(1, self.max_chars - head_chars)


def collapse_whitespace(text: str) -> str:
    """Collapse runs of spaces and blank lines into single separators."""
    text = re.sub(r"[^\S\n]+", " ", text)
    text = re.sub(r"\s*\n\s*", "\n", text)
    return text.strip()


def compress_section_text(text: str, max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS) -> str:
    """Compress section text with the default markers and keywords."""
    return PayloadCompressor(max_chars=max_chars).compress(text)
