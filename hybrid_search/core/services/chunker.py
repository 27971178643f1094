"""Chunker - heading-aware, size-bounded fragments with sentence overlap."""

import logging
import math
import re
from dataclasses import dataclass

from ..models.document import Fragment

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_LINE_SPLIT_RE = re.compile(r"\r?\n")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass
class _Section:
    heading_path: list[str]
    text: str


def approx_tokens(text: str) -> int:
    """Approximate token count (4 chars per token)."""
    return math.ceil(len(text) / 4)


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


class Chunker:
    """Split Markdown-ish text into overlapping fragments."""

    def __init__(self, target_chars: int = 1800, overlap_sentences: int = 2):
        """Initialize chunker.

        Args:
            target_chars: Target fragment size in characters.
            overlap_sentences: Sentences carried from a flushed fragment
                into the next one.
        """
        self._target_chars = target_chars
        self._overlap_sentences = overlap_sentences

    def _sections(self, text: str) -> list[_Section]:
        """Group lines into sections under their heading path."""
        sections: list[_Section] = []
        stack: list[str] = []
        body: list[str] = []

        for line in _LINE_SPLIT_RE.split(text):
            match = _HEADING_RE.match(line)
            if not match:
                body.append(line)
                continue

            current = "\n".join(body).strip()
            if current:
                sections.append(_Section(heading_path=list(stack), text=current))
            body = []

            level = len(match.group(1))
            del stack[level - 1:]
            while len(stack) < level - 1:
                # Skipped levels (e.g. "#" then "###") leave no empty titles.
                stack.append("")
            stack.append(match.group(2).strip())

        current = "\n".join(body).strip()
        if current:
            sections.append(_Section(heading_path=list(stack), text=current))

        return sections

    def _overlap(self, content: str) -> str:
        if self._overlap_sentences <= 0:
            return ""
        return " ".join(split_sentences(content)[-self._overlap_sentences:])

    def chunk(self, text: str) -> list[Fragment]:
        """Split text into fragments.

        Args:
            text: Raw document text.

        Returns:
            Fragments in document order.
        """
        fragments: list[Fragment] = []
        cursor = 0

        def flush(buffer: str, heading_path: list[str]) -> str:
            nonlocal cursor
            content = buffer.strip()
            start = cursor
            cursor = start + len(content)
            fragments.append(
                Fragment(
                    content=content,
                    token_count=approx_tokens(content),
                    heading_path=[h for h in heading_path if h],
                    char_start=start,
                    char_end=cursor,
                    chunk_index=len(fragments),
                )
            )
            return content

        for section in self._sections(text):
            paragraphs = [
                p.strip() for p in _PARAGRAPH_SPLIT_RE.split(section.text) if p.strip()
            ]
            buffer = ""

            for paragraph in paragraphs:
                tentative = f"{buffer}\n\n{paragraph}" if buffer else paragraph
                if len(tentative) > self._target_chars and buffer.strip():
                    flushed = flush(buffer, section.heading_path)
                    overlap = self._overlap(flushed)
                    buffer = f"{overlap}\n\n{paragraph}" if overlap else paragraph
                else:
                    buffer = tentative

            if buffer.strip():
                flush(buffer, section.heading_path)

        logger.debug(f"Chunked {len(text)} chars into {len(fragments)} fragments")
        return fragments
