import re
import unicodedata
from typing import List, Tuple

from .logging_config import LoggerMixin
from .models import Document, Sentence

# Terminal punctuation run, optionally followed by closing quotes/brackets,
# that ends a sentence when whitespace or end-of-text follows.
SENTENCE_BOUNDARY = re.compile(r'[.!?]+["\'”’)\]]*(?=\s|$)')

# Everything except word characters, apostrophes and hyphens; underscore
# counts as punctuation.
PUNCTUATION = re.compile(r"[^\w'’\-]|_")

# Apostrophes/hyphens are only kept inside a token.
EDGE_JOINERS = "'’-"


def normalize_text(text: str) -> str:
    """NFC-normalize so composed and decomposed characters tokenize alike."""
    return unicodedata.normalize('NFC', text)


class Segmenter(LoggerMixin):
    """
    Splits raw document text into sentences and normalizes their tokens.

    Sentence detection is a deliberate approximation: a run of ``.``, ``!``
    or ``?`` followed by whitespace or end-of-text ends a sentence. The
    optional abbreviation guard keeps a lone period after a single-letter
    token (``J. Smith``) from ending a sentence; it is off by default since
    it also swallows real boundaries such as ``So do I.``. No stop words,
    no stemming.
    """

    def __init__(self, abbreviation_guard: bool = False):
        self.abbreviation_guard = abbreviation_guard

    def _is_initial(self, text: str, boundary: "re.Match") -> bool:
        """Whether a boundary is a single period closing a one-letter token."""
        if boundary.group() != '.':
            return False
        pos = boundary.start()
        if pos < 1 or not text[pos - 1].isalpha():
            return False
        return pos == 1 or text[pos - 2].isspace()

    def split_sentences(self, text: str) -> List[str]:
        """
        Split text into trimmed sentence strings in order of appearance.

        Args:
            text: Raw document text

        Returns:
            List of sentences; empty for empty or whitespace-only text
        """
        sentences = []
        start = 0
        for boundary in SENTENCE_BOUNDARY.finditer(text):
            if self.abbreviation_guard and self._is_initial(text, boundary):
                continue
            sentence = text[start:boundary.end()].strip()
            if sentence:
                sentences.append(sentence)
            start = boundary.end()

        tail = text[start:].strip()
        if tail:
            sentences.append(tail)
        return sentences

    def tokenize(self, sentence: str) -> Tuple[str, ...]:
        """
        Normalize a sentence into terms.

        Lowercases, splits on whitespace, strips punctuation except internal
        apostrophes and hyphens, and drops empty tokens.
        """
        tokens = []
        for chunk in normalize_text(sentence).lower().split():
            token = PUNCTUATION.sub('', chunk).strip(EDGE_JOINERS)
            if token:
                tokens.append(token)
        return tuple(tokens)

    def segment(self, document_id: int, name: str, raw_text: str) -> Document:
        """
        Segment one document.

        Never fails for string input; sentences without tokens are kept so
        indices stay stable.
        """
        sentences = tuple(
            Sentence(
                document_id=document_id,
                index=index,
                text=text,
                tokens=self.tokenize(text),
            )
            for index, text in enumerate(self.split_sentences(raw_text))
        )

        if not sentences:
            self.logger.warning(f"Document '{name}' produced no sentences")
        else:
            empty = sum(1 for s in sentences if s.is_empty)
            self.logger.debug(
                f"Segmented '{name}': {len(sentences)} sentences ({empty} without terms)")

        return Document(id=document_id, name=name, raw_text=raw_text, sentences=sentences)
