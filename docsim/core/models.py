"""
Data structures shared by the analysis pipeline.

Everything here is scoped to a single analysis request and is immutable
once built: documents and sentences are frozen dataclasses, sentence
vectors are 1 x V scipy CSR rows over the run's vocabulary.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

from scipy.sparse import csr_matrix

# 1 x V row of TF-IDF weights; absent terms are implicitly zero
SparseVector = csr_matrix


@dataclass(frozen=True)
class DocumentInput:
    """One named plain-text document as handed over by the caller."""
    name: str
    text: str


@dataclass(frozen=True)
class Sentence:
    """A sentence of one document, with its normalized tokens and TF-IDF vector."""
    document_id: int
    index: int
    text: str
    tokens: Tuple[str, ...]
    # unset until the vectorizing stage; sparse rows have no value equality
    vector: Optional[SparseVector] = field(default=None, compare=False, repr=False)

    @property
    def is_empty(self) -> bool:
        """True when normalization left no tokens."""
        return not self.tokens


@dataclass(frozen=True)
class Document:
    """A segmented input document. ``id`` is its zero-based upload position."""
    id: int
    name: str
    raw_text: str
    sentences: Tuple[Sentence, ...] = ()

    @property
    def sentence_count(self) -> int:
        return len(self.sentences)


@dataclass(frozen=True)
class SentencePairScore:
    """Cosine similarity of two sentences from different documents."""
    source_doc: int
    source_index: int
    target_doc: int
    target_index: int
    similarity: float


@dataclass(frozen=True)
class DocumentPairScore:
    """Cosine similarity of two whole-document vectors."""
    doc_a: int
    doc_b: int
    score: float


@dataclass(frozen=True)
class Match:
    source_doc: str
    source_sentence_index: int
    source_sentence: str
    target_doc: str
    target_sentence_index: int
    target_sentence: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GlobalSimilarity:
    doc_a: str
    doc_b: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {'docA': self.doc_a, 'docB': self.doc_b, 'score': self.score}


@dataclass(frozen=True)
class AnalysisMetadata:
    documents_count: int
    total_sentences: int
    processing_time_ms: int
    threshold: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnalysisResult:
    """Final report of one analysis run."""
    metadata: AnalysisMetadata
    matches: Tuple[Match, ...]
    global_similarity: Tuple[GlobalSimilarity, ...]

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form matching the engine's JSON output shape."""
        return {
            'metadata': self.metadata.to_dict(),
            'matches': [match.to_dict() for match in self.matches],
            'global_similarity': [entry.to_dict() for entry in self.global_similarity],
        }

    def to_json(self, indent: int = None) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)
