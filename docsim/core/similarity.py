import itertools
import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse import csr_matrix

from .logging_config import LoggerMixin
from .models import Document, DocumentPairScore, Sentence, SentencePairScore, SparseVector
from .parallel import fork_join, raise_if_cancelled
from .sparse import cosine_matrix, cosine_similarity, stack_rows
from .validation import ParameterValidator, validate_inputs


@dataclass(frozen=True)
class PairBlock:
    """A range of source sentences compared against every target sentence."""
    source_doc: int
    target_doc: int
    sources: Tuple[Sentence, ...]
    targets: Tuple[Sentence, ...]
    # stacked TF-IDF rows of ``sources`` and ``targets``
    source_rows: csr_matrix = field(compare=False, repr=False)
    target_rows: csr_matrix = field(compare=False, repr=False)


class SimilarityScores(NamedTuple):
    sentence_pairs: List[SentencePairScore]
    document_pairs: List[DocumentPairScore]


def sentence_similarity(a: Sentence, b: Sentence) -> float:
    """Cosine similarity of two vectorized sentences."""
    return cosine_similarity(a.vector, b.vector)


class SimilarityEngine(LoggerMixin):
    """
    Scores every cross-document sentence pair and every document pair.

    Work is split by document pair first, then by blocks of source
    sentences, and each block is an independent task returning its own
    list. Sentences of the same document are never compared, and
    sentences without terms are skipped.
    """

    @validate_inputs(
        block_size=lambda x: ParameterValidator.validate_positive_integer(x, "block_size", min_value=1)
    )
    def __init__(self, block_size: int = 64, show_progress: bool = False):
        self.block_size = block_size
        self.show_progress = show_progress

    def partition(self, documents: Sequence[Document]) -> List[PairBlock]:
        """Split the sentence comparison into document-pair/sentence-range blocks."""
        scorable = [tuple(s for s in d.sentences if not s.is_empty) for d in documents]
        rows = [stack_rows(s.vector for s in sentences) if sentences else None for sentences in scorable]
        blocks = []
        for i, j in itertools.combinations(range(len(documents)), 2):
            sources, targets = scorable[i], scorable[j]
            if not sources or not targets:
                continue
            for start in range(0, len(sources), self.block_size):
                end = start + self.block_size
                blocks.append(PairBlock(
                    source_doc=documents[i].id,
                    target_doc=documents[j].id,
                    sources=sources[start:end],
                    targets=targets,
                    source_rows=rows[i][start:end],
                    target_rows=rows[j],
                ))
        return blocks

    def score_block(self, block: PairBlock, min_similarity: Optional[float] = None,
                    cancel_event: Optional[threading.Event] = None) -> List[SentencePairScore]:
        """
        Score one block.

        Args:
            block: Sentences to compare
            min_similarity: Drop pairs scoring below this value
            cancel_event: External cancellation signal, checked per source row
        """
        raise_if_cancelled(cancel_event, "scoring")
        similarities = cosine_matrix(block.source_rows, block.target_rows)

        scores = []
        for source, row in zip(block.sources, similarities):
            raise_if_cancelled(cancel_event, "scoring")
            if min_similarity is None:
                columns = range(len(block.targets))
            else:
                columns = np.flatnonzero(row >= min_similarity)
            for column in columns:
                target = block.targets[column]
                scores.append(SentencePairScore(
                    source_doc=block.source_doc,
                    source_index=source.index,
                    target_doc=block.target_doc,
                    target_index=target.index,
                    similarity=float(row[column]),
                ))
        return scores

    def _score_document_pair(self, pair: Tuple[int, int, SparseVector, SparseVector]) -> DocumentPairScore:
        doc_a, doc_b, vector_a, vector_b = pair
        return DocumentPairScore(doc_a=doc_a, doc_b=doc_b, score=cosine_similarity(vector_a, vector_b))

    def score(self, documents: Sequence[Document], document_vectors: Sequence[SparseVector],
              executor: Executor, cancel_event: Optional[threading.Event] = None,
              min_similarity: Optional[float] = None) -> SimilarityScores:
        """
        Compute all sentence-pair and document-pair similarities.

        Args:
            documents: Vectorized documents in upload order
            document_vectors: One summed vector per document, same order
            executor: Worker pool shared by the run
            cancel_event: External cancellation signal
            min_similarity: Optional prefilter; pairs below it are not emitted

        Returns:
            SimilarityScores with results in completion order
        """
        if len(documents) != len(document_vectors):
            raise ValueError("documents and document_vectors must have the same length")

        blocks = self.partition(documents)
        doc_pairs = [
            (documents[i].id, documents[j].id, document_vectors[i], document_vectors[j])
            for i, j in itertools.combinations(range(len(documents)), 2)
        ]

        with self.log_operation("score_sentence_pairs", documents=len(documents)) as operation:
            block_results = fork_join(
                executor,
                lambda block: self.score_block(block, min_similarity, cancel_event),
                blocks,
                stage="scoring",
                cancel_event=cancel_event,
                show_progress=self.show_progress,
                unit="block",
            )
            sentence_pairs = [score for result in block_results for score in result]
            operation.extra["pairs"] = len(sentence_pairs)

        document_pairs = fork_join(
            executor,
            self._score_document_pair,
            doc_pairs,
            stage="scoring",
            cancel_event=cancel_event,
            unit="pair",
        )

        self.logger.info(
            f"Scored {len(sentence_pairs)} sentence pairs in {len(blocks)} blocks "
            f"and {len(document_pairs)} document pairs")
        return SimilarityScores(sentence_pairs=sentence_pairs, document_pairs=document_pairs)
