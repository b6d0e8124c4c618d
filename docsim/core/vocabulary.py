from types import MappingProxyType
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.feature_extraction.text import TfidfVectorizer

from .logging_config import LoggerMixin
from .models import Document


def _pretokenized(tokens: Tuple[str, ...]) -> Tuple[str, ...]:
    """Analyzer for token tuples produced by the Segmenter."""
    return tokens


class Vocabulary:
    """
    Shared term index for one analysis run.

    Wraps a scikit-learn ``TfidfVectorizer`` fitted on every sentence of
    the run, with terms indexed in first-seen order. Weights are raw term
    counts times the smoothed idf ``ln((1 + N) / (1 + df)) + 1``, where N
    is the number of sentences and df the number of sentences containing
    the term. Read-only once built, so workers can share it without
    locking.
    """

    __slots__ = ('_model', '_index', '_terms', '_frequencies', '_total_sentences')

    def __init__(self, model: Optional[TfidfVectorizer], frequencies: Sequence[int], total_sentences: int):
        """
        Args:
            model: Fitted vectorizer, or None when the run has no terms
            frequencies: Sentence-level document frequency per term index
            total_sentences: Number of sentences the model was fitted on
        """
        terms = () if model is None else tuple(str(term) for term in model.get_feature_names_out())
        if len(terms) != len(frequencies):
            raise ValueError("model vocabulary and frequencies must have the same length")

        self._model = model
        self._terms: Tuple[str, ...] = terms
        self._index = MappingProxyType({term: i for i, term in enumerate(terms)})
        self._frequencies: Tuple[int, ...] = tuple(int(df) for df in frequencies)
        self._total_sentences = total_sentences

    @property
    def total_sentences(self) -> int:
        return self._total_sentences

    @property
    def terms(self) -> Tuple[str, ...]:
        return self._terms

    @property
    def frequencies(self) -> Tuple[int, ...]:
        return self._frequencies

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, term: str) -> bool:
        return term in self._index

    def index_of(self, term: str) -> Optional[int]:
        return self._index.get(term)

    def idf(self, index: int) -> float:
        return float(self._model.idf_[index])

    def transform(self, token_lists: Sequence[Tuple[str, ...]]) -> csr_matrix:
        """
        TF-IDF rows for a batch of token tuples, one row per tuple.

        Unknown terms are ignored. With an empty vocabulary every row is a
        zero-width row.
        """
        if self._model is None:
            return csr_matrix((len(token_lists), 0))
        return csr_matrix(self._model.transform(token_lists))


class VocabularyBuilder(LoggerMixin):
    """Builds the run's Vocabulary from every sentence of every document."""

    def build(self, documents: Iterable[Document]) -> Vocabulary:
        """
        Fit the run's TF-IDF model once over all sentences.

        Args:
            documents: Segmented documents in upload order

        Returns:
            Vocabulary with sentence-level document frequencies
        """
        token_lists = [sentence.tokens for document in documents for sentence in document.sentences]

        index: Dict[str, int] = {}
        for tokens in token_lists:
            for token in tokens:
                index.setdefault(token, len(index))

        if not index:
            self.logger.debug(f"Empty vocabulary over {len(token_lists)} sentences")
            return Vocabulary(None, (), len(token_lists))

        model = TfidfVectorizer(
            analyzer=_pretokenized,
            vocabulary=index,
            norm=None,
            smooth_idf=True,
            sublinear_tf=False,
            dtype=np.float64,
        )
        weights = model.fit_transform(token_lists)
        # one stored entry per (sentence, term) with a positive weight
        frequencies = np.bincount(weights.indices, minlength=len(index))

        self.logger.debug(f"Built vocabulary: {len(index)} terms over {len(token_lists)} sentences")
        return Vocabulary(model, frequencies, len(token_lists))
