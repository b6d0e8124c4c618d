import threading
from concurrent.futures import Executor
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from scipy.sparse import csr_matrix

from .logging_config import LoggerMixin
from .models import Document, Sentence, SparseVector
from .parallel import fork_join, raise_if_cancelled
from .sparse import stack_rows, sum_rows
from .validation import ParameterValidator, validate_inputs
from .vocabulary import Vocabulary

# (document position, first sentence index, sentences)
SentenceBatch = Tuple[int, int, Tuple[Sentence, ...]]


class SentenceVectorizer(LoggerMixin):
    """
    Attaches TF-IDF rows from the run's Vocabulary to every sentence.

    Sentences are transformed in batches on the shared worker pool. The
    vector of a document is the element-wise sum of its sentence rows.
    """

    @validate_inputs(
        batch_size=lambda x: ParameterValidator.validate_positive_integer(x, "batch_size", min_value=1)
    )
    def __init__(self, vocabulary: Vocabulary, batch_size: int = 256, show_progress: bool = False):
        """
        Args:
            vocabulary: Frozen vocabulary of the current run
            batch_size: Sentences per parallel task
            show_progress: Whether to draw progress bars
        """
        self.vocabulary = vocabulary
        self.batch_size = batch_size
        self.show_progress = show_progress

    def vectorize_tokens(self, tokens: Iterable[str]) -> SparseVector:
        """TF-IDF row for a single token sequence."""
        return self.vocabulary.transform([tuple(tokens)])

    def _vectorize_batch(self, batch: SentenceBatch,
                         cancel_event: Optional[threading.Event] = None) -> SentenceBatch:
        position, start, sentences = batch
        raise_if_cancelled(cancel_event, "vectorizing")
        rows = self.vocabulary.transform([sentence.tokens for sentence in sentences])
        return position, start, tuple(
            replace(sentence, vector=rows[offset]) for offset, sentence in enumerate(sentences)
        )

    def _partition(self, documents: Sequence[Document]) -> List[SentenceBatch]:
        batches = []
        for position, document in enumerate(documents):
            for start in range(0, document.sentence_count, self.batch_size):
                batches.append((position, start, document.sentences[start:start + self.batch_size]))
        return batches

    def vectorize_documents(self, documents: Sequence[Document], executor: Executor,
                            cancel_event: Optional[threading.Event] = None) -> List[Document]:
        """
        Vectorize every sentence of every document on the worker pool.

        Each sentence belongs to exactly one batch and is vectorized once.

        Returns:
            New Document objects, in input order, holding vectorized sentences
        """
        batches = self._partition(documents)
        with self.log_operation("vectorize_sentences", sentences=sum(d.sentence_count for d in documents)):
            results = fork_join(
                executor,
                lambda batch: self._vectorize_batch(batch, cancel_event),
                batches,
                stage="vectorizing",
                cancel_event=cancel_event,
                show_progress=self.show_progress,
                unit="batch",
            )

        slots: List[List[Optional[Sentence]]] = [[None] * d.sentence_count for d in documents]
        for position, start, sentences in results:
            slots[position][start:start + len(sentences)] = sentences

        return [replace(document, sentences=tuple(slots[position]))
                for position, document in enumerate(documents)]

    def document_vector(self, document: Document) -> SparseVector:
        """Element-wise sum of the document's sentence rows; a zero row when it has none."""
        if not document.sentences:
            return csr_matrix((1, len(self.vocabulary)))
        return sum_rows(stack_rows(sentence.vector for sentence in document.sentences))
