import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from docsim.core import logging_config
from docsim.core.config import EngineConfig
from docsim.core.orchestrator import AnalysisOrchestrator
from docsim.core.segmenter import Segmenter
from docsim.core.vectorizer import SentenceVectorizer
from docsim.core.vocabulary import VocabularyBuilder

CATS_AND_DOGS = [
    {"name": "A", "text": "Cats are mammals. Dogs bark loudly."},
    {"name": "B", "text": "Dogs bark loudly. Fish swim quietly."},
]

ESSAYS = [
    {"name": "essay.txt", "text": (
        "The quick brown fox jumps over the lazy dog. "
        "Rust and Python both have thriving ecosystems. "
        "Cosine similarity compares the angle between two vectors! "
        "Is this sentence plagiarized? Nobody knows."
    )},
    {"name": "reference.txt", "text": (
        "A quick brown fox jumped over a lazy dog. "
        "Cosine similarity compares the angle between two vectors. "
        "Weather was pleasant all week."
    )},
    {"name": "notes.md", "text": (
        "Python has a thriving ecosystem of libraries. "
        "The lazy dog slept. "
        "Vectors have angles and lengths."
    )},
]


@pytest.fixture
def config():
    # small blocks and batches so partitioning is exercised on tiny inputs
    return EngineConfig(max_workers=2, sentence_block_size=2, vectorize_batch_size=2)


@pytest.fixture
def orchestrator(config):
    return AnalysisOrchestrator(config)


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def vectorized(executor):
    """Segment, build the vocabulary and vectorize a list of texts."""
    def build(texts, batch_size=2):
        segmenter = Segmenter()
        documents = [segmenter.segment(i, f"doc{i}", text) for i, text in enumerate(texts)]
        vocabulary = VocabularyBuilder().build(documents)
        vectorizer = SentenceVectorizer(vocabulary, batch_size=batch_size)
        documents = vectorizer.vectorize_documents(documents, executor)
        vectors = [vectorizer.document_vector(document) for document in documents]
        return documents, vectors, vocabulary
    return build


@pytest.fixture
def restore_logging(monkeypatch):
    """Undo root logger changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    monkeypatch.setattr(logging_config, "_active_logging", None)
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
