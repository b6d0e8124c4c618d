"""
End-to-end driver of one similarity analysis.

Validating -> Segmenting -> BuildingVocabulary -> Vectorizing -> Scoring
-> Assembling -> Done. Validation is the only stage that can fail; the
run then ends in Failed with no partial result. An external cancellation
signal ends the run in Cancelled.
"""

import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .assembler import MatchAssembler
from .config import EngineConfig
from .logging_config import LoggerMixin
from .models import AnalysisResult, Document
from .parallel import raise_if_cancelled
from .segmenter import Segmenter
from .similarity import SimilarityEngine
from .validation import (
    AnalysisCancelledError, DocumentValidationError, RequestValidator, ValidationError
)
from .vectorizer import SentenceVectorizer
from .vocabulary import VocabularyBuilder


class PipelineStage(str, Enum):
    VALIDATING = "validating"
    SEGMENTING = "segmenting"
    BUILDING_VOCABULARY = "building_vocabulary"
    VECTORIZING = "vectorizing"
    SCORING = "scoring"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


PIPELINE_ORDER = (
    PipelineStage.VALIDATING,
    PipelineStage.SEGMENTING,
    PipelineStage.BUILDING_VOCABULARY,
    PipelineStage.VECTORIZING,
    PipelineStage.SCORING,
    PipelineStage.ASSEMBLING,
    PipelineStage.DONE,
)

TERMINAL_STAGES = (PipelineStage.DONE, PipelineStage.FAILED, PipelineStage.CANCELLED)


class AnalysisRun(LoggerMixin):
    """State of a single request: id, current stage, stage history."""

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or uuid.uuid4().hex[:12]
        self.stage = PipelineStage.VALIDATING
        self.history: List[PipelineStage] = [self.stage]

    def advance(self, stage: PipelineStage) -> None:
        """
        Move to ``stage``.

        Only the next pipeline stage is allowed; Failed only from Validating;
        Cancelled from any non-terminal stage.
        """
        if self.stage in TERMINAL_STAGES:
            raise RuntimeError(f"Run {self.request_id} already finished in stage {self.stage.value}")
        if stage is PipelineStage.FAILED:
            allowed = self.stage is PipelineStage.VALIDATING
        elif stage is PipelineStage.CANCELLED:
            allowed = True
        else:
            allowed = PIPELINE_ORDER.index(stage) == PIPELINE_ORDER.index(self.stage) + 1
        if not allowed:
            raise RuntimeError(f"Illegal stage transition {self.stage.value} -> {stage.value}")

        self.logger.debug(f"Stage {self.stage.value} -> {stage.value}",
                          extra={'request_id': self.request_id, 'stage': stage.value})
        self.stage = stage
        self.history.append(stage)


class AnalysisOrchestrator(LoggerMixin):
    """
    Runs the similarity pipeline for one request at a time.

    Holds configuration only; every call gets a fresh worker pool,
    vocabulary and document set, so one instance can serve concurrent
    callers.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config if config is not None else EngineConfig.from_env()
        self.segmenter = Segmenter(abbreviation_guard=self.config.abbreviation_guard)
        self.vocabulary_builder = VocabularyBuilder()
        self.similarity_engine = SimilarityEngine(
            block_size=self.config.sentence_block_size,
            show_progress=self.config.show_progress,
        )
        self.assembler = MatchAssembler()

    def _validate(self, run: AnalysisRun, documents: Any, threshold: Any):
        try:
            entries = RequestValidator.validate_documents(
                documents, self.config.min_documents, self.config.max_documents)
            threshold = RequestValidator.validate_threshold(
                self.config.default_threshold if threshold is None else threshold)
        except ValidationError as e:
            run.advance(PipelineStage.FAILED)
            self.logger.error(f"Request rejected: {e.message}",
                              extra={'request_id': run.request_id, 'stage': PipelineStage.VALIDATING.value})
            raise
        return entries, threshold

    def analyze(self, documents: Sequence[Any], threshold: Optional[float] = None,
                cancel_event: Optional[threading.Event] = None,
                request_id: Optional[str] = None) -> AnalysisResult:
        """
        Analyze a set of documents.

        Args:
            documents: Ordered ``{name, text}`` mappings or DocumentInput objects
            threshold: Minimum sentence similarity in [0.0, 1.0]; the
                configured default when omitted
            cancel_event: Set it to abandon the run
            request_id: Identifier used in log records

        Returns:
            AnalysisResult

        Raises:
            InvalidInputCountError: Fewer than the minimum or more than the
                maximum number of documents
            InvalidThresholdError: Threshold is not a number in [0.0, 1.0]
            DocumentValidationError: A document entry is malformed
            AnalysisCancelledError: The cancellation signal was set
        """
        run = AnalysisRun(request_id)
        start_time = time.perf_counter()
        context = {'request_id': run.request_id}

        entries, threshold = self._validate(run, documents, threshold)
        context['documents'] = len(entries)

        executor = ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="docsim")
        cancelled = False
        try:
            with self.log_operation("analyze", workers=self.config.max_workers, **context):
                result = self._run_pipeline(run, entries, threshold, executor, cancel_event, start_time)
        except AnalysisCancelledError:
            cancelled = True
            run.advance(PipelineStage.CANCELLED)
            self.logger.warning(f"Analysis {run.request_id} cancelled", extra=context)
            raise
        finally:
            # in-flight tasks of a cancelled run are abandoned, not awaited
            executor.shutdown(wait=not cancelled, cancel_futures=cancelled)

        self.logger.info(
            f"Analysis {run.request_id} finished: {result.metadata.total_sentences} sentences, "
            f"{len(result.matches)} matches in {result.metadata.processing_time_ms} ms",
            extra=context)
        return result

    def _run_pipeline(self, run: AnalysisRun, entries: List[Mapping[str, str]], threshold: float,
                      executor: ThreadPoolExecutor, cancel_event: Optional[threading.Event],
                      start_time: float) -> AnalysisResult:
        run.advance(PipelineStage.SEGMENTING)
        raise_if_cancelled(cancel_event, run.stage.value)
        documents: List[Document] = [
            self.segmenter.segment(position, entry['name'], entry['text'])
            for position, entry in enumerate(entries)
        ]

        run.advance(PipelineStage.BUILDING_VOCABULARY)
        raise_if_cancelled(cancel_event, run.stage.value)
        vocabulary = self.vocabulary_builder.build(documents)

        run.advance(PipelineStage.VECTORIZING)
        vectorizer = SentenceVectorizer(
            vocabulary,
            batch_size=self.config.vectorize_batch_size,
            show_progress=self.config.show_progress,
        )
        documents = vectorizer.vectorize_documents(documents, executor, cancel_event)
        document_vectors = [vectorizer.document_vector(document) for document in documents]

        run.advance(PipelineStage.SCORING)
        scores = self.similarity_engine.score(
            documents, document_vectors, executor,
            cancel_event=cancel_event,
            min_similarity=threshold,
        )

        run.advance(PipelineStage.ASSEMBLING)
        raise_if_cancelled(cancel_event, run.stage.value)
        result = self.assembler.assemble(
            documents, scores.sentence_pairs, scores.document_pairs, threshold, processing_time_ms=0)
        elapsed_ms = int(round((time.perf_counter() - start_time) * 1000))
        result = replace(result, metadata=replace(result.metadata, processing_time_ms=elapsed_ms))

        run.advance(PipelineStage.DONE)
        return result

    def analyze_request(self, payload: Any, cancel_event: Optional[threading.Event] = None) -> Dict[str, Any]:
        """
        JSON-shaped entry point.

        Args:
            payload: ``{"documents": [{"name", "text"}, ...], "threshold": x}``

        Returns:
            The result as plain data, or ``{"error": message}``
        """
        if not isinstance(payload, Mapping):
            return {'error': f"Request must be an object, got {type(payload).__name__}"}
        if 'documents' not in payload:
            return {'error': DocumentValidationError("Request is missing 'documents'", field="documents").message}

        try:
            result = self.analyze(payload['documents'], payload.get('threshold'), cancel_event)
        except ValidationError as e:
            return {'error': e.message}
        except AnalysisCancelledError as e:
            return {'error': str(e)}
        return result.to_dict()


def analyze_documents(documents: Sequence[Any], threshold: Optional[float] = None,
                      config: Optional[EngineConfig] = None,
                      cancel_event: Optional[threading.Event] = None) -> AnalysisResult:
    """Convenience wrapper running a single analysis with a fresh orchestrator."""
    return AnalysisOrchestrator(config).analyze(documents, threshold, cancel_event)
