"""
Core similarity engine.

This package contains the analysis pipeline and its ambient services:
- Sentence segmentation and token normalization
- Vocabulary construction and TF-IDF vectorization
- Parallel cosine similarity scoring
- Match assembly and the request orchestrator
- Configuration, logging and validation
"""

from .segmenter import Segmenter
from .vocabulary import Vocabulary, VocabularyBuilder
from .vectorizer import SentenceVectorizer
from .similarity import SimilarityEngine, SimilarityScores, sentence_similarity
from .assembler import MatchAssembler
from .orchestrator import AnalysisOrchestrator, AnalysisRun, PipelineStage, analyze_documents
from .config import EngineConfig
from .models import (
    DocumentInput, Document, Sentence, SentencePairScore, DocumentPairScore,
    Match, GlobalSimilarity, AnalysisMetadata, AnalysisResult
)
from .logging_config import setup_logging, get_logger, LoggerMixin, AnalysisLogging
from .validation import (
    ValidationError, InvalidInputCountError, InvalidThresholdError,
    DocumentValidationError, ParameterValidationError, FileValidationError,
    AnalysisCancelledError, ParameterValidator, RequestValidator, validate_inputs
)

__all__ = [
    'Segmenter',
    'Vocabulary',
    'VocabularyBuilder',
    'SentenceVectorizer',
    'SimilarityEngine',
    'SimilarityScores',
    'sentence_similarity',
    'MatchAssembler',
    'AnalysisOrchestrator',
    'AnalysisRun',
    'PipelineStage',
    'analyze_documents',
    'EngineConfig',
    'DocumentInput',
    'Document',
    'Sentence',
    'SentencePairScore',
    'DocumentPairScore',
    'Match',
    'GlobalSimilarity',
    'AnalysisMetadata',
    'AnalysisResult',
    'setup_logging',
    'get_logger',
    'LoggerMixin',
    'AnalysisLogging',
    'ValidationError',
    'InvalidInputCountError',
    'InvalidThresholdError',
    'DocumentValidationError',
    'ParameterValidationError',
    'FileValidationError',
    'AnalysisCancelledError',
    'ParameterValidator',
    'RequestValidator',
    'validate_inputs'
]
