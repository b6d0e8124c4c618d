"""
Document Similarity Analyzer

Sentence- and document-level TF-IDF similarity for detecting
near-duplicate content across a handful of documents.
"""

__version__ = "1.0.0"

from .core import *
from .utils import *
