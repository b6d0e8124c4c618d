"""
Utility functions and helpers for similarity reports.

This package contains supporting utilities:
- Tabular views and the document similarity matrix (report)
- Plain-text document loading (text_loader)
"""

from .report import (
    similarity_level, matches_frame, global_similarity_frame,
    similarity_matrix, export_matches_csv, format_report
)
from .text_loader import load_text_documents, find_text_files

__all__ = [
    'similarity_level',
    'matches_frame',
    'global_similarity_frame',
    'similarity_matrix',
    'export_matches_csv',
    'format_report',
    'load_text_documents',
    'find_text_files'
]
