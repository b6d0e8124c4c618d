"""
Tabular views of an AnalysisResult.

These helpers turn a finished result into pandas frames, a symmetric
document similarity matrix and a plain-text report. They only read the
result; nothing here feeds back into the engine.
"""

import itertools
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from ..core.models import AnalysisResult

MATCH_COLUMNS = [
    'source_doc', 'source_sentence_index', 'source_sentence',
    'target_doc', 'target_sentence_index', 'target_sentence', 'similarity',
]


def similarity_level(score: float) -> str:
    """Coarse label for a similarity score."""
    if score >= 0.7:
        return "High"
    elif score >= 0.4:
        return "Medium"
    return "Low"


def matches_frame(result: AnalysisResult) -> pd.DataFrame:
    """Ranked matches, one row per sentence pair, in report order."""
    rows = [match.to_dict() for match in result.matches]
    frame = pd.DataFrame(rows, columns=MATCH_COLUMNS)
    frame['level'] = [similarity_level(score) for score in frame['similarity']]
    return frame


def global_similarity_frame(result: AnalysisResult) -> pd.DataFrame:
    rows = [entry.to_dict() for entry in result.global_similarity]
    return pd.DataFrame(rows, columns=['docA', 'docB', 'score'])


def similarity_matrix(result: AnalysisResult) -> pd.DataFrame:
    """
    Symmetric N x N document similarity matrix.

    Rows and columns follow upload order. Global similarity entries are
    listed pairwise in that order (A-B, A-C, B-C), so positions are
    recovered from the pair sequence rather than from names, which may
    repeat. The diagonal is 1.0. An empty corpus gives an empty frame.
    """
    entries = result.global_similarity
    n = result.metadata.documents_count
    if not entries:
        return pd.DataFrame(np.zeros((0, 0)))

    names = [None] * n
    matrix = np.eye(n)
    for (i, j), entry in zip(itertools.combinations(range(n), 2), entries):
        names[i], names[j] = entry.doc_a, entry.doc_b
        matrix[i][j] = entry.score
        matrix[j][i] = entry.score

    return pd.DataFrame(matrix, index=names, columns=names)


def export_matches_csv(result: AnalysisResult, path: Union[str, Path]) -> Path:
    """Write the ranked matches to a UTF-8 CSV file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    matches_frame(result).to_csv(path, index=False, encoding='utf-8')
    return path


def format_report(result: AnalysisResult, max_sentence_chars: int = 60) -> str:
    """Human-readable summary of a result."""
    meta = result.metadata
    lines = [
        f"Documents: {meta.documents_count}  Sentences: {meta.total_sentences}  "
        f"Threshold: {meta.threshold:.2f}  Time: {meta.processing_time_ms} ms",
        "",
        "Global similarity:",
    ]

    if result.global_similarity:
        lines.append(similarity_matrix(result).to_string(float_format=lambda v: f"{v:.2%}"))
    else:
        lines.append("  (no comparable sentences)")

    lines.extend(["", f"Matches ({len(result.matches)}):"])
    if not result.matches:
        lines.append("  No sentence pairs at or above the threshold.")
        return "\n".join(lines)

    def clip(text: str) -> str:
        return text if len(text) <= max_sentence_chars else text[:max_sentence_chars - 3] + "..."

    frame = matches_frame(result)
    frame['source_sentence'] = frame['source_sentence'].map(clip)
    frame['target_sentence'] = frame['target_sentence'].map(clip)
    lines.append(frame.to_string(index=False, float_format=lambda v: f"{v:.3f}"))
    return "\n".join(lines)
