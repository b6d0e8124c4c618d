from typing import Iterable, List, Sequence

from .logging_config import LoggerMixin
from .models import (
    AnalysisMetadata, AnalysisResult, Document, DocumentPairScore,
    GlobalSimilarity, Match, SentencePairScore
)


class MatchAssembler(LoggerMixin):
    """
    Turns raw pair scores into the final, deterministically ordered report.
    """

    @staticmethod
    def ranking_key(score: SentencePairScore, documents: Sequence[Document]):
        """
        Total sort key: similarity descending, then source name, source index,
        target name, target index. Document ids settle duplicate names.
        """
        source, target = documents[score.source_doc], documents[score.target_doc]
        return (-score.similarity, source.name, score.source_index,
                target.name, score.target_index, source.id, target.id)

    def select_matches(self, documents: Sequence[Document], pair_scores: Iterable[SentencePairScore],
                       threshold: float) -> List[Match]:
        """Keep pairs with ``similarity >= threshold`` and rank them."""
        kept = [score for score in pair_scores if score.similarity >= threshold]
        kept.sort(key=lambda score: self.ranking_key(score, documents))

        matches = []
        for score in kept:
            source, target = documents[score.source_doc], documents[score.target_doc]
            matches.append(Match(
                source_doc=source.name,
                source_sentence_index=score.source_index,
                source_sentence=source.sentences[score.source_index].text,
                target_doc=target.name,
                target_sentence_index=score.target_index,
                target_sentence=target.sentences[score.target_index].text,
                similarity=score.similarity,
            ))
        return matches

    def global_similarities(self, documents: Sequence[Document],
                            document_scores: Iterable[DocumentPairScore]) -> List[GlobalSimilarity]:
        """One entry per document pair, in upload order (A-B, A-C, B-C)."""
        ordered = sorted(document_scores, key=lambda pair: (pair.doc_a, pair.doc_b))
        return [
            GlobalSimilarity(
                doc_a=documents[pair.doc_a].name,
                doc_b=documents[pair.doc_b].name,
                score=pair.score,
            )
            for pair in ordered
        ]

    def assemble(self, documents: Sequence[Document], pair_scores: Iterable[SentencePairScore],
                 document_scores: Iterable[DocumentPairScore], threshold: float,
                 processing_time_ms: int) -> AnalysisResult:
        """
        Build the AnalysisResult.

        Args:
            documents: Documents indexed by their id (upload position)
            pair_scores: Unordered sentence-pair scores
            document_scores: Unordered document-pair scores
            threshold: Threshold used for filtering
            processing_time_ms: Pipeline wall-clock duration

        Returns:
            AnalysisResult; an empty corpus yields no matches and no
            global similarity entries
        """
        total_sentences = sum(document.sentence_count for document in documents)

        if total_sentences == 0:
            self.logger.warning("No sentences found in any document; returning an empty report")
            matches, global_similarity = [], []
        else:
            matches = self.select_matches(documents, pair_scores, threshold)
            global_similarity = self.global_similarities(documents, document_scores)

        metadata = AnalysisMetadata(
            documents_count=len(documents),
            total_sentences=total_sentences,
            processing_time_ms=int(processing_time_ms),
            threshold=threshold,
        )
        return AnalysisResult(
            metadata=metadata,
            matches=tuple(matches),
            global_similarity=tuple(global_similarity),
        )
