import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from docsim.core.config import EngineConfig
from docsim.core.models import DocumentInput
from docsim.core.orchestrator import AnalysisOrchestrator, AnalysisRun, PipelineStage, analyze_documents
from docsim.core.validation import (
    AnalysisCancelledError, DocumentValidationError, InvalidInputCountError, InvalidThresholdError
)

from conftest import CATS_AND_DOGS, ESSAYS


def without_timing(result):
    data = result.to_dict()
    data["metadata"].pop("processing_time_ms")
    return data


def test_cats_and_dogs_example(orchestrator):
    result = orchestrator.analyze(CATS_AND_DOGS, 0.5)

    assert len(result.matches) == 1
    match = result.matches[0]
    assert (match.source_doc, match.source_sentence_index, match.source_sentence) == ("A", 1, "Dogs bark loudly.")
    assert (match.target_doc, match.target_sentence_index, match.target_sentence) == ("B", 0, "Dogs bark loudly.")
    assert match.similarity == 1.0

    assert len(result.global_similarity) == 1
    entry = result.global_similarity[0]
    assert (entry.doc_a, entry.doc_b) == ("A", "B")
    assert 0.0 < entry.score < 1.0

    assert result.metadata.documents_count == 2
    assert result.metadata.total_sentences == 4
    assert result.metadata.threshold == 0.5
    assert isinstance(result.metadata.processing_time_ms, int)
    assert result.metadata.processing_time_ms >= 0


def test_threshold_one_keeps_only_exact_duplicates(orchestrator):
    result = orchestrator.analyze(CATS_AND_DOGS, 1.0)
    assert [(m.source_sentence_index, m.target_sentence_index) for m in result.matches] == [(1, 0)]


def test_disjoint_vocabularies_produce_no_matches(orchestrator):
    documents = [
        {"name": "one", "text": "Alpha beta. Gamma delta."},
        {"name": "two", "text": "Epsilon zeta. Eta theta."},
        {"name": "three", "text": "Iota kappa. Lambda mu."},
    ]

    result = orchestrator.analyze(documents, 0.5)

    assert result.matches == ()
    assert [e.score for e in result.global_similarity] == [0.0, 0.0, 0.0]


def test_identical_documents_match_completely(orchestrator):
    text = "The report was late. Nobody read it. Then it rained!"
    result = orchestrator.analyze([{"name": "x", "text": text}, {"name": "y", "text": text}], 1.0)

    assert result.global_similarity[0].score == pytest.approx(1.0)
    matched = {m.source_sentence_index for m in result.matches if m.similarity == 1.0}
    assert matched == {0, 1, 2}


def test_threshold_monotonicity(orchestrator):
    counts = [len(orchestrator.analyze(ESSAYS, t / 10).matches) for t in range(11)]
    assert all(a >= b for a, b in zip(counts, counts[1:]))


def test_scores_are_within_unit_interval(orchestrator):
    result = orchestrator.analyze(ESSAYS, 0.0)
    assert result.matches
    assert all(0.0 <= m.similarity <= 1.0 for m in result.matches)
    assert all(0.0 <= e.score <= 1.0 for e in result.global_similarity)


@pytest.mark.parametrize("count", [2, 3, 4, 5])
def test_global_similarity_pair_count(orchestrator, count):
    documents = [{"name": f"d{i}", "text": f"Shared words. Unique{i} term."} for i in range(count)]
    result = orchestrator.analyze(documents, 0.5)
    assert len(result.global_similarity) == count * (count - 1) // 2
    assert [(e.doc_a, e.doc_b) for e in result.global_similarity] == [
        (f"d{i}", f"d{j}") for i in range(count) for j in range(i + 1, count)
    ]


def test_runs_are_deterministic(orchestrator):
    first = orchestrator.analyze(ESSAYS, 0.1)
    second = orchestrator.analyze(ESSAYS, 0.1)
    assert json.dumps(without_timing(first)) == json.dumps(without_timing(second))


def test_worker_count_does_not_change_results():
    single = AnalysisOrchestrator(EngineConfig(max_workers=1, sentence_block_size=100))
    many = AnalysisOrchestrator(EngineConfig(max_workers=4, sentence_block_size=1, vectorize_batch_size=1))
    assert without_timing(single.analyze(ESSAYS, 0.2)) == without_timing(many.analyze(ESSAYS, 0.2))


def test_concurrent_requests_share_no_state(orchestrator):
    expected = without_timing(orchestrator.analyze(ESSAYS, 0.3))
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: orchestrator.analyze(ESSAYS, 0.3), range(4)))
    assert all(without_timing(r) == expected for r in results)


def test_empty_corpus_is_not_an_error(orchestrator):
    result = orchestrator.analyze([{"name": "a", "text": ""}, {"name": "b", "text": "   \n"}], 0.5)

    assert result.metadata.documents_count == 2
    assert result.metadata.total_sentences == 0
    assert result.matches == ()
    assert result.global_similarity == ()


def test_document_without_sentences_still_counts(orchestrator):
    result = orchestrator.analyze([{"name": "a", "text": "Hello world."}, {"name": "b", "text": ""}], 0.0)

    assert result.metadata.documents_count == 2
    assert result.metadata.total_sentences == 1
    assert result.matches == ()
    assert [(e.doc_a, e.doc_b, e.score) for e in result.global_similarity] == [("a", "b", 0.0)]


def test_term_less_sentences_are_never_matched(orchestrator):
    result = orchestrator.analyze([{"name": "a", "text": "... !!!"}, {"name": "b", "text": "?? ..."}], 0.0)
    assert result.metadata.total_sentences == 4
    assert result.matches == ()
    assert result.global_similarity[0].score == 0.0


def test_sentence_ending_in_single_letter_word_is_split(orchestrator):
    documents = [{"name": "a", "text": "So do I. Dogs bark loudly."}, {"name": "b", "text": "Dogs bark loudly."}]

    result = orchestrator.analyze(documents, 0.5)

    assert result.metadata.total_sentences == 3
    assert [(m.source_sentence, m.target_sentence, m.similarity) for m in result.matches] == [
        ("Dogs bark loudly.", "Dogs bark loudly.", 1.0)
    ]


def test_abbreviation_guard_is_configurable():
    documents = [{"name": "a", "text": "J. Smith wrote it."}, {"name": "b", "text": "Smith wrote it."}]
    guarded = AnalysisOrchestrator(EngineConfig(max_workers=1, abbreviation_guard=True))

    assert guarded.analyze(documents, 0.5).metadata.total_sentences == 2
    assert AnalysisOrchestrator(EngineConfig(max_workers=1)).analyze(documents, 0.5).metadata.total_sentences == 3


def test_accepts_document_input_objects_and_duplicate_names(orchestrator):
    documents = [DocumentInput("same.txt", "Dogs bark."), DocumentInput("same.txt", "Dogs bark.")]
    result = orchestrator.analyze(documents, 0.9)
    assert len(result.matches) == 1
    assert result.matches[0].source_doc == result.matches[0].target_doc == "same.txt"


def test_threshold_defaults_to_configuration():
    orchestrator = AnalysisOrchestrator(EngineConfig(default_threshold=0.25, max_workers=1))
    assert orchestrator.analyze(CATS_AND_DOGS).metadata.threshold == 0.25


@pytest.mark.parametrize("documents", [[], [{"name": "a", "text": "Only one."}]])
def test_too_few_documents(orchestrator, documents):
    with pytest.raises(InvalidInputCountError):
        orchestrator.analyze(documents, 0.5)


def test_too_many_documents(orchestrator):
    documents = [{"name": f"d{i}", "text": "Text."} for i in range(6)]
    with pytest.raises(InvalidInputCountError):
        orchestrator.analyze(documents, 0.5)


@pytest.mark.parametrize("threshold", [-0.1, 1.01, float("nan"), "high", True])
def test_invalid_threshold(orchestrator, threshold):
    with pytest.raises(InvalidThresholdError):
        orchestrator.analyze(CATS_AND_DOGS, threshold)


def test_numeric_string_threshold_is_accepted(orchestrator):
    assert orchestrator.analyze(CATS_AND_DOGS, "0.5").metadata.threshold == 0.5


@pytest.mark.parametrize("documents", [
    [{"name": "a"}, {"name": "b", "text": "x"}],
    [{"name": "a", "text": b"bytes"}, {"name": "b", "text": "x"}],
    [{"name": 1, "text": "x"}, {"name": "b", "text": "x"}],
    ["just a string", "another"],
    "not a list",
])
def test_malformed_documents(orchestrator, documents):
    with pytest.raises(DocumentValidationError):
        orchestrator.analyze(documents, 0.5)


def test_cancelled_run_raises(orchestrator):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(AnalysisCancelledError) as excinfo:
        orchestrator.analyze(CATS_AND_DOGS, 0.5, cancel_event=cancel)
    assert excinfo.value.stage == PipelineStage.SEGMENTING.value


def test_analyze_request_returns_plain_result(orchestrator):
    response = orchestrator.analyze_request({"documents": CATS_AND_DOGS, "threshold": 0.5})

    assert set(response) == {"metadata", "matches", "global_similarity"}
    assert set(response["metadata"]) == {"documents_count", "total_sentences", "processing_time_ms", "threshold"}
    assert response["matches"][0] == {
        "source_doc": "A",
        "source_sentence_index": 1,
        "source_sentence": "Dogs bark loudly.",
        "target_doc": "B",
        "target_sentence_index": 0,
        "target_sentence": "Dogs bark loudly.",
        "similarity": 1.0,
    }
    assert set(response["global_similarity"][0]) == {"docA", "docB", "score"}
    json.dumps(response)


@pytest.mark.parametrize("payload", [
    {"documents": CATS_AND_DOGS[:1], "threshold": 0.5},
    {"documents": CATS_AND_DOGS, "threshold": 2},
    {"threshold": 0.5},
    ["not", "an", "object"],
])
def test_analyze_request_returns_structured_errors(orchestrator, payload):
    response = orchestrator.analyze_request(payload)
    assert list(response) == ["error"]
    assert isinstance(response["error"], str) and response["error"]


def test_analyze_request_reports_cancellation(orchestrator):
    cancel = threading.Event()
    cancel.set()
    response = orchestrator.analyze_request({"documents": CATS_AND_DOGS, "threshold": 0.5}, cancel)
    assert "cancelled" in response["error"]


def test_analyze_documents_helper(config):
    result = analyze_documents(CATS_AND_DOGS, 0.5, config=config)
    assert len(result.matches) == 1


def test_run_stage_machine():
    run = AnalysisRun("req-1")
    for stage in (PipelineStage.SEGMENTING, PipelineStage.BUILDING_VOCABULARY, PipelineStage.VECTORIZING,
                  PipelineStage.SCORING, PipelineStage.ASSEMBLING, PipelineStage.DONE):
        run.advance(stage)
    assert run.history[0] is PipelineStage.VALIDATING
    assert run.history[-1] is PipelineStage.DONE
    with pytest.raises(RuntimeError):
        run.advance(PipelineStage.CANCELLED)


def test_run_rejects_skipped_stages_and_late_failure():
    run = AnalysisRun()
    with pytest.raises(RuntimeError):
        run.advance(PipelineStage.VECTORIZING)
    run.advance(PipelineStage.SEGMENTING)
    with pytest.raises(RuntimeError):
        run.advance(PipelineStage.FAILED)
    run.advance(PipelineStage.CANCELLED)
    assert run.stage is PipelineStage.CANCELLED


def test_validation_failure_ends_in_failed_stage():
    run = AnalysisRun()
    run.advance(PipelineStage.FAILED)
    assert run.history == [PipelineStage.VALIDATING, PipelineStage.FAILED]
