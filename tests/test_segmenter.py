from docsim.core.segmenter import Segmenter


def test_split_on_terminal_punctuation():
    segmenter = Segmenter()
    assert segmenter.split_sentences("Cats are mammals. Dogs bark loudly.") == [
        "Cats are mammals.",
        "Dogs bark loudly.",
    ]
    assert segmenter.split_sentences("Wait!! Really?! Yes.") == ["Wait!!", "Really?!", "Yes."]


def test_trailing_text_without_punctuation_is_a_sentence():
    assert Segmenter().split_sentences("First one.  second one") == ["First one.", "second one"]


def test_empty_and_whitespace_text_yield_no_sentences():
    segmenter = Segmenter()
    assert segmenter.split_sentences("") == []
    assert segmenter.split_sentences("  \n\t ") == []


def test_period_inside_token_does_not_split():
    assert Segmenter().split_sentences("Version 3.14 is out. Upgrade now") == [
        "Version 3.14 is out.",
        "Upgrade now",
    ]


def test_closing_quote_stays_with_sentence():
    assert Segmenter().split_sentences('He said "stop." Then he left.') == [
        'He said "stop."',
        "Then he left.",
    ]


def test_single_letter_words_end_sentences_by_default():
    assert Segmenter().split_sentences("So do I. Dogs bark loudly. Grade A. Next one.") == [
        "So do I.",
        "Dogs bark loudly.",
        "Grade A.",
        "Next one.",
    ]


def test_abbreviation_guard_for_single_letter_initials():
    text = "J. Smith wrote it. Then he left."
    assert Segmenter(abbreviation_guard=True).split_sentences(text) == ["J. Smith wrote it.", "Then he left."]
    assert Segmenter().split_sentences(text) == [
        "J.",
        "Smith wrote it.",
        "Then he left.",
    ]


def test_tokenize_normalizes_case_and_punctuation():
    tokens = Segmenter().tokenize("Don't STOP, state-of-the-art -- 'quoted'! e.g.")
    assert tokens == ("don't", "stop", "state-of-the-art", "quoted", "eg")


def test_tokenize_unicode_composition_is_normalized():
    segmenter = Segmenter()
    assert segmenter.tokenize("Cafe\u0301 open") == segmenter.tokenize("Caf\u00e9 open")


def test_segment_keeps_sentences_without_terms():
    document = Segmenter().segment(3, "doc.txt", "Hello there. ... World ends.")

    assert document.id == 3
    assert document.name == "doc.txt"
    assert [s.index for s in document.sentences] == [0, 1, 2]
    assert [s.text for s in document.sentences] == ["Hello there.", "...", "World ends."]
    assert document.sentences[1].is_empty
    assert document.sentences[0].tokens == ("hello", "there")
    assert all(s.document_id == 3 for s in document.sentences)
    assert all(not s.vector for s in document.sentences)


def test_segment_empty_document():
    document = Segmenter().segment(0, "empty.txt", "   ")
    assert document.sentences == ()
    assert document.sentence_count == 0
