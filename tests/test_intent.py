"""Tests for keyword intent classification."""

import pytest

from jobpilot.chat.intent import SCORING_KEYWORDS, KeywordIntentClassifier


@pytest.fixture
def classifier() -> KeywordIntentClassifier:
    return KeywordIntentClassifier()


@pytest.mark.parametrize("keyword", SCORING_KEYWORDS)
def test_each_keyword_triggers_scoring(classifier, keyword: str) -> None:
    assert classifier.classify(f"please {keyword} my jobs").wants_scoring


@pytest.mark.parametrize(
    "text",
    [
        "Score my saved jobs",
        "Which of these is the best FIT for me?",
        "can you RANK them",
    ],
)
def test_case_insensitive(classifier, text: str) -> None:
    assert classifier.classify(text).wants_scoring


@pytest.mark.parametrize(
    "text",
    [
        "find me remote python jobs",
        "save the top 3",
        "hello",
    ],
)
def test_non_scoring_messages(classifier, text: str) -> None:
    assert not classifier.classify(text).wants_scoring


def test_empty_text_is_not_scoring(classifier) -> None:
    assert not classifier.classify("").wants_scoring
    assert not classifier.classify("   ").wants_scoring


def test_substring_match_is_coarse(classifier) -> None:
    # "profit" contains "fit"
    assert classifier.classify("nonprofit roles in Denver").wants_scoring


def test_custom_keywords() -> None:
    classifier = KeywordIntentClassifier(keywords=("Grade",))
    assert classifier.classify("grade these").wants_scoring
    assert not classifier.classify("score these").wants_scoring
