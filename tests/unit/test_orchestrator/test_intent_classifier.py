"""Unit tests for the rule-based intent classifier."""

import pytest

from atlas.orchestrator.intent_classifier import (
    IntentClassifier,
    IntentRule,
    classify_intent,
)


@pytest.mark.unit
class TestClassifyIntent:
    def test_draft_reply_email_is_communications_draft(self):
        result = classify_intent("Draft a reply to this email")

        assert result.task_type == "communications_draft"
        assert result.domain == "communications"
        assert result.requires_llm is False
        assert result.confidence == pytest.approx(1.0)
        assert set(result.matched_keywords) == {"reply", "email"}
        assert result.is_confident()

    def test_unknown_text_requires_llm(self):
        result = classify_intent("Hello there, how are you?")

        assert result.task_type == "unknown"
        assert result.confidence == 0.0
        assert result.requires_llm is True
        assert not result.is_confident()

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_query_is_unknown(self, query):
        result = classify_intent(query)

        assert result.task_type == "unknown"
        assert result.requires_llm is True

    def test_trigger_with_keyword_adds_bonus(self):
        result = classify_intent("Schedule a meeting with the design team")

        assert result.task_type == "scheduling"
        assert result.confidence == pytest.approx(0.95)
        assert result.matched_keywords == ["meeting"]

    @pytest.mark.parametrize(
        "query", ["Can you get this scheduled?", "Scheduling the offsite", "Schedules for next week"]
    )
    def test_inflected_trigger_matches(self, query):
        assert classify_intent(query).task_type == "scheduling"

    @pytest.mark.parametrize("query", ["is it important?", "grab a taxi", "the planet is round"])
    def test_longer_word_does_not_hit_trigger(self, query):
        result = classify_intent(query)

        assert result.task_type == "unknown"
        assert result.requires_llm is True

    def test_taxes_hits_tax_trigger(self):
        assert classify_intent("file my taxes").task_type == "financial_analysis"


    def test_more_keyword_hits_outrank_fewer(self):
        # "calculate" hits the budget keyword; the "budget" rule has only its trigger
        result = classify_intent("Calculate the budget")

        assert result.task_type == "financial_analysis"
        assert result.matched_keywords == ["budget"]

    def test_classification_is_case_insensitive(self):
        assert classify_intent("SUMMARIZE THIS THREAD").task_type == "summarization"


@pytest.mark.unit
class TestIntentClassifierRules:
    def test_custom_rule_table(self):
        classifier = IntentClassifier(
            rules=[IntentRule("deploy", "release_management", 0.8, "devops", ("prod", "rollout"))]
        )

        result = classifier.classify("deploy to prod")

        assert result.task_type == "release_management"
        assert result.confidence == pytest.approx(0.85)

    def test_earlier_rule_wins_exact_tie(self):
        classifier = IntentClassifier(
            rules=[
                IntentRule("sync", "first", 0.8, "a"),
                IntentRule("sync", "second", 0.8, "b"),
            ]
        )

        assert classifier.classify("sync now").task_type == "first"

    def test_confidence_capped_at_one(self):
        classifier = IntentClassifier(
            rules=[IntentRule("x", "t", 0.95, "d", ("alpha", "beta", "gamma"))]
        )

        result = classifier.classify("x alpha beta gamma")

        assert result.confidence == 1.0

    def test_low_confidence_rule_is_not_confident(self):
        classifier = IntentClassifier(rules=[IntentRule("maybe", "vague", 0.5, "misc")])

        result = classifier.classify("maybe later")

        assert result.requires_llm is False
        assert not result.is_confident(floor=0.7)
