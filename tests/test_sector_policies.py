"""Unit tests for the sector policies."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from services.sectors import (
    DEFAULT_POLICY, LEGAL_POLICY, MEDICAL_POLICY, EDUCATION_POLICY, SALES_POLICY, SECTOR_POLICIES,
)
from services.sectors.base import HEDGING, find_phrase, is_short_no_information

ALL_POLICIES = [DEFAULT_POLICY] + SECTOR_POLICIES

LEGAL_ANSWER = "According to article 15, the deadline is 30 days. [Document: code.pdf]"
LEGAL_CONTEXT = "FRAGMENT 1:\nSource: code.pdf\n\nContent:\nArticle 15 of the civil code sets a deadline of 30 days.\n"


class TestSharedHelpers:

    def test_hedging_matches_whole_words_only(self):
        assert find_phrase(HEDGING, "Deadlines are Typically short.") == "typically"
        assert find_phrase(HEDGING, "An unusually long deadline applies.") is None
        assert find_phrase(HEDGING, "In my experience this holds.") == "in my experience"

    def test_short_no_information(self):
        assert is_short_no_information("I did not find information about that.")
        assert not is_short_no_information("I did not find information about that. " + "x" * 100)
        assert not is_short_no_information("The deadline is 30 days.")


class TestPromptsAndFallbacks:

    @pytest.mark.parametrize("policy", ALL_POLICIES, ids=lambda p: p.sector_name)
    def test_prompt_contains_question_and_context(self, policy):
        prompt = policy.create_prompt("  What is the deadline?  ", "Article 15 sets 30 days.")

        assert "What is the deadline?" in prompt
        assert "Article 15 sets 30 days." in prompt

    @pytest.mark.parametrize("policy", ALL_POLICIES, ids=lambda p: p.sector_name)
    def test_prompt_with_empty_context_uses_placeholder(self, policy):
        prompt = policy.create_prompt("What is the deadline?", "   ")
        assert "available." in prompt

    @pytest.mark.parametrize("policy", ALL_POLICIES, ids=lambda p: p.sector_name)
    def test_fallback_quotes_question(self, policy):
        fallback = policy.create_fallback_response("What is the deadline?")
        assert '"What is the deadline?"' in fallback

    @pytest.mark.parametrize("policy", SECTOR_POLICIES, ids=lambda p: p.sector_name)
    def test_sector_fallback_wording(self, policy):
        fallback = policy.create_fallback_response("What is the deadline?")
        assert fallback.startswith("I did not find specific")


class TestValidationCommonRules:

    @pytest.mark.parametrize("policy", ALL_POLICIES, ids=lambda p: p.sector_name)
    def test_blank_answer_rejected(self, policy):
        assert policy.validate_response("") is False
        assert policy.validate_response("   \n") is False

    @pytest.mark.parametrize("policy", SECTOR_POLICIES, ids=lambda p: p.sector_name)
    def test_short_no_information_answer_accepted(self, policy):
        assert policy.validate_response("I did not find information about that in the documents.") is True

    @pytest.mark.parametrize("policy", SECTOR_POLICIES, ids=lambda p: p.sector_name)
    def test_hedging_overrides_other_signals(self, policy):
        answer = (
            "Generally, according to article 15 of the study, the product price of $29 includes "
            "the treatment for learning step 1. [Document: a.pdf]"
        )
        assert policy.validate_response(answer) is False

    @pytest.mark.parametrize("policy", ALL_POLICIES, ids=lambda p: p.sector_name)
    def test_confidence_in_unit_interval(self, policy):
        answers = [
            "",
            "I did not find information.",
            LEGAL_ANSWER,
            "We guarantee unlimited lifetime warranty forever, unbeatable!",
            "x" * 5000,
        ]
        for answer in answers:
            score = policy.calculate_confidence_score(answer, LEGAL_CONTEXT)
            assert 0.0 <= score <= 1.0

    @pytest.mark.parametrize("policy", ALL_POLICIES, ids=lambda p: p.sector_name)
    def test_confidence_without_inputs(self, policy):
        assert policy.calculate_confidence_score(None, "context") == 0.0
        assert policy.calculate_confidence_score("answer", None) == 0.0


class TestLegalPolicy:

    def test_cited_answer_accepted(self):
        assert LEGAL_POLICY.validate_response(LEGAL_ANSWER) is True

    def test_hedged_answer_rejected(self):
        answer = "Typically deadlines are around 30 days"
        assert LEGAL_POLICY.validate_response(answer) is False

    def test_word_containing_hedge_is_not_hedging(self):
        answer = "According to article 15, an unusually long deadline of 90 days applies here."
        assert LEGAL_POLICY.validate_response(answer) is True

    def test_answer_without_legal_signal_rejected(self):
        answer = "The deadline you are asking about is thirty days after notification."
        assert LEGAL_POLICY.validate_response(answer) is False

    def test_citation_words_must_be_whole_words(self):
        answer = "The lawn near the codec shop is mowed by the ruler of the garden club."
        assert LEGAL_POLICY.validate_response(answer) is False

    @pytest.mark.parametrize("answer", [
        "The applicable laws set a deadline of thirty days for these appeals.",
        "Both articles set a deadline of thirty days for the appeal to be filed.",
        "Art. 15 sets a deadline of thirty days for the appeal to be filed.",
    ])
    def test_plural_and_abbreviated_citations_accepted(self, answer):
        assert LEGAL_POLICY.validate_response(answer) is True

    def test_length_window(self):
        assert LEGAL_POLICY.validate_response("Article 15 applies.") is False
        assert LEGAL_POLICY.validate_response("According to article 15, " + "x" * 3000) is False

    def test_confidence_score(self):
        # 0.3 base + 0.3 citation + 0.2 terminology + 0.2 tag - 0.3 short + 0.1 shared terms
        score = LEGAL_POLICY.calculate_confidence_score(LEGAL_ANSWER, LEGAL_CONTEXT)
        assert score == pytest.approx(0.8)


class TestMedicalPolicy:

    def test_sensitive_topic_with_disclaimer_accepted(self):
        answer = (
            "The recommended treatment is rest, according to the clinical guideline. "
            "Consult your doctor before starting."
        )
        assert MEDICAL_POLICY.validate_response(answer) is True

    def test_sensitive_topic_without_disclaimer_rejected(self):
        answer = "The recommended treatment is rest and hydration according to the clinical guideline."
        assert MEDICAL_POLICY.validate_response(answer) is False

    def test_non_sensitive_evidence_answer_accepted(self):
        answer = "The study indicates that sleep quality improves with regular exercise routines."
        assert MEDICAL_POLICY.validate_response(answer) is True

    def test_invented_authority_rejected(self):
        answer = (
            "As a doctor, I can say this treatment works according to studies. "
            "Consult your physician."
        )
        assert MEDICAL_POLICY.validate_response(answer) is False

    def test_disclaimer_raises_confidence(self):
        with_disclaimer = (
            "The treatment described in the clinical guideline is rest. Consult your doctor."
        )
        without_disclaimer = "The treatment described in the clinical guideline is rest."
        context = "Clinical guideline: treatment is rest."

        assert (MEDICAL_POLICY.calculate_confidence_score(with_disclaimer, context)
                > MEDICAL_POLICY.calculate_confidence_score(without_disclaimer, context))


class TestEducationPolicy:

    def test_numbered_steps_accepted(self):
        answer = "Photosynthesis has three stages:\n1. Light absorption\n2. Water splitting\n3. Sugar synthesis"
        assert EDUCATION_POLICY.validate_response(answer) is True

    def test_example_counts_as_didactic(self):
        answer = "To understand fractions, consider for example splitting a pizza into eight equal slices."
        assert EDUCATION_POLICY.validate_response(answer) is True

    def test_missing_didactic_structure_rejected(self):
        answer = "Photosynthesis is a learning topic that students understand through careful study."
        assert EDUCATION_POLICY.validate_response(answer) is False

    def test_educator_authority_rejected(self):
        answer = "As an educator, I explain it in three steps:\n1. Read\n2. Practice\n3. Review"
        assert EDUCATION_POLICY.validate_response(answer) is False


class TestSalesPolicy:

    def test_priced_answer_accepted(self):
        answer = "The Pro plan price is $29 per month and includes priority support."
        assert SALES_POLICY.validate_response(answer) is True

    @pytest.mark.parametrize("promise", ["we guarantee", "lifetime", "unbeatable", "free forever"])
    def test_unfounded_promise_rejected(self, promise):
        answer = f"The Pro plan price is $29 per month and {promise} the support quality."
        assert SALES_POLICY.validate_response(answer) is False

    def test_promise_lowers_confidence(self):
        context = "Pro plan: price $29 per month, product includes support."
        plain = "The Pro plan price is $29 per month and includes priority support."
        promising = "The Pro plan price is $29 per month and we guarantee priority support."

        assert (SALES_POLICY.calculate_confidence_score(promising, context)
                < SALES_POLICY.calculate_confidence_score(plain, context))


class TestDefaultPolicy:

    @pytest.mark.parametrize("answer, expected", [
        ("Too short", False),
        ("x" * 3001, False),
        ("The answer is documented in the manual.", True),
        ("No information available.", False),
        ("Generally the manual says the deadline is thirty days.", True),
    ])
    def test_validate_response(self, answer, expected):
        assert DEFAULT_POLICY.validate_response(answer) is expected

    def test_confidence_score(self):
        assert DEFAULT_POLICY.calculate_confidence_score("x" * 60, "ctx") == pytest.approx(1.0)
        assert DEFAULT_POLICY.calculate_confidence_score("No information found.", "ctx") == pytest.approx(0.5)
