"""Tests for stage 2 signal extraction and the stage 4 fallback score."""

import pytest

from dealgate.models.classification import SignalVector
from dealgate.services.signal_extractor import extract_signals, fallback_score
from samples import (
    BRAND_CREATOR_PAYMENT_TEXT,
    BRAND_DEAL_TEXT,
    BRAND_PAYMENT_TEXT,
    SINGLE_SIGNAL_TEXT,
)


class TestExtractSignals:
    """Signal detection over the six categories."""

    def test_brand_deal_text(self):
        signals = extract_signals(BRAND_DEAL_TEXT)

        assert signals.platform is True
        assert signals.brand is True
        assert signals.deliverable is True
        assert signals.currency_amount is True
        assert signals.creator is False
        assert signals.payment is False

    def test_matched_and_missing_lists(self):
        signals = extract_signals(BRAND_DEAL_TEXT)

        assert signals.matched == [
            "Content Platform", "Brand/Sponsor", "Deliverables", "Currency Amount",
        ]
        assert signals.missing == ["Influencer/Creator", "Payment/Compensation"]
        assert signals.matched_count == 4

    def test_case_insensitive(self):
        signals = extract_signals("INSTAGRAM INFLUENCER")

        assert signals.platform is True
        assert signals.creator is True

    @pytest.mark.parametrize(
        "text,signal",
        [
            ("Posting on TikTok weekly", "platform"),
            ("Shorts and story placements", "platform"),
            ("Our influencer agrees", "creator"),
            ("Campaign launch in May", "brand"),
            ("Remuneration shall be", "payment"),
            ("The amount payable is", "payment"),
            ("The posting schedule is attached", "deliverable"),
            ("Total ₹25,000", "currency_amount"),
            ("Fifty thousand rupees only", "currency_amount"),
            ("Settled in INR within a week", "currency_amount"),
        ],
    )
    def test_individual_keywords(self, text, signal):
        signals = extract_signals(text)

        assert getattr(signals, signal) is True
        assert signals.matched_count == 1

    def test_currency_needs_word_boundary(self):
        """'rs.' at the end of ordinary words is not a rupee amount."""
        signals = extract_signals("The term runs for two years. Thanks to all partners.")

        assert signals.currency_amount is False

    def test_no_signals(self):
        signals = extract_signals("The weather in Shimla was cold and clear all week.")

        assert signals.matched == []
        assert signals.matched_count == 0
        assert signals.stage2_pass is False


class TestStage2Threshold:
    """stage2_pass requires at least two matched signals."""

    def test_exactly_one_signal_fails(self):
        signals = extract_signals(SINGLE_SIGNAL_TEXT)

        assert signals.matched == ["Brand/Sponsor"]
        assert signals.stage2_pass is False

    def test_exactly_two_signals_pass(self):
        signals = extract_signals(BRAND_PAYMENT_TEXT)

        assert signals.matched == ["Brand/Sponsor", "Payment/Compensation"]
        assert signals.stage2_pass is True

    def test_threshold_counts_currency(self):
        signals = SignalVector(brand=True, currency_amount=True)

        assert signals.matched_count == 2
        assert signals.stage2_pass is True


class TestFallbackScore:
    """Fallback scoring re-checks payment, deliverable, brand and creator."""

    def test_three_of_four(self):
        assert fallback_score(BRAND_CREATOR_PAYMENT_TEXT) == 3

    def test_two_of_four(self):
        assert fallback_score(BRAND_PAYMENT_TEXT) == 2

    def test_all_four(self):
        text = "The brand pays the influencer an amount for two posts."
        assert fallback_score(text) == 4

    def test_broader_keywords_than_stage2(self):
        """'amount' and 'content' count in the fallback but not in stage 2."""
        text = "The amount covers all content."
        signals = extract_signals(text)

        assert signals.payment is False
        assert signals.deliverable is False
        assert fallback_score(text) == 2

    def test_zero(self):
        assert fallback_score("Nothing relevant here at all.") == 0
