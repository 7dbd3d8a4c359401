"""Tests for ticker extraction, lexicon sentiment and author reputation.

3 test classes covering cashtag/all-caps extraction, keyword and emoji
sentiment with negation, and reputation scoring with suspicious flags.
"""

import pytest


# ═══════════════════════════════════════════════════════════════════════
# Test: Ticker extraction
# ═══════════════════════════════════════════════════════════════════════


class TestExtractTickers:

    def test_cashtags_any_case(self):
        from crowdsignal.text import extract_tickers
        assert extract_tickers("loading up on $xyz and $Abc today") == ["ABC", "XYZ"]

    def test_all_caps_words(self):
        from crowdsignal.text import extract_tickers
        assert "QRST" in extract_tickers("QRST is about to run")

    def test_common_words_ignored(self):
        from crowdsignal.text import extract_tickers
        assert extract_tickers("BUY BUY BUY to the MOON, YOLO") == []

    def test_known_tickers(self):
        from crowdsignal.text import extract_tickers
        assert extract_tickers("AAPL and TSLA both green") == ["AAPL", "TSLA"]

    def test_deduplicated_and_sorted(self):
        from crowdsignal.text import extract_tickers
        assert extract_tickers("$XYZ then $xyz then $ABC") == ["ABC", "XYZ"]

    def test_empty(self):
        from crowdsignal.text import extract_tickers
        assert extract_tickers("") == []
        assert extract_tickers("nothing to see here") == []


# ═══════════════════════════════════════════════════════════════════════
# Test: Lexicon sentiment
# ═══════════════════════════════════════════════════════════════════════


class TestLexiconSentiment:

    def test_positive_text(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        reading = LexiconSentimentAnalyzer().analyze("very bullish, strong growth and great gains")
        assert reading.score > 0
        assert reading.confidence > 0
        assert reading.word_count == 7

    def test_negative_text(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        reading = LexiconSentimentAnalyzer().analyze("this is a scam, total fraud, going to crash")
        assert reading.score < 0

    def test_negation_flips_sign(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        analyzer = LexiconSentimentAnalyzer()
        plain = analyzer.analyze("bullish on this one")
        negated = analyzer.analyze("not bullish on this one")
        assert plain.score > 0
        assert negated.score < 0
        assert negated.sentiment_words[0]["negated"] is True

    def test_emoji_counts(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        reading = LexiconSentimentAnalyzer().analyze("to the \U0001F680\U0001F680")
        assert reading.score > 0

    def test_title_included(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        reading = LexiconSentimentAnalyzer().analyze("", title="bearish")
        assert reading.score < 0

    def test_empty_is_neutral(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        reading = LexiconSentimentAnalyzer().analyze("")
        assert reading.score == 0
        assert reading.confidence == 0

    def test_bounds(self):
        from crowdsignal.text import LexiconSentimentAnalyzer
        reading = LexiconSentimentAnalyzer().analyze("moon " * 50 + "\U0001F680" * 200)
        assert -100 <= reading.score <= 100
        assert 0 <= reading.confidence <= 1

    def test_tokenize(self):
        from crowdsignal.text import tokenize
        assert tokenize("Don't SELL, it's fine!") == ["dont", "sell", "its", "fine"]


# ═══════════════════════════════════════════════════════════════════════
# Test: Reputation
# ═══════════════════════════════════════════════════════════════════════


class TestReputation:

    def test_quality_score_bounds(self):
        from crowdsignal.reputation import compute_quality_score
        assert compute_quality_score(0, 0) == 0
        assert compute_quality_score(10_000, 10**9, 1.0, 100.0) == 100

    def test_age_saturates_at_one_year(self):
        from crowdsignal.reputation import compute_quality_score
        assert compute_quality_score(365, 0) == compute_quality_score(3650, 0)

    @pytest.mark.parametrize("score,tier", [
        (95, "legend"), (80, "expert"), (70, "advanced"), (50, "intermediate"), (10, "novice"),
    ])
    def test_tiers(self, score, tier):
        from crowdsignal.reputation import tier_for_score
        assert tier_for_score(score).value == tier

    def test_profile_from_activity(self):
        from crowdsignal.reputation import AuthorActivity, profile_from_activity
        activity = AuthorActivity(
            username="veteran", account_age_days=2000, karma=500_000,
            finance_post_frequency=0.9, predictions_made=20, correct_predictions=16,
        )
        profile = profile_from_activity(activity)
        assert profile.username == "veteran"
        assert profile.quality_score >= 80
        assert profile.is_expert

    def test_suspicious_new_account(self):
        from crowdsignal.reputation import AuthorActivity, suspicious_activity_flags
        activity = AuthorActivity(username="bot", account_age_days=5, post_count=300)
        flags = suspicious_activity_flags(activity)
        assert "new_account_high_activity" in flags
        assert "extremely_high_frequency" in flags

    def test_clean_account_has_no_flags(self):
        from crowdsignal.reputation import AuthorActivity, suspicious_activity_flags
        activity = AuthorActivity(username="ok", account_age_days=900, karma=5000, post_count=200)
        assert suspicious_activity_flags(activity) == []
