"""Text signal extraction: tickers and lexicon sentiment."""

from crowdsignal.text.tickers import extract_tickers, COMMON_WORDS, KNOWN_TICKERS
from crowdsignal.text.sentiment import (
    LexiconSentimentAnalyzer,
    LexiconConfig,
    SentimentReading,
    tokenize,
)

__all__ = [
    "extract_tickers",
    "COMMON_WORDS",
    "KNOWN_TICKERS",
    "LexiconSentimentAnalyzer",
    "LexiconConfig",
    "SentimentReading",
    "tokenize",
]
