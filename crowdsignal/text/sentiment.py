"""Lexicon Sentiment Analysis.

Rule-based sentiment scoring tuned for retail-investor forums. Used as
the default sentiment source when no AI sentiment provider is wired in.
Scores fall in [-100, 100]; confidence in [0, 1].
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from crowdsignal.models import clamp

logger = logging.getLogger(__name__)


@dataclass
class SentimentReading:
    """Sentiment of one piece of text."""
    score: float = 0.0  # -100 to +100
    confidence: float = 0.0  # 0 to 1
    sentiment_words: list = field(default_factory=list)
    word_count: int = 0

    def __post_init__(self) -> None:
        self.score = clamp(self.score, -100.0, 100.0)
        self.confidence = clamp(self.confidence, 0.0, 1.0)

    def to_dict(self) -> dict:
        return {
            "score": round(self.score, 2),
            "confidence": round(self.confidence, 2),
            "word_count": self.word_count,
            "sentiment_words": self.sentiment_words[:10],
        }


@dataclass
class LexiconConfig:
    """Word lists and weights for lexicon scoring."""
    positive: dict = field(default_factory=lambda: {
        "moon": 3.0, "rocket": 3.0, "bullish": 2.5, "buying": 2.0, "buy": 2.0,
        "calls": 2.0, "long": 2.0, "pump": 2.5, "rally": 2.5, "surge": 2.5,
        "breakout": 2.5, "gains": 2.0, "profit": 2.0, "winning": 2.0,
        "good": 1.5, "great": 2.0, "excellent": 2.0, "amazing": 2.0,
        "strong": 1.5, "solid": 1.5, "positive": 1.5, "optimistic": 1.5,
        "confident": 1.5, "promising": 1.5, "potential": 1.0,
        "opportunity": 1.5, "upward": 1.5, "up": 1.0, "decent": 1.0,
        "nice": 1.0, "better": 1.0, "improved": 1.0, "recovery": 1.5,
        "rebound": 1.5, "beat": 2.0, "exceeded": 2.0, "outperform": 2.0,
        "upgrade": 2.0, "growth": 1.5, "expansion": 1.5, "dividend": 1.0,
        "diamond": 2.0, "hold": 1.0, "hodl": 1.5, "tendies": 2.0,
        "stonks": 1.5, "yolo": 1.5, "undervalued": 2.0, "squeeze": 2.0,
    })
    negative: dict = field(default_factory=lambda: {
        "crash": 3.0, "dump": 3.0, "bearish": 2.5, "selling": 2.0, "sell": 2.0,
        "puts": 2.0, "short": 2.0, "collapse": 3.0, "plummet": 3.0, "tank": 3.0,
        "disaster": 3.0, "terrible": 3.0, "awful": 3.0, "horrible": 3.0,
        "bad": 1.5, "poor": 1.5, "weak": 1.5, "negative": 1.5,
        "pessimistic": 1.5, "concerned": 1.0, "worried": 1.5, "doubt": 1.0,
        "risk": 1.0, "risky": 1.5, "dangerous": 2.0, "volatile": 1.0,
        "unstable": 1.5, "declining": 1.5, "down": 1.0, "meh": 0.5,
        "disappointing": 1.5, "uncertain": 1.0, "miss": 2.0, "missed": 2.0,
        "underperform": 2.0, "downgrade": 2.0, "loss": 1.5, "losses": 1.5,
        "debt": 1.0, "bankruptcy": 3.0, "layoffs": 2.0, "lawsuit": 1.5,
        "scandal": 2.5, "fraud": 3.0, "bagholder": 2.0, "rekt": 2.5,
        "rug": 3.0, "scam": 3.0, "overvalued": 2.0, "bubble": 2.0,
    })
    intensifiers: dict = field(default_factory=lambda: {
        "very": 1.5, "extremely": 2.0, "super": 1.5, "really": 1.3,
        "totally": 1.5, "absolutely": 1.8, "completely": 1.8, "highly": 1.5,
        "incredibly": 2.0, "massively": 2.0, "seriously": 1.3,
        "definitely": 1.3, "quite": 1.2, "pretty": 1.2, "somewhat": 0.8,
        "slightly": 0.7, "kinda": 0.8, "maybe": 0.6, "probably": 0.9,
        "possibly": 0.7, "might": 0.6,
    })
    negations: frozenset = frozenset({
        "not", "no", "never", "none", "nothing", "neither", "nor",
        "cant", "cannot", "dont", "doesnt", "didnt", "wont", "isnt",
        "arent", "wasnt", "werent", "shouldnt", "wouldnt", "havent",
    })
    emoji: dict = field(default_factory=lambda: {
        "\U0001F680": 3.0,  # rocket
        "\U0001F319": 3.0,  # crescent moon
        "\U0001F4C8": 2.5,  # chart up
        "\U0001F48E": 2.0,  # gem
        "\U0001F525": 2.0,  # fire
        "\U0001F4B0": 2.0,  # money bag
        "\U0001F911": 2.0,  # money face
        "\U0001F44D": 1.5,  # thumbs up
        "\U0001F4AA": 1.5,  # flexed biceps
        "\U0001F4C9": -2.5,  # chart down
        "\U0001F4B8": -2.0,  # money with wings
        "\U0001F62D": -2.0,  # crying
        "\U0001F631": -2.0,  # screaming
        "\U0001F44E": -1.5,  # thumbs down
        "\U0001F480": -2.0,  # skull
        "\U0001F9F8": -1.5,  # teddy bear
    })
    negation_window: int = 2
    negation_damping: float = 0.8
    max_word_weight: float = 3.0


_TOKEN_RE = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, split on whitespace."""
    return [t for t in _TOKEN_RE.sub(" ", text.lower().replace("'", "")).split() if t]


class LexiconSentimentAnalyzer:
    """Keyword/emoji sentiment analyzer.

    Example:
        analyzer = LexiconSentimentAnalyzer()
        reading = analyzer.analyze("Extremely bullish, buying calls", title="$AAPL")
        print(reading.score, reading.confidence)
    """

    def __init__(self, config: Optional[LexiconConfig] = None):
        self.config = config or LexiconConfig()

    def analyze(self, text: str, title: str = "") -> SentimentReading:
        combined = f"{title} {text}".strip()
        if not combined:
            return SentimentReading()

        cfg = self.config
        words = tokenize(combined)
        positive = 0.0
        negative = 0.0
        hits = []

        emoji_score = self._emoji_score(combined)
        positive += max(0.0, emoji_score)
        negative += max(0.0, -emoji_score)

        for i, word in enumerate(words):
            if word in cfg.positive:
                base = cfg.positive[word]
            elif word in cfg.negative:
                base = -cfg.negative[word]
            else:
                continue

            window = words[max(0, i - cfg.negation_window):i]
            negated = any(w in cfg.negations for w in window)
            intensifier = next(
                (cfg.intensifiers[w] for w in window if w in cfg.intensifiers), 1.0
            )

            score = base * intensifier
            if negated:
                score = -score * cfg.negation_damping

            if score > 0:
                positive += score
            else:
                negative += -score
            hits.append({"word": word, "score": round(score, 2), "negated": negated})

        total = len(words)
        max_possible = total * cfg.max_word_weight
        normalized = (positive - negative) / max_possible * 100 if max_possible > 0 else 0.0

        ratio = len(hits) / max(1, total)
        strength = sum(abs(h["score"]) for h in hits) / len(hits) if hits else 0.0
        confidence = min(1.0, ratio * 2 + strength / 10)

        return SentimentReading(
            score=round(normalized, 2),
            confidence=round(confidence, 2),
            sentiment_words=hits,
            word_count=total,
        )

    def _emoji_score(self, text: str) -> float:
        return sum(text.count(e) * w for e, w in self.config.emoji.items())
