"""Ticker extraction from post text."""

import re

# Tickers that are also common English/forum words
COMMON_WORDS = {
    "A", "I", "AM", "AN", "AS", "AT", "BE", "BY", "DO", "GO", "HE",
    "IF", "IN", "IS", "IT", "ME", "MY", "NO", "OF", "OK", "ON", "OR",
    "SO", "TO", "UP", "US", "WE", "AI", "ALL", "FOR", "HAS", "HIM",
    "HIS", "HER", "HOW", "ITS", "NEW", "NOW", "OLD", "ONE", "OUR",
    "OUT", "OWN", "RUN", "SAY", "THE", "TOO", "TWO", "WAR", "WAY",
    "WHO", "WHY", "YOU", "ARE", "BIG", "CAN", "DID", "GOT", "HAD",
    "NOT", "PUT", "SEE", "TRY", "USE", "WAS", "BUY", "CALL", "EVER",
    "EDIT", "GOOD", "HUGE", "JUST", "LIKE", "LONG", "MAKE", "MOST",
    "MUCH", "NICE", "OPEN", "REAL", "SAYS", "SOME", "TELL", "THAT",
    "THEM", "THEN", "THIS", "TRUE", "VERY", "WELL", "WILL", "WITH",
    "WORK", "BEST", "HIGH", "FAST", "NEXT", "ONLY", "OVER", "SAME",
    "BEEN", "COME", "DOWN", "FROM", "HAVE", "HERE", "INTO", "MANY",
    "MORE", "MOVE", "NEED", "ONCE", "SAFE", "SELL", "PUMP", "DUMP",
    "YOLO", "HODL", "FOMO", "IMO", "IMHO", "TLDR", "EOD", "ATH", "DD",
    "CEO", "CFO", "IPO", "SEC", "ETF", "USA", "GDP", "CPI", "FED",
    "LOL", "WSB", "APE", "MOON", "BULL", "BEAR", "PUTS", "CALLS",
}

# Well-known tickers unlikely to be confused with words
KNOWN_TICKERS = {
    "AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "NVDA", "META", "TSLA",
    "JPM", "JNJ", "WMT", "PG", "MA", "UNH", "HD", "DIS", "PYPL",
    "NFLX", "ADBE", "CRM", "INTC", "AMD", "QCOM", "AVGO", "TXN",
    "MU", "AMAT", "LRCX", "KLAC", "MRVL", "SNPS", "CDNS", "ASML",
    "BA", "CAT", "GS", "MS", "BAC", "WFC", "BRK", "BLK",
    "COST", "TGT", "NKE", "SBUX", "MCD", "KO", "PEP",
    "LLY", "PFE", "MRK", "ABBV", "TMO", "ABT", "BMY", "GILD",
    "XOM", "CVX", "COP", "SLB", "OXY", "EOG", "PSX", "VLO",
    "SPY", "QQQ", "IWM", "DIA", "VTI", "VOO", "ARKK", "SQQQ", "TQQQ",
    "GME", "AMC", "PLTR", "SOFI", "RIVN", "LCID", "NIO", "COIN",
    "SNAP", "UBER", "LYFT", "ABNB", "DASH", "RBLX", "BB", "NOK",
}

_CASHTAG_RE = re.compile(r"\$([A-Za-z]{1,5})\b")
_ALLCAPS_RE = re.compile(r"\b([A-Z]{3,5})\b")


def extract_tickers(text: str) -> list[str]:
    """Extract stock tickers from text.

    Strategies, most to least confident:
    1. Cashtags ($AAPL), any case
    2. Known tickers on word boundaries
    3. All-caps words of 3-5 letters not in the common word list

    Returns:
        Sorted, deduplicated list of ticker symbols.
    """
    if not text:
        return []

    tickers: set[str] = set()

    for match in _CASHTAG_RE.finditer(text):
        ticker = match.group(1).upper()
        if ticker not in COMMON_WORDS or ticker in KNOWN_TICKERS:
            tickers.add(ticker)

    for match in re.finditer(r"\b([A-Z]{1,5})\b", text):
        word = match.group(1)
        if word in KNOWN_TICKERS:
            tickers.add(word)

    for match in _ALLCAPS_RE.finditer(text):
        word = match.group(1)
        if word not in COMMON_WORDS:
            tickers.add(word)

    return sorted(tickers)
