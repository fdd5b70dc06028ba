"""
One-line leaderboard reasons.

Reasons come from an optional narrative generator (an LLM behind the
NarrativeGenerator protocol) with deterministic template fallbacks. The
fallbacks depend only on their inputs, so identical inputs always produce
identical strings.
"""

import asyncio
import json
import logging
import re
from typing import Any, Protocol

from openai import AsyncOpenAI, OpenAIError

from dilution_radar.models import PhaseMetrics, TickerSnapshot, round_half_up
from dilution_radar.scoring.bankruptcy import BankruptcyMetrics
from dilution_radar.utils.sanitize import sanitize_reason

logger = logging.getLogger(__name__)

REASON_MAX_LENGTH = 80
SEPARATOR = " · "
ARROW = " → "

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class NarrativeError(Exception):
    """Raised when the narrative generator cannot produce usable output."""


class NarrativeGenerator(Protocol):
    async def generate(self, items: list[dict[str, Any]]) -> dict[str, str]:
        """Return ticker -> reason for the given metric records."""
        ...


SHELF_INSTRUCTIONS = """Generate exactly one short reason line for each ticker explaining why this shelf filing is concerning.

Format MUST be: "metric1 · metric2 → meaning clause"

Rules:
1. Use exactly 2 quantitative metrics from: Xmo runway, debt Xx cash, $XM cap, $XM/mo burn, filed Xd ago
2. End with a short meaning clause (2-5 words) and never repeat a meaning clause within the list
3. For market cap under $1M say "ultra-microcap funding likely"
4. For runway over 6 months with a high score say "early shelf positioning"
5. Keep each line under 60 characters"""

DILUTION_INSTRUCTIONS = """Generate exactly one short reason line for each ticker with a recent at-the-market (ATM) offering filing.

Format MUST be: "metric1 · metric2 → meaning clause"

Rules:
1. Use exactly 2 quantitative metrics from: Xmo runway, -X% off peak, +X% peak, ATM filed Xd ago, debt Xx cash
2. End with a short meaning clause (2-5 words) about dilution pressure; vary clauses across tickers
3. Keep each line under 60 characters"""

BANKRUPTCY_INSTRUCTIONS = """Generate exactly one short reason line for each ticker on an insolvency watchlist.

Format MUST be: "metric1 · metric2 → meaning clause"

Rules:
1. Use 2 metrics when available from: Xmo runway, debt Xx cash, $XM/mo burn, interest coverage Xx
2. End with a short meaning clause (2-5 words) about solvency; vary clauses across tickers
3. If runway is long but the score is high, the clause must say what drives the risk
4. Keep each line under 60 characters"""


class OpenAINarrativeGenerator:
    """
    Batch reason generator backed by the OpenAI chat completions API.

    All tickers are sent in one request; the reply must contain a JSON object
    mapping ticker to reason. Any API error, timeout or malformed reply raises
    NarrativeError.
    """

    def __init__(
        self,
        api_key: str,
        instructions: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
    ):
        self.instructions = instructions
        self.model = model
        self.timeout = timeout
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def build_prompt(self, items: list[dict[str, Any]]) -> str:
        return (
            f"{self.instructions}\n\nTickers to analyze:\n{json.dumps(items, indent=2)}\n\n"
            'Return ONLY a valid JSON object mapping ticker to reason string, e.g. '
            '{"TICK1": "2.1mo runway · debt 5.2x cash → dilution imminent"}'
        )

    async def generate(self, items: list[dict[str, Any]]) -> dict[str, str]:
        if not items:
            return {}
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": self.build_prompt(items)}],
                    temperature=0.7,
                    max_tokens=1000,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NarrativeError(f"Narrative request timed out after {self.timeout}s") from e
        except OpenAIError as e:
            raise NarrativeError(f"Narrative request failed: {e}") from e

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        return parse_reason_map(content)


def parse_reason_map(content: str) -> dict[str, str]:
    """Extract the first JSON object in a model reply as ticker -> reason."""
    match = _JSON_OBJECT.search(content or "")
    if not match:
        raise NarrativeError("No JSON object in narrative reply")
    try:
        payload = json.loads(match.group(0))
    except ValueError as e:
        raise NarrativeError(f"Invalid JSON in narrative reply: {e}") from e
    if not isinstance(payload, dict):
        raise NarrativeError("Narrative reply is not a JSON object")
    return {str(k): v for k, v in payload.items() if isinstance(v, str)}


async def request_reasons(
    generator: NarrativeGenerator | None,
    items: list[dict[str, Any]],
) -> dict[str, str]:
    """
    Call the generator and keep only clean, bounded reasons.

    Returns an empty mapping when there is no generator or it fails; callers
    fill the gaps with fallbacks.
    """
    if generator is None or not items:
        return {}
    try:
        raw = await generator.generate(items)
    except NarrativeError as e:
        logger.warning(f"Narrative generation failed, using fallbacks: {e}")
        return {}

    reasons: dict[str, str] = {}
    for ticker, text in raw.items():
        cleaned = sanitize_reason(text, REASON_MAX_LENGTH)
        if cleaned:
            reasons[ticker.upper()] = cleaned
    return reasons


def _lt(value: float | None, threshold: float) -> bool:
    return value is not None and value < threshold


def _gt(value: float | None, threshold: float) -> bool:
    return value is not None and value > threshold


def _join(parts: list[str], meaning: str) -> str:
    if not parts:
        return meaning
    return SEPARATOR.join(parts[:2]) + ARROW + meaning


def shelf_fallback_reason(snapshot: TickerSnapshot, days_since_filing: int) -> str:
    """
    "metric1 · metric2 → meaning" for a shelf filer.

    Metrics in priority order: runway under 24 months, debt/cash above 1,
    market cap under $500M, then days since filing.
    """
    runway = snapshot.runway_months
    debt_ratio = snapshot.debt_cash_ratio
    market_cap = snapshot.market_cap

    parts: list[str] = []
    if _lt(runway, 24):
        parts.append(f"{runway:.1f}mo runway")
    if _gt(debt_ratio, 1):
        parts.append(f"debt {debt_ratio:.1f}x cash")
    if len(parts) < 2 and _lt(market_cap, 500e6):
        parts.append(f"${round_half_up(market_cap / 1e6)}M cap")
    if len(parts) < 2:
        parts.append(f"filed {days_since_filing}d ago")

    if _lt(runway, 1):
        meaning = "dilution imminent"
    elif _lt(runway, 3) and _gt(debt_ratio, 10):
        meaning = "emergency capital needed"
    elif _lt(market_cap, 1e6):
        meaning = "ultra-microcap funding likely"
    elif _gt(runway, 6):
        meaning = "early shelf positioning"
    elif _gt(debt_ratio, 20):
        meaning = "high re-pricing risk"
    else:
        meaning = "dilution setup forming"
    return _join(parts, meaning)


def dilution_fallback_reason(
    snapshot: TickerSnapshot,
    phase: PhaseMetrics | None,
    days_since_filing: int,
) -> str:
    """
    Reason for an ATM filer: the two highest-priority metrics (ties keep
    runway, pullback, filing age, debt order) and a meaning clause picked
    from the price phase and distress.
    """
    runway = snapshot.runway_months
    debt_ratio = snapshot.debt_cash_ratio
    pullback = phase.pullback_pct if phase is not None else None

    metrics: list[tuple[int, str]] = []
    if runway is not None and runway <= 12:
        metrics.append((10 if runway <= 3 else 8, f"{runway:.1f}mo runway"))
    if pullback is not None and pullback >= 10:
        metrics.append((9 if pullback >= 30 else 7, f"-{pullback:.0f}% off peak"))
    if days_since_filing <= 7:
        metrics.append((9 if days_since_filing <= 3 else 5, f"ATM filed {days_since_filing}d ago"))
    if _gt(debt_ratio, 2):
        metrics.append((9 if debt_ratio > 5 else 6, f"debt {debt_ratio:.1f}x cash"))
    metrics.sort(key=lambda m: m[0], reverse=True)

    if pullback is not None and pullback >= 30:
        meaning = "rally unwinding"
    elif phase is not None and phase.is_rolling_over:
        meaning = "momentum reversed"
    elif pullback is not None and pullback >= 10:
        meaning = "fading after spike"
    elif (runway is not None and runway <= 3) or _gt(debt_ratio, 5):
        meaning = "heavy dilution pressure"
    else:
        meaning = "dilution overhang building"

    if not metrics:
        return f"ATM filed{ARROW}{meaning}"
    return _join([text for _, text in metrics], meaning)


def bankruptcy_fallback_reason(metrics: BankruptcyMetrics | None) -> str:
    """Reason for an insolvency watchlist entry from runway, leverage and burn."""
    if metrics is None:
        return "financial distress deepening"

    runway = metrics.runway_months
    multiple = metrics.debt_to_cash_multiple
    burn = metrics.monthly_burn

    ranked: list[tuple[int, str]] = []
    if runway <= 18:
        ranked.append((10 if runway <= 3 else 8, f"{runway:.1f}mo runway"))
    if multiple > 1.5:
        ranked.append((9 if multiple > 5 else 7, f"debt {multiple:.1f}x cash"))
    if burn > 1_000_000:
        burn_m = burn / 1_000_000
        ranked.append((8 if burn_m >= 10 else 6, f"${burn_m:.1f}M/mo burn"))
    ranked.sort(key=lambda m: m[0], reverse=True)

    if runway <= 3:
        meaning = "insolvency pressure rising"
    elif multiple > 5:
        meaning = "solvency risk rising"
    elif burn >= 10_000_000:
        meaning = "cash position deteriorating"
    elif runway <= 12:
        meaning = "liquidity tightening"
    else:
        meaning = "financial distress deepening"
    return _join([text for _, text in ranked], meaning)
