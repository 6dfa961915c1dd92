"""Shared types for the planning pipeline."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)

from solplan.errors import InvalidRequestError

NATIVE_MINT = "So11111111111111111111111111111111111111112"
NATIVE_TICKER = "SOL"


class ActionType(Enum):
    """Actions the planner knows how to describe."""

    SWAP = "swap"
    TRANSFER = "transfer"
    STAKE = "stake"
    UNSTAKE = "unstake"
    LEND = "lend"
    BORROW = "borrow"
    NFT_BUY = "nft_buy"
    NFT_SELL = "nft_sell"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "ActionType":
        """Map extractor output onto the enum, falling back to ``UNKNOWN``."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.UNKNOWN


class Mode(Enum):
    LITE = "lite"
    PRO = "pro"


class TokenRole(Enum):
    SOURCE = "source"
    DESTINATION = "destination"


class Feasibility(Enum):
    """Executability verdict, ordered high > medium > low.

    Validation starts at ``HIGH`` and only ever calls :meth:`downgrade`, so
    the verdict can move toward ``LOW`` but never back up.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _FEASIBILITY_RANK[self]

    def downgrade(self, to: "Feasibility") -> "Feasibility":
        """Join toward ``to``: applies only when ``to`` ranks lower."""
        return to if to.rank < self.rank else self


_FEASIBILITY_RANK = {
    Feasibility.HIGH: 2,
    Feasibility.MEDIUM: 1,
    Feasibility.LOW: 0,
}


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _as_number(value: Any) -> Optional[Union[int, float]]:
    """Coerce an untrusted scalar into a finite number, or ``None``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return value if math.isfinite(value) else None
        except OverflowError:
            return None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(parsed):
            return None
        return int(parsed) if parsed.is_integer() else parsed
    return None


def _as_rows(value: Any, name: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Extraction field '{name}' must be an array")
    return value


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class TokenRef:
    """Token mentioned in the prompt and its role in the action."""

    ticker: str
    role: TokenRole


@dataclass(frozen=True)
class AmountRef:
    """Numeric amount paired with the ticker it was stated in."""

    value: Union[int, float]
    ticker: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "ticker": self.ticker}


@dataclass
class ExtractedEntities:
    """Structured intent returned by the entity extractor.

    The extractor is a language model, so instances built through
    :meth:`from_payload` are best-effort: malformed rows are dropped rather
    than rejected and confidence is clamped to ``[0, 1]``. Only a payload
    that is not an object, or a row list that is not an array, raises
    ``ValueError``.
    """

    action_type: ActionType
    tokens: List[TokenRef] = field(default_factory=list)
    amounts: List[AmountRef] = field(default_factory=list)
    destination: Optional[str] = None
    slippage_bps: Optional[Union[int, float]] = None
    priority_fee_lamports: Optional[Union[int, float]] = None
    protocol_preference: Optional[str] = None
    raw_confidence: float = 0.0

    @classmethod
    def from_payload(cls, data: Any) -> "ExtractedEntities":
        if not isinstance(data, dict):
            raise ValueError("Extraction payload must be a JSON object")

        tokens: List[TokenRef] = []
        for row in _as_rows(data.get("tokens"), "tokens"):
            if not isinstance(row, dict):
                continue
            ticker = _as_text(row.get("ticker"))
            role = row.get("role")
            if ticker is None or role not in ("source", "destination"):
                continue
            tokens.append(TokenRef(ticker=ticker, role=TokenRole(role)))

        amounts: List[AmountRef] = []
        for row in _as_rows(data.get("amounts"), "amounts"):
            if not isinstance(row, dict):
                continue
            value = _as_number(row.get("value"))
            ticker = _as_text(row.get("ticker"))
            if value is None or ticker is None:
                continue
            amounts.append(AmountRef(value=value, ticker=ticker))

        confidence = _as_number(data.get("raw_confidence"))
        confidence = 0.0 if confidence is None else min(max(float(confidence), 0.0), 1.0)

        return cls(
            action_type=ActionType.parse(data.get("action_type")),
            tokens=tokens,
            amounts=amounts,
            destination=_as_text(data.get("destination")),
            slippage_bps=_as_number(data.get("slippage_bps")),
            priority_fee_lamports=_as_number(data.get("priority_fee_lamports")),
            protocol_preference=_as_text(data.get("protocol_preference")),
            raw_confidence=confidence,
        )

    def first_token(self, role: TokenRole) -> Optional[TokenRef]:
        return next((t for t in self.tokens if t.role is role), None)

    def amount_for(self, ticker: str) -> Optional[Union[int, float]]:
        """Return the first amount stated in ``ticker`` (case-insensitive)."""
        wanted = ticker.upper()
        for amount in self.amounts:
            if amount.ticker.upper() == wanted:
                return amount.value
        return None


@dataclass(frozen=True)
class TokenRegistryEntry:
    """Canonical on-chain asset record."""

    ticker: str
    mint: str
    decimals: int
    name: str


@dataclass
class ValidationResult:
    entities: ExtractedEntities
    resolved_tokens: Dict[str, TokenRegistryEntry]
    safety_flags: List[str]
    user_confirmations_needed: List[str]
    feasibility: Feasibility


@dataclass
class ActionStep:
    """One executable step of a plan (never a signable transaction)."""

    step: int
    step_type: ActionType
    protocol_hint: Optional[str]
    inputs: Dict[str, Any]
    outputs: Dict[str, Any]
    required_data: List[str]
    safety_flags: List[str]
    user_confirmations_needed: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "step_type": self.step_type.value,
            "protocol_hint": self.protocol_hint,
            "inputs": dict(self.inputs),
            "outputs": dict(self.outputs),
            "required_data": list(self.required_data),
            "safety_flags": list(self.safety_flags),
            "user_confirmations_needed": list(self.user_confirmations_needed),
        }


def empty_extracted_entities() -> Dict[str, Any]:
    return {
        "amounts": [],
        "tickers": [],
        "mints": {},
        "slippage_bps": None,
        "priority_fee": None,
        "destinations": [],
    }


@dataclass
class ActionPlan:
    """Assembled plan plus the safety metadata that justifies it."""

    intent: str
    action_plan: List[ActionStep]
    extracted_entities: Dict[str, Any]
    feasibility: Feasibility
    risk_level: RiskLevel
    reasons: List[str]
    share_text: str

    @classmethod
    def blocked(cls, reason: str) -> "ActionPlan":
        """Fixed plan returned when the danger gate rejects a prompt."""
        return cls(
            intent="blocked",
            action_plan=[],
            extracted_entities=empty_extracted_entities(),
            feasibility=Feasibility.LOW,
            risk_level=RiskLevel.HIGH,
            reasons=[reason],
            share_text="",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent,
            "action_plan": [step.to_dict() for step in self.action_plan],
            "extracted_entities": self.extracted_entities,
            "feasibility": self.feasibility.value,
            "risk_level": self.risk_level.value,
            "reasons": list(self.reasons),
            "share_text": self.share_text,
        }


@dataclass
class QuoteSummary:
    source: str
    input_amount: float
    input_token: str
    output_amount_estimate: float
    output_token: str
    price_impact_pct: float
    route_description: str
    fetched_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationSummary:
    """Cost estimate derived from a quote; no on-chain simulation is run."""

    status: str
    sol_change: float
    token_changes: List[Dict[str, str]]
    estimated_compute_units: int
    note: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Constraints(BaseModel):
    """Optional user policy applied during validation."""

    model_config = ConfigDict(extra="ignore")

    # Numbers keep the caller's int or float type; cache keys serialise them as given
    max_slippage_bps: Optional[Union[int, float]] = None
    max_fee_sol: Optional[Union[int, float]] = None
    allow_unknown_tokens: StrictBool = False
    denylist_mints: List[StrictStr] = Field(default_factory=list)

    @field_validator("max_slippage_bps", "max_fee_sol")
    @classmethod
    def _non_negative(
        cls, value: Optional[Union[int, float]]
    ) -> Optional[Union[int, float]]:
        if value is not None and value < 0:
            raise ValueError("must be greater than or equal to 0")
        return value


class NLPlanRequest(BaseModel):
    """Validated request accepted by the pipeline."""

    model_config = ConfigDict(extra="ignore")

    prompt: StrictStr
    wallet: Optional[StrictStr] = None
    mode: Mode = Mode.LITE
    constraints: Optional[Constraints] = None

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt cannot be empty")
        return value

    @field_validator("wallet")
    @classmethod
    def _blank_wallet_is_absent(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> Mode:
        # Unrecognised modes degrade to the cheaper lite plan
        if isinstance(value, Mode):
            return value
        return Mode.PRO if value == Mode.PRO.value else Mode.LITE

    @classmethod
    def from_payload(cls, payload: Any) -> "NLPlanRequest":
        """Validate a decoded JSON body, raising :class:`InvalidRequestError`."""
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRequestError(_describe_validation_error(exc)) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:  # pragma: no cover - pydantic always reports at least one
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    message = first.get("msg", "invalid value")
    if location == "prompt" and "empty" in message.lower():
        return "Prompt cannot be empty"
    return f'Missing or invalid "{location}" field: {message}'


NLPlanResponse = Dict[str, Any]


__all__ = [
    "ActionPlan",
    "ActionStep",
    "ActionType",
    "AmountRef",
    "Constraints",
    "ExtractedEntities",
    "Feasibility",
    "Mode",
    "NATIVE_MINT",
    "NATIVE_TICKER",
    "NLPlanRequest",
    "NLPlanResponse",
    "QuoteSummary",
    "RiskLevel",
    "SimulationSummary",
    "TokenRef",
    "TokenRegistryEntry",
    "TokenRole",
    "ValidationResult",
    "empty_extracted_entities",
]
