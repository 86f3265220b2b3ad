"""
AI Pipeline Models

Shapes for everything that crosses the LLM boundary:
- Intent: the local classification of a user turn
- ExtractedTransaction: what the model CLAIMS the user meant (untrusted)
- AssistantResponse: what the pipeline hands back to the caller

CRITICAL: ExtractedTransaction is PROPOSED data. It only becomes a
Transaction after the response validator has checked it against the ledger.
"""

import base64
import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finai.models.ledger import Transaction


class IntentType(str, Enum):
    """Purpose of a user utterance; selects prompt and validation path."""
    TRANSACTION = "transaction"
    QUERY = "query"
    ADVICE = "advice"
    PLANNING = "planning"
    ANALYSIS = "analysis"


class Intent(BaseModel):
    """Ephemeral classification result, produced fresh per turn."""

    type: IntentType
    confidence: float = Field(ge=0.0, le=1.0)

    @property
    def is_extraction(self) -> bool:
        """Extraction intents expect JSON back and run at low temperature."""
        return self.type == IntentType.TRANSACTION


class ImageAttachment(BaseModel):
    """A receipt photo sent alongside the user's text."""

    data: bytes
    mime_type: str = "image/jpeg"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class ExtractedItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    qty: float = 1
    price: int = 0


class ExtractedTransaction(BaseModel):
    """
    Transaction payload as the model returned it.

    Field aliases follow the JSON contract in the extraction prompt.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    amount: int
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    account_id: Optional[str] = Field(default=None, alias="accountId")
    to_account_id: Optional[str] = Field(default=None, alias="toAccountId")
    merchant: Optional[str] = None
    items: list[ExtractedItem] = Field(default_factory=list)
    requires_clarification: bool = Field(default=False, alias="requiresClarification")

    @field_validator("date", "account_id", "to_account_id", "merchant", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Models often emit "" instead of omitting an optional field."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("items", mode="before")
    @classmethod
    def null_items(cls, v):
        return v or []


class AssistantResponse(BaseModel):
    """
    Result of one user turn.

    success=False always comes with a short, displayable error string.
    Transactions are listed here for the caller to see what was written;
    an empty list means nothing touched the ledger.
    """

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    warning: Optional[str] = None
    intent: Optional[Intent] = None
    requires_clarification: bool = False
    transactions: list[Transaction] = Field(default_factory=list)
    data: Optional[Any] = None

    @property
    def display_text(self) -> str:
        """The one line a chat UI would show for this turn."""
        text = self.message if self.success else self.error
        text = text or ""
        if self.warning:
            text = f"{text}\n⚠️ {self.warning}" if text else f"⚠️ {self.warning}"
        return text


class Narrative(BaseModel):
    """Model-written advisory text, or its static stand-in."""

    text: str
    used_fallback: bool = False
