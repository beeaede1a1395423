"""
Pydantic model for transaction records shared by every wire format.

Field aliases are the wire keys used by both the text block format and the
CSV header. The alias order is the canonical field order on the wire.
"""
import re
from enum import Enum
from typing import Annotated, Tuple

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1

_DECIMAL_RE = re.compile(r"[0-9]+")


class TransactionType(str, Enum):
    """Kind of money movement."""
    DEPOSIT = "DEPOSIT"
    TRANSFER = "TRANSFER"
    WITHDRAWAL = "WITHDRAWAL"


class TransactionStatus(str, Enum):
    """Processing outcome of a transaction."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


def parse_unsigned(v):
    """
    Accept wire text only when it is a plain ASCII decimal number.

    Signs, underscores, whitespace and fractions are rejected so that
    "-5" or "+5" never reach int coercion. Non-string input passes through.
    """
    if isinstance(v, str) and not _DECIMAL_RE.fullmatch(v):
        raise ValueError(f"expected unsigned decimal integer, got {v!r}")
    return v


def at_most(limit: int):
    """Upper bound check that also works for limits beyond 64-bit signed."""
    def check(v: int) -> int:
        if v > limit:
            raise ValueError(f"value must be at most {limit}")
        return v
    return check


UInt32 = Annotated[int, BeforeValidator(parse_unsigned), Field(ge=0), AfterValidator(at_most(U32_MAX))]
UInt64 = Annotated[int, BeforeValidator(parse_unsigned), Field(ge=0), AfterValidator(at_most(U64_MAX))]


class TransactionRecord(BaseModel):
    """A single financial transaction as stored on the wire."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    id: UInt32 = Field(..., alias="TX_ID")
    kind: TransactionType = Field(..., alias="TX_TYPE")
    from_user_id: UInt32 = Field(..., alias="FROM_USER_ID")
    to_user_id: UInt32 = Field(..., alias="TO_USER_ID")
    amount: UInt64 = Field(..., alias="AMOUNT")
    timestamp: UInt64 = Field(..., alias="TIMESTAMP", description="Epoch milliseconds")
    status: TransactionStatus = Field(..., alias="STATUS")
    description: str = Field(..., alias="DESCRIPTION", description="Free text, kept verbatim")

    def to_wire(self) -> Tuple[Tuple[str, str], ...]:
        """Return (wire key, wire text) pairs in canonical order."""
        pairs = []
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            pairs.append((field.alias, value.value if isinstance(value, Enum) else str(value)))
        return tuple(pairs)


# Closed set of wire keys, in canonical order
WIRE_FIELDS: Tuple[str, ...] = tuple(
    field.alias for field in TransactionRecord.model_fields.values()
)
