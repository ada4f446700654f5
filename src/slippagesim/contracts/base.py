"""Base configuration for record contracts.

All contracts inherit from ContractBase which enforces:
- schema_version is present
- Extra fields are forbidden
- Models are frozen once built
- Decimal fields parse from str/int/Decimal, never float arithmetic
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = "1.0.0"


class ContractBase(BaseModel):
    """Base class for immutable record contracts."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    schema_version: str = Field(
        default=SCHEMA_VERSION,
        description="Contract schema version",
    )


def parse_decimal(v: Any) -> Decimal:
    """Parse value to Decimal safely.

    Accepts:
    - Decimal (passthrough)
    - str (parsed to Decimal)
    - int (converted via string to avoid precision loss)
    - float (NOT recommended, but converted via string)
    """
    if isinstance(v, Decimal):
        return v
    if isinstance(v, str):
        try:
            return Decimal(v.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid decimal string: {v!r}") from exc
    if isinstance(v, bool):
        raise ValueError("Cannot convert bool to Decimal")
    if isinstance(v, int):
        return Decimal(str(v))
    if isinstance(v, float):
        return Decimal(str(v))
    raise ValueError(f"Cannot convert {type(v).__name__} to Decimal")
