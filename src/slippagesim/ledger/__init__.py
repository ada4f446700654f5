"""Batch lifecycle: deposits, mint/redeem triggers, pro-rata claims."""

from slippagesim.ledger.batch import Batch
from slippagesim.ledger.ledger import (
    DEFAULT_ACCOUNT,
    BatchLedger,
    ConversionReceipt,
    ConversionService,
)

__all__ = [
    "DEFAULT_ACCOUNT",
    "Batch",
    "BatchLedger",
    "ConversionReceipt",
    "ConversionService",
]
