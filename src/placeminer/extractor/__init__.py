"""
PlaceMiner extraction engine.

Reads contact fields (name, address, phone, second phone, website, email)
from rendered place pages using ordered fallback chains of structural and
full-text strategies.
"""

from .engine import CONTAINER_SIGNALS, ExtractionEngine, build_field_chains
from .page import ParsedPage
from .protocols import FieldStrategy
from .strategies import (
    CallAffordance,
    ChainMatch,
    EmailTextScan,
    ExternalLink,
    FieldChain,
    MailtoLink,
    PhoneTextScan,
    SelectorText,
    is_external_link,
    scan_phone_numbers,
)

__all__ = [
    "CONTAINER_SIGNALS",
    "ExtractionEngine",
    "build_field_chains",
    "ParsedPage",
    "FieldStrategy",
    "CallAffordance",
    "ChainMatch",
    "EmailTextScan",
    "ExternalLink",
    "FieldChain",
    "MailtoLink",
    "PhoneTextScan",
    "SelectorText",
    "is_external_link",
    "scan_phone_numbers",
]
