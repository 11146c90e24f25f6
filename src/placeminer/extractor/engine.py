"""
Extraction engine: readiness probe plus per-field fallback chains.

Orchestrates the field chains over one snapshot of a render surface and
converts the result into an ExtractionOutcome. Never raises: any fault while
reading or traversing the surface becomes ``Failed``.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Sequence

import structlog

from ..config.config import ExtractionSettings
from ..protocols import ContactFields, ExtractionOutcome, Failed, NotReady, Ready, RenderSurface
from .page import ParsedPage
from .strategies import (
    CallAffordance,
    EmailTextScan,
    ExternalLink,
    FieldChain,
    MailtoLink,
    PhoneTextScan,
    text_chain,
)

logger = structlog.get_logger(__name__)

# Place-details panel first, then the result list shown before a place opens.
CONTAINER_SIGNALS: Sequence[str] = (
    "#pane",
    'div[role="main"] div.widget-pane',
    '[data-section-id="pane"]',
    'div[aria-label^="Results for"]',
    'div[role="listitem"]',
    ".section-result",
    ".Nv2PK",
)

NAME_SELECTORS: Sequence[str] = (
    'h1[class*="fontHeadline"]',
    'h1[aria-level="1"]',
    "h1.section-hero-header-title-title",
    '[data-testid="title"]',
    '[aria-label][role="heading"]',
    "h1",
)

ADDRESS_SELECTORS: Sequence[str] = (
    '[data-item-id="address"]',
    ".LrzXr",
    ".Io6YTe",
    ".section-info-line",
    'button[data-tooltip="Copy address"]',
    'button[aria-label*="Address"]',
)

CALL_SELECTORS: Sequence[str] = (
    'button[data-tooltip*="Call"]',
    'button[aria-label*="call"]',
    'button[aria-label*="Phone"]',
    'a[href^="tel:"]',
    'button[jsaction*="phone"]',
    ".LrzXr.zdqRlf.kno-fv",
)

WEBSITE_SELECTORS: Sequence[str] = (
    'a[data-item-id="authority"]',
    'a[aria-label*="Website"]',
    'a[href^="http"]',
)

DESCRIPTION_REGIONS: Sequence[str] = (
    ".QAXWLe",
    ".section-editorial",
    ".section-info-text",
)


def build_field_chains(settings: ExtractionSettings) -> Dict[str, FieldChain]:
    """Declared priority lists for the six contact fields."""
    excluded = tuple(settings.excluded_domains)
    min_digits = settings.min_phone_digits
    return {
        "name": text_chain("name", NAME_SELECTORS),
        "address": text_chain("address", ADDRESS_SELECTORS),
        "phone": FieldChain(
            "phone",
            tuple(CallAffordance(s) for s in CALL_SELECTORS) + (PhoneTextScan(index=0, min_digits=min_digits),),
        ),
        "phone2": FieldChain("phone2", (PhoneTextScan(index=1, min_digits=min_digits),)),
        "website": FieldChain(
            "website",
            tuple(ExternalLink(s, excluded, settings.surface_path_prefix) for s in WEBSITE_SELECTORS),
        ),
        "email": FieldChain(
            "email",
            (MailtoLink(),) + tuple(EmailTextScan(region) for region in DESCRIPTION_REGIONS),
        ),
    }


class ExtractionEngine:
    """
    Reads contact fields from render surfaces.

    Features:
    - Ordered container signals distinguish "not rendered yet" from "ready but empty"
    - One declared fallback chain per field, first match wins
    - Fields are resolved independently of each other
    - Faults are returned as Failed instead of propagating
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        *,
        container_signals: Sequence[str] = CONTAINER_SIGNALS,
        chains: Optional[Dict[str, FieldChain]] = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.container_signals = tuple(container_signals)
        self.chains = chains if chains is not None else build_field_chains(self.settings)
        self.logger = logger.bind(component="ExtractionEngine")

    async def extract(self, surface: RenderSurface) -> ExtractionOutcome:
        """Snapshot the surface and extract fields from it."""
        try:
            html = await surface.snapshot()
        except Exception as e:
            self.logger.warning("Snapshot failed", target=surface.target, error=str(e))
            return Failed(detail=f"snapshot failed: {type(e).__name__}: {e}")

        # Parsing can be CPU-heavy on large documents
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extract_html, html)

    def extract_html(self, html: str) -> ExtractionOutcome:
        """Synchronous extraction from a serialized document."""
        try:
            page = ParsedPage(html)

            if not self.is_ready(page):
                return NotReady()

            values: Dict[str, Optional[str]] = {}
            for field_name, chain in self.chains.items():
                match = chain.resolve(page)
                values[field_name] = match.value if match else None
                if match:
                    self.logger.debug("Field resolved", field=field_name, strategy=match.strategy)

            return Ready(fields=ContactFields(**values), snippet=page.text[: self.settings.snippet_length])

        except Exception as e:
            self.logger.warning("Extraction failed", error=str(e), error_type=type(e).__name__)
            return Failed(detail=f"{type(e).__name__}: {e}")

    def is_ready(self, page: ParsedPage) -> bool:
        return any(page.has(selector) for selector in self.container_signals)
