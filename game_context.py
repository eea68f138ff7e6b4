"""
Central place to host long-lived process-wide singletons (story narrator, SRD client).
Built on first use so imports stay free of network and key lookups.
"""
import logging

from ai.narrator import build_default_narrator
from engine.reference_data import SrdClient

logger = logging.getLogger(__name__)

_NARRATOR = None
_NARRATOR_READY = False
_SRD_CLIENT = None


def get_narrator():
    """Shared narrator, or None when no API key is configured."""
    global _NARRATOR, _NARRATOR_READY
    if not _NARRATOR_READY:
        _NARRATOR = build_default_narrator()
        _NARRATOR_READY = True
    return _NARRATOR


def get_srd_client() -> SrdClient:
    global _SRD_CLIENT
    if _SRD_CLIENT is None:
        _SRD_CLIENT = SrdClient()
        logger.info("SRD client ready")
    return _SRD_CLIENT
