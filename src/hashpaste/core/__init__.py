"""Core infrastructure: fingerprints, lifecycle, counter, configuration, logging."""

from hashpaste.core.config import HashpasteSettings, load_settings, resolve_config
from hashpaste.core.counter import COUNTER_KEY, UploadCounter, UploadRecord
from hashpaste.core.fingerprint import Fingerprint, Fingerprinter, fingerprint, shorten
from hashpaste.core.lifecycle import (
    CONTENT_KEY_PREFIX,
    HEALTH_CHECK_PAYLOAD,
    Paste,
    PasteLifecycle,
    PasteStats,
    UploadResult,
    content_key,
)
from hashpaste.core.logging import configure_logging, get_logger

__all__ = [
    "CONTENT_KEY_PREFIX",
    "COUNTER_KEY",
    "HEALTH_CHECK_PAYLOAD",
    "Fingerprint",
    "Fingerprinter",
    "HashpasteSettings",
    "Paste",
    "PasteLifecycle",
    "PasteStats",
    "UploadCounter",
    "UploadRecord",
    "UploadResult",
    "configure_logging",
    "content_key",
    "fingerprint",
    "get_logger",
    "load_settings",
    "resolve_config",
    "shorten",
]
