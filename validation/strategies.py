"""
Image format detection strategies.

Three detectors ship, each identified by a StrategyKind:
- mime-type: MIME hint from the caller or from structured metadata
- url-extension: file extension of the URL path
- http-content-type: Content-Type header from a HEAD request

A strategy that has nothing to say returns a result with confidence 0.0; only
the HTTP probe raises, and only for transport faults.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional
from urllib.parse import urlsplit

from core.format_registry import FormatRegistry
from models.validation import ClassificationResult, StrategyKind
from validation.http_probe import ContentTypeProbe, is_http_url

EXTENSION_PATTERN = re.compile(r"^\.\w+$")


def resolve_mime_hint(mime_type: Optional[str] = None, metadata: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """
    Resolve the MIME hint for a validation.

    The direct parameter wins; otherwise the value at MimeType.value in the
    structured metadata is used. Blank values count as absent.
    """
    if isinstance(mime_type, str) and mime_type.strip():
        return mime_type.strip()

    if isinstance(metadata, Mapping):
        field = metadata.get("MimeType")
        if isinstance(field, Mapping):
            value = field.get("value")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def extract_extension(url: str) -> Optional[str]:
    """Extract a lowercase file extension from the path component of a URL."""
    try:
        path = urlsplit(url).path.lower()
    except (ValueError, TypeError, AttributeError):
        return None

    filename = path.rsplit("/", 1)[-1]
    dot_index = filename.rfind(".")
    if dot_index == -1:
        return None

    extension = filename[dot_index:]
    if len(extension) < 2 or not EXTENSION_PATTERN.match(extension):
        return None
    return extension


class DetectionStrategy(ABC):
    """Base class for a confidence-scored format detector."""

    kind: StrategyKind
    priority: int

    def __init__(self, registry: FormatRegistry):
        self.registry = registry

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def detect(self, url: str, mime_type: Optional[str] = None) -> ClassificationResult:
        """Classify the image at `url`, using the resolved MIME hint if given."""

    def _no_information(self, reason: str, mime_type: Optional[str] = None) -> ClassificationResult:
        return ClassificationResult(
            is_valid=False,
            confidence=0.0,
            detection_method=self.name,
            detected_mime_type=mime_type,
            rejection_reason=reason,
        )

    def _known_format(self, fmt: str, confidence: float, mime_type: Optional[str] = None) -> ClassificationResult:
        is_valid, reason = self.registry.classify(fmt)
        return ClassificationResult(
            is_valid=is_valid,
            confidence=confidence,
            detection_method=self.name,
            detected_format=fmt,
            detected_mime_type=mime_type,
            rejection_reason=reason,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(priority={self.priority})"


class MimeTypeStrategy(DetectionStrategy):
    """Classifies from a MIME type supplied out of band."""

    kind = StrategyKind.MIME_TYPE
    priority = 1

    async def detect(self, url: str, mime_type: Optional[str] = None) -> ClassificationResult:
        if not mime_type or not mime_type.strip():
            return self._no_information("No MIME type available")

        normalized = mime_type.strip().lower()
        fmt = self.registry.format_for_mime_type(normalized)
        if fmt is None:
            return ClassificationResult(
                is_valid=False,
                confidence=0.8,
                detection_method=self.name,
                detected_mime_type=normalized,
                rejection_reason="Unknown MIME type",
            )
        return self._known_format(fmt, 0.9, normalized)


class UrlExtensionStrategy(DetectionStrategy):
    """Classifies from the file extension in the URL path."""

    kind = StrategyKind.URL_EXTENSION
    priority = 2

    async def detect(self, url: str, mime_type: Optional[str] = None) -> ClassificationResult:
        extension = extract_extension(url)
        fmt = self.registry.format_for_extension(extension) if extension else None
        if fmt is None:
            return self._no_information("No recognizable file extension")
        return self._known_format(fmt, 0.7)


class HttpContentTypeStrategy(DetectionStrategy):
    """Classifies from the Content-Type header returned by a HEAD request."""

    kind = StrategyKind.HTTP_CONTENT_TYPE
    priority = 3

    def __init__(self, registry: FormatRegistry, probe: Optional[ContentTypeProbe] = None):
        super().__init__(registry)
        self.probe = probe or ContentTypeProbe()

    def will_probe(self, url: str) -> bool:
        """Whether detect() would issue a network request for this URL."""
        return is_http_url(url)

    async def detect(self, url: str, mime_type: Optional[str] = None) -> ClassificationResult:
        if not self.will_probe(url):
            return self._no_information("Invalid URL for HTTP request")

        content_type = await self.probe.fetch_content_type(url, self.registry.http_timeout_seconds)
        if not content_type:
            return self._no_information("Unable to retrieve Content-Type header")

        fmt = self.registry.format_for_mime_type(content_type)
        if fmt is None:
            return ClassificationResult(
                is_valid=False,
                confidence=0.6,
                detection_method=self.name,
                detected_mime_type=content_type,
                rejection_reason="Unknown Content-Type",
            )
        return self._known_format(fmt, 0.8, content_type)


def default_strategies(registry: FormatRegistry, probe: Optional[ContentTypeProbe] = None) -> List[DetectionStrategy]:
    """Build the stock strategy chain."""
    return [
        MimeTypeStrategy(registry),
        UrlExtensionStrategy(registry),
        HttpContentTypeStrategy(registry, probe),
    ]
