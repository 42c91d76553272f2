"""
Data models for the image format registry.

Defines the supported / rejected format definitions, the fallback behaviour
block and the structured result returned by every registry mutation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class FormatDefinition:
    """A format accepted for web display."""
    extensions: List[str]
    mime_types: List[str]
    enabled: bool = True
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "extensions": list(self.extensions),
            "mime_types": list(self.mime_types),
            "enabled": self.enabled,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormatDefinition":
        """Create from dictionary representation."""
        return cls(
            extensions=list(data.get("extensions", [])),
            mime_types=list(data.get("mime_types", [])),
            enabled=data.get("enabled", True),
            description=data.get("description"),
        )


@dataclass
class RejectedFormatDefinition:
    """A recognised format that is refused, with the reason shown to users."""
    extensions: List[str]
    mime_types: List[str]
    reason: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "extensions": list(self.extensions),
            "mime_types": list(self.mime_types),
            "reason": self.reason,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RejectedFormatDefinition":
        """Create from dictionary representation."""
        return cls(
            extensions=list(data.get("extensions", [])),
            mime_types=list(data.get("mime_types", [])),
            reason=data.get("reason", ""),
            description=data.get("description"),
        )


@dataclass
class FallbackBehaviorConfig:
    """
    Probe timeout and host retry settings.

    Only http_timeout_ms is read by the detection chain. retry_count and
    expand_search_radius are host settings: they are validated, stored and
    returned unchanged so callers that perform their own retries or widened
    searches can share one configuration.
    """
    retry_count: int = 3
    expand_search_radius: bool = True
    http_timeout_ms: int = 5000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retry_count": self.retry_count,
            "expand_search_radius": self.expand_search_radius,
            "http_timeout_ms": self.http_timeout_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FallbackBehaviorConfig":
        return cls(
            retry_count=data.get("retry_count", 3),
            expand_search_radius=data.get("expand_search_radius", True),
            http_timeout_ms=data.get("http_timeout_ms", 5000),
        )


@dataclass
class FormatConfig:
    """Complete format configuration held by the registry."""
    supported_formats: Dict[str, FormatDefinition] = field(default_factory=dict)
    rejected_formats: Dict[str, RejectedFormatDefinition] = field(default_factory=dict)
    fallback_behavior: FallbackBehaviorConfig = field(default_factory=FallbackBehaviorConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "supported_formats": {name: d.to_dict() for name, d in self.supported_formats.items()},
            "rejected_formats": {name: d.to_dict() for name, d in self.rejected_formats.items()},
            "fallback_behavior": self.fallback_behavior.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormatConfig":
        """Create from dictionary representation."""
        return cls(
            supported_formats={
                name: FormatDefinition.from_dict(d) for name, d in data.get("supported_formats", {}).items()
            },
            rejected_formats={
                name: RejectedFormatDefinition.from_dict(d) for name, d in data.get("rejected_formats", {}).items()
            },
            fallback_behavior=FallbackBehaviorConfig.from_dict(data.get("fallback_behavior", {})),
        )


@dataclass
class FormatConfigValidationResult:
    """Outcome of validating a registry mutation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def default_format_config(http_timeout_ms: int = 5000) -> FormatConfig:
    """Build the stock configuration: JPEG, PNG and WebP accepted; TIFF, SVG, GIF and BMP refused."""
    return FormatConfig(
        supported_formats={
            "jpeg": FormatDefinition(
                extensions=[".jpg", ".jpeg"],
                mime_types=["image/jpeg"],
                enabled=True,
                description="JPEG format - widely supported, good compression",
            ),
            "png": FormatDefinition(
                extensions=[".png"],
                mime_types=["image/png"],
                enabled=True,
                description="PNG format - lossless compression, transparency support",
            ),
            "webp": FormatDefinition(
                extensions=[".webp"],
                mime_types=["image/webp"],
                enabled=True,
                description="WebP format - modern format with excellent compression",
            ),
        },
        rejected_formats={
            "tiff": RejectedFormatDefinition(
                extensions=[".tiff", ".tif"],
                mime_types=["image/tiff"],
                reason="Limited browser support",
                description="TIFF format - not widely supported in browsers",
            ),
            "svg": RejectedFormatDefinition(
                extensions=[".svg"],
                mime_types=["image/svg+xml"],
                reason="Not suitable for photographs",
                description="SVG format - vector graphics, not appropriate for photos",
            ),
            "gif": RejectedFormatDefinition(
                extensions=[".gif"],
                mime_types=["image/gif"],
                reason="Avoid animated content",
                description="GIF format - may contain animations, limited color palette",
            ),
            "bmp": RejectedFormatDefinition(
                extensions=[".bmp"],
                mime_types=["image/bmp"],
                reason="Large file sizes, limited web optimization",
                description="BMP format - uncompressed, large file sizes",
            ),
        },
        fallback_behavior=FallbackBehaviorConfig(http_timeout_ms=http_timeout_ms),
    )
