"""Request models for the validation HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.formats import (
    FallbackBehaviorConfig,
    FormatConfig,
    FormatDefinition,
    RejectedFormatDefinition,
)


class ValidateRequest(BaseModel):
    """Request model for single image format validation."""

    url: str = Field(..., description="Image URL to validate")
    mime_type: Optional[str] = Field(None, description="MIME type reported by the image source")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Structured metadata, e.g. {'MimeType': {'value': ...}}")

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://upload.example.org/photos/harbour.jpg",
                "mime_type": "image/jpeg",
            }
        }


class BatchValidateRequest(BaseModel):
    """Request model for validating several URLs at once."""

    urls: List[str] = Field(..., min_length=1, max_length=100, description="Image URLs to validate")


class FormatDefinitionModel(BaseModel):
    """Supported format definition payload."""

    extensions: List[str] = Field(default_factory=list)
    mime_types: List[str] = Field(default_factory=list)
    enabled: bool = Field(True)
    description: Optional[str] = Field(None)

    def to_definition(self) -> FormatDefinition:
        return FormatDefinition(
            extensions=list(self.extensions),
            mime_types=list(self.mime_types),
            enabled=self.enabled,
            description=self.description,
        )


class RejectedFormatDefinitionModel(BaseModel):
    """Rejected format definition payload."""

    extensions: List[str] = Field(default_factory=list)
    mime_types: List[str] = Field(default_factory=list)
    reason: str = Field(..., description="Human readable rejection reason")
    description: Optional[str] = Field(None)

    def to_definition(self) -> RejectedFormatDefinition:
        return RejectedFormatDefinition(
            extensions=list(self.extensions),
            mime_types=list(self.mime_types),
            reason=self.reason,
            description=self.description,
        )


class FallbackBehaviorModel(BaseModel):
    """Fallback behaviour payload."""

    retry_count: int = Field(3)
    expand_search_radius: bool = Field(True)
    http_timeout_ms: int = Field(5000)


class FormatConfigModel(BaseModel):
    """Complete registry configuration payload."""

    supported_formats: Dict[str, FormatDefinitionModel] = Field(default_factory=dict)
    rejected_formats: Dict[str, RejectedFormatDefinitionModel] = Field(default_factory=dict)
    fallback_behavior: FallbackBehaviorModel = Field(default_factory=FallbackBehaviorModel)

    def to_config(self) -> FormatConfig:
        return FormatConfig(
            supported_formats={name: d.to_definition() for name, d in self.supported_formats.items()},
            rejected_formats={name: d.to_definition() for name, d in self.rejected_formats.items()},
            fallback_behavior=FallbackBehaviorConfig(
                retry_count=self.fallback_behavior.retry_count,
                expand_search_radius=self.fallback_behavior.expand_search_radius,
                http_timeout_ms=self.fallback_behavior.http_timeout_ms,
            ),
        )


class EnabledUpdate(BaseModel):
    """Toggle payload for a supported format."""

    enabled: bool = Field(..., description="Whether the format is accepted")
