"""Format registry holding the supported and rejected image format definitions."""

import copy
import logging
from typing import Dict, List, Optional, Tuple, Union

from models.formats import (
    FallbackBehaviorConfig,
    FormatConfig,
    FormatConfigValidationResult,
    FormatDefinition,
    RejectedFormatDefinition,
    default_format_config,
)

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Format not supported for web display"

AnyDefinition = Union[FormatDefinition, RejectedFormatDefinition]


class FormatRegistry:
    """
    Authoritative mapping of format name to extensions, MIME types and validity.

    Every mutation is validate-then-commit: a failed update leaves the current
    configuration untouched. Callers only ever receive deep copies.
    """

    def __init__(self, config: Optional[FormatConfig] = None, http_timeout_ms: int = 5000):
        """
        Initialize the registry.

        Args:
            config: Initial configuration; the stock configuration is used when omitted
            http_timeout_ms: Probe timeout for the stock configuration

        Raises:
            ValueError: If an explicit initial configuration fails validation
        """
        self._default_config = default_format_config(http_timeout_ms)
        if config is None:
            self._config = copy.deepcopy(self._default_config)
        else:
            validation = self.validate_config(config)
            if not validation.is_valid:
                raise ValueError(f"Invalid format configuration: {'; '.join(validation.errors)}")
            self._config = copy.deepcopy(config)

    # --- Configuration access ---

    def get(self) -> FormatConfig:
        """Return a deep copy of the current configuration."""
        return copy.deepcopy(self._config)

    def get_default_config(self) -> FormatConfig:
        """Return a deep copy of the stock configuration."""
        return copy.deepcopy(self._default_config)

    def reset_to_default(self) -> None:
        """Restore the stock configuration."""
        self._config = copy.deepcopy(self._default_config)
        logger.info("Format registry reset to default configuration")

    def replace_all(self, config: FormatConfig) -> FormatConfigValidationResult:
        """
        Atomically replace the whole configuration.

        Args:
            config: New configuration to apply

        Returns:
            FormatConfigValidationResult: Errors leave the previous configuration in place
        """
        validation = self.validate_config(config)
        if validation.is_valid:
            self._config = copy.deepcopy(config)
            logger.info(
                f"Format registry replaced: {len(config.supported_formats)} supported, "
                f"{len(config.rejected_formats)} rejected"
            )
        else:
            logger.warning(f"Rejected format registry replacement: {validation.errors}")
        return validation

    # --- Mutations ---

    def add_supported(self, name: str, definition: FormatDefinition) -> FormatConfigValidationResult:
        """
        Add a new supported format.

        Args:
            name: Format name, normalised to lowercase
            definition: Format definition

        Returns:
            FormatConfigValidationResult: Validation outcome with warnings
        """
        return self._add(name, definition, rejected=False)

    def add_rejected(self, name: str, definition: RejectedFormatDefinition) -> FormatConfigValidationResult:
        """
        Add a new rejected format.

        Args:
            name: Format name, normalised to lowercase
            definition: Rejected format definition with a non-empty reason

        Returns:
            FormatConfigValidationResult: Validation outcome with warnings
        """
        return self._add(name, definition, rejected=True)

    def remove_supported(self, name: str) -> bool:
        normalized = self._normalize_name(name)
        if normalized in self._config.supported_formats:
            del self._config.supported_formats[normalized]
            logger.info(f"Removed supported format '{normalized}'")
            return True
        return False

    def remove_rejected(self, name: str) -> bool:
        normalized = self._normalize_name(name)
        if normalized in self._config.rejected_formats:
            del self._config.rejected_formats[normalized]
            logger.info(f"Removed rejected format '{normalized}'")
            return True
        return False

    def set_enabled(self, name: str, enabled: bool) -> bool:
        """Enable or disable a supported format. Returns False if it does not exist."""
        if not isinstance(enabled, bool):
            return False
        normalized = self._normalize_name(name)
        definition = self._config.supported_formats.get(normalized)
        if definition is None:
            return False
        definition.enabled = enabled
        logger.info(f"Supported format '{normalized}' {'enabled' if enabled else 'disabled'}")
        return True

    def update_fallback_behavior(self, fallback: FallbackBehaviorConfig) -> FormatConfigValidationResult:
        validation = self._validate_fallback_behavior(fallback)
        if validation.is_valid:
            self._config.fallback_behavior = copy.deepcopy(fallback)
        return validation

    # --- Queries ---

    def supported_names(self) -> List[str]:
        """Names of enabled supported formats."""
        return [name for name, d in self._config.supported_formats.items() if d.enabled]

    def rejected_names(self) -> List[str]:
        return list(self._config.rejected_formats.keys())

    def format_for_mime_type(self, mime_type: str) -> Optional[str]:
        """Find the format owning a MIME type, supported formats first."""
        if not mime_type:
            return None
        normalized = mime_type.strip().lower()
        for name, definition in self._all_definitions():
            if normalized in (m.lower() for m in definition.mime_types):
                return name
        return None

    def format_for_extension(self, extension: str) -> Optional[str]:
        """Find the format owning a file extension (including the leading dot)."""
        if not extension:
            return None
        normalized = extension.strip().lower()
        for name, definition in self._all_definitions():
            if normalized in (e.lower() for e in definition.extensions):
                return name
        return None

    def is_supported(self, name: str) -> bool:
        definition = self._config.supported_formats.get(name)
        return definition.enabled if definition else False

    def rejection_reason(self, name: str) -> str:
        rejected = self._config.rejected_formats.get(name)
        if rejected:
            return rejected.reason
        return DEFAULT_REJECTION_REASON

    def classify(self, name: str) -> Tuple[bool, Optional[str]]:
        """Return (is_valid, rejection_reason) for a registered format name."""
        if self.is_supported(name):
            return True, None
        return False, self.rejection_reason(name)

    @property
    def http_timeout_seconds(self) -> float:
        return self._config.fallback_behavior.http_timeout_ms / 1000.0

    # --- Validation ---

    def validate_config(self, config: FormatConfig) -> FormatConfigValidationResult:
        """
        Validate a complete configuration structure.

        Args:
            config: Configuration to validate

        Returns:
            FormatConfigValidationResult: Errors and warnings for every section
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(config, FormatConfig):
            return FormatConfigValidationResult(False, ["Configuration must be a FormatConfig"], [])

        if not isinstance(config.supported_formats, dict):
            errors.append("supported_formats must be a mapping")
        if not isinstance(config.rejected_formats, dict):
            errors.append("rejected_formats must be a mapping")
        if not isinstance(config.fallback_behavior, FallbackBehaviorConfig):
            errors.append("fallback_behavior must be a FallbackBehaviorConfig")
        if errors:
            return FormatConfigValidationResult(False, errors, warnings)

        for name, definition in config.supported_formats.items():
            result = self._validate_definition(definition, rejected=False)
            errors.extend(f"Supported format '{name}': {e}" for e in result.errors)
            warnings.extend(f"Supported format '{name}': {w}" for w in result.warnings)

        for name, definition in config.rejected_formats.items():
            result = self._validate_definition(definition, rejected=True)
            errors.extend(f"Rejected format '{name}': {e}" for e in result.errors)
            warnings.extend(f"Rejected format '{name}': {w}" for w in result.warnings)

        fallback = self._validate_fallback_behavior(config.fallback_behavior)
        errors.extend(f"Fallback behavior: {e}" for e in fallback.errors)
        warnings.extend(f"Fallback behavior: {w}" for w in fallback.warnings)

        for name in set(config.supported_formats) & set(config.rejected_formats):
            errors.append(f"Format '{name}' is defined as both supported and rejected")

        if not errors:
            errors.extend(self._scan_conflicts(config))

        if not any(getattr(d, "enabled", False) is True for d in config.supported_formats.values()):
            warnings.append("No supported formats are enabled. This may cause all photos to be rejected.")

        return FormatConfigValidationResult(len(errors) == 0, errors, warnings)

    def _add(self, name: str, definition: AnyDefinition, rejected: bool) -> FormatConfigValidationResult:
        if not isinstance(name, str) or not name.strip():
            return FormatConfigValidationResult(False, ["Format name must be a non-empty string"], [])

        normalized = self._normalize_name(name)
        if rejected:
            if normalized in self._config.rejected_formats:
                return FormatConfigValidationResult(
                    False, [f"Format '{normalized}' already exists in rejected formats"], []
                )
            if normalized in self._config.supported_formats:
                return FormatConfigValidationResult(
                    False,
                    [f"Format '{normalized}' exists in supported formats. Remove it first before adding as rejected."],
                    [],
                )
        else:
            if normalized in self._config.supported_formats:
                return FormatConfigValidationResult(
                    False, [f"Format '{normalized}' already exists in supported formats"], []
                )
            if normalized in self._config.rejected_formats:
                return FormatConfigValidationResult(
                    False,
                    [f"Format '{normalized}' exists in rejected formats. Remove it first before adding as supported."],
                    [],
                )

        validation = self._validate_definition(definition, rejected=rejected)
        if not validation.is_valid:
            return validation

        conflicts = self._conflicts_with_current(definition)
        if conflicts:
            return FormatConfigValidationResult(False, conflicts, validation.warnings)

        target: Dict[str, AnyDefinition] = (
            self._config.rejected_formats if rejected else self._config.supported_formats
        )
        target[normalized] = copy.deepcopy(definition)
        logger.info(f"Added {'rejected' if rejected else 'supported'} format '{normalized}'")
        return FormatConfigValidationResult(True, [], validation.warnings)

    def _validate_definition(self, definition: AnyDefinition, rejected: bool) -> FormatConfigValidationResult:
        errors: List[str] = []
        warnings: List[str] = []
        expected = RejectedFormatDefinition if rejected else FormatDefinition

        if not isinstance(definition, expected):
            kind = "Rejected format" if rejected else "Format"
            return FormatConfigValidationResult(False, [f"{kind} definition must be a {expected.__name__}"], [])

        if not isinstance(definition.extensions, (list, tuple, set)):
            errors.append("extensions must be a list")
        else:
            if len(definition.extensions) == 0:
                warnings.append("No file extensions defined")
            for ext in definition.extensions:
                if not isinstance(ext, str):
                    errors.append("All extensions must be strings")
                elif not ext.startswith("."):
                    errors.append(f"Extension '{ext}' must start with a dot")
                elif len(ext) < 2:
                    errors.append(f"Extension '{ext}' is too short")
                elif ext != ext.lower():
                    warnings.append(f"Extension '{ext}' is not lowercase")

        if not isinstance(definition.mime_types, (list, tuple, set)):
            errors.append("mime_types must be a list")
        else:
            if len(definition.mime_types) == 0:
                warnings.append("No MIME types defined")
            for mime_type in definition.mime_types:
                if not isinstance(mime_type, str):
                    errors.append("All MIME types must be strings")
                elif "/" not in mime_type:
                    errors.append(f"MIME type '{mime_type}' is invalid (must contain '/')")

        if rejected:
            if not isinstance(definition.reason, str) or not definition.reason.strip():
                errors.append("reason must be a non-empty string")
        elif not isinstance(definition.enabled, bool):
            errors.append("enabled must be a boolean")

        return FormatConfigValidationResult(len(errors) == 0, errors, warnings)

    def _validate_fallback_behavior(self, fallback: FallbackBehaviorConfig) -> FormatConfigValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(fallback, FallbackBehaviorConfig):
            return FormatConfigValidationResult(False, ["Fallback behavior must be a FallbackBehaviorConfig"], [])

        if not isinstance(fallback.retry_count, int) or isinstance(fallback.retry_count, bool):
            errors.append("retry_count must be a number")
        elif fallback.retry_count < 0:
            errors.append("retry_count must be non-negative")
        elif fallback.retry_count > 10:
            warnings.append("retry_count is very high, may impact performance")

        if not isinstance(fallback.expand_search_radius, bool):
            errors.append("expand_search_radius must be a boolean")

        timeout = fallback.http_timeout_ms
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
            errors.append("http_timeout_ms must be a number")
        elif timeout <= 0:
            errors.append("http_timeout_ms must be positive")
        elif timeout < 1000:
            warnings.append("http_timeout_ms is very low, may cause frequent timeouts")
        elif timeout > 30000:
            warnings.append("http_timeout_ms is very high, may impact user experience")

        return FormatConfigValidationResult(len(errors) == 0, errors, warnings)

    def _scan_conflicts(self, config: FormatConfig) -> List[str]:
        """Report every extension or MIME type claimed by more than one format."""
        extension_owners: Dict[str, List[str]] = {}
        mime_owners: Dict[str, List[str]] = {}

        owners = [(f"supported:{n}", d) for n, d in config.supported_formats.items()]
        owners += [(f"rejected:{n}", d) for n, d in config.rejected_formats.items()]
        for owner, definition in owners:
            for ext in set(e.lower() for e in definition.extensions):
                extension_owners.setdefault(ext, []).append(owner)
            for mime_type in set(m.lower() for m in definition.mime_types):
                mime_owners.setdefault(mime_type, []).append(owner)

        errors = []
        for ext, names in extension_owners.items():
            if len(names) > 1:
                errors.append(f"Extension '{ext}' is used by multiple formats: {', '.join(names)}")
        for mime_type, names in mime_owners.items():
            if len(names) > 1:
                errors.append(f"MIME type '{mime_type}' is used by multiple formats: {', '.join(names)}")
        return errors

    def _conflicts_with_current(self, definition: AnyDefinition) -> List[str]:
        errors = []
        for ext in definition.extensions:
            for kind, name, existing in self._all_definitions_with_kind():
                if ext.lower() in (e.lower() for e in existing.extensions):
                    errors.append(f"Extension '{ext}' is already used by {kind} format '{name}'")
        for mime_type in definition.mime_types:
            for kind, name, existing in self._all_definitions_with_kind():
                if mime_type.lower() in (m.lower() for m in existing.mime_types):
                    errors.append(f"MIME type '{mime_type}' is already used by {kind} format '{name}'")
        return errors

    def _all_definitions(self):
        yield from self._config.supported_formats.items()
        yield from self._config.rejected_formats.items()

    def _all_definitions_with_kind(self):
        for name, definition in self._config.supported_formats.items():
            yield "supported", name, definition
        for name, definition in self._config.rejected_formats.items():
            yield "rejected", name, definition

    @staticmethod
    def _normalize_name(name: str) -> str:
        return name.strip().lower() if isinstance(name, str) else ""
