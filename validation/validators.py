"""Image format validation: runs the detection strategy chain with caching and telemetry."""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Sequence

from core.decision_log import DecisionLog
from core.format_registry import FormatRegistry
from core.performance_monitor import PerformanceMonitor
from core.result_cache import ResultCache
from error_handling.handlers import ErrorMessageTranslator
from models.errors import ContentTypeProbeError
from models.validation import (
    CACHED_SUFFIX,
    INPUT_VALIDATION_METHOD,
    UNKNOWN_METHOD,
    ClassificationResult,
    StrategyKind,
)
from validation.http_probe import ContentTypeProbe
from validation.strategies import DetectionStrategy, default_strategies, resolve_mime_hint

logger = logging.getLogger(__name__)

# Confidence thresholds for the strategy chain
DEFINITIVE_CONFIDENCE = 0.8
STOP_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.6

INVALID_INPUT_REASON = "Invalid URL provided"
UNDETERMINED_REASON = "Unable to determine image format"


@dataclass
class _ChainState:
    """Accumulator carried across the strategy chain."""
    best_result: Optional[ClassificationResult] = None
    last_result: Optional[ClassificationResult] = None
    last_fault: Optional[Exception] = None


class ImageFormatValidator:
    """
    Decides whether an image URL points at a web-displayable format.

    Strategies run in priority order. A confident answer ends the chain
    immediately; weaker answers are kept as fallback candidates; a transport
    fault from the HTTP probe ends the chain with a user-facing reason.
    Every call is recorded once in the decision log.
    """

    def __init__(
        self,
        registry: FormatRegistry,
        cache: Optional[ResultCache] = None,
        decision_log: Optional[DecisionLog] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
        probe: Optional[ContentTypeProbe] = None,
        translator: Optional[ErrorMessageTranslator] = None,
    ):
        """
        Initialize the validator.

        Args:
            registry: Format registry consulted by every strategy
            cache: Result cache; a default-sized cache is created when omitted
            decision_log: Decision log; a default-capacity log is created when omitted
            performance_monitor: Timing monitor; created when omitted
            strategies: Detection strategies; the stock chain is built when omitted
            probe: Content-Type probe for the stock HTTP strategy
            translator: Maps probe faults to user-facing reasons
        """
        self.registry = registry
        self.cache = cache if cache is not None else ResultCache()
        self.decision_log = decision_log if decision_log is not None else DecisionLog()
        self.performance_monitor = performance_monitor if performance_monitor is not None else PerformanceMonitor()
        self.translator = translator or ErrorMessageTranslator()
        chain = strategies if strategies is not None else default_strategies(registry, probe)
        self.strategies: List[DetectionStrategy] = sorted(chain, key=lambda s: s.priority)

    async def validate(
        self,
        url: Any,
        mime_type: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> ClassificationResult:
        """
        Validate the format of an image.

        Args:
            url: Image URL
            mime_type: MIME type supplied by the caller
            metadata: Structured metadata; MimeType.value is used when mime_type is absent

        Returns:
            ClassificationResult: Always a result, never raises
        """
        return await self._validate(url, mime_type, metadata, track_performance=True)

    async def validate_batch(self, urls: Sequence[Any]) -> List[ClassificationResult]:
        """
        Validate several images concurrently.

        Args:
            urls: Image URLs

        Returns:
            List[ClassificationResult]: Results in input order
        """
        if not urls:
            return []

        started = time.perf_counter()
        results = await asyncio.gather(
            *(self._validate(url, None, None, track_performance=False) for url in urls)
        )
        total_ms = (time.perf_counter() - started) * 1000
        success_count = sum(1 for result in results if result.is_valid)
        self.performance_monitor.record_batch_validation(len(urls), total_ms, success_count)
        logger.info(f"Validated batch of {len(urls)} images: {success_count} accepted in {total_ms:.1f}ms")
        return list(results)

    def clear_cache(self) -> None:
        self.cache.clear()

    async def aclose(self) -> None:
        """Release the HTTP client held by the content-type strategy."""
        for strategy in self.strategies:
            if strategy.kind is StrategyKind.HTTP_CONTENT_TYPE:
                await strategy.probe.aclose()

    async def _validate(
        self,
        url: Any,
        mime_type: Optional[str],
        metadata: Optional[Mapping[str, Any]],
        track_performance: bool,
    ) -> ClassificationResult:
        started = time.perf_counter()
        token = self.performance_monitor.start_validation(str(url)) if track_performance else None

        result, cache_hit, network_request = await self._run_guarded(url, mime_type, metadata, started)

        if token is not None:
            self.performance_monitor.end_validation(
                token,
                str(url),
                success=result.is_valid,
                detection_method=result.detection_method,
                cache_hit=cache_hit,
                network_request=network_request,
            )
        return result

    async def _run_guarded(self, url, mime_type, metadata, started):
        try:
            return await self._run(url, mime_type, metadata, started)
        except Exception as e:
            logger.exception(f"Unexpected failure validating {url!r}: {e}")
            result = self._undetermined(e)
            self.decision_log.log_error(str(url), e, self._elapsed_ms(started), UNKNOWN_METHOD, result=result)
            return result, False, False

    async def _run(self, url, mime_type, metadata, started):
        """Returns (result, cache_hit, network_request)."""
        if not isinstance(url, str) or not url.strip():
            result = ClassificationResult(
                is_valid=False,
                confidence=1.0,
                detection_method=INPUT_VALIDATION_METHOD,
                rejection_reason=INVALID_INPUT_REASON,
            )
            self.decision_log.log_rejection(str(url), result, self._elapsed_ms(started))
            return result, False, False

        hint = resolve_mime_hint(mime_type, metadata)
        cache_key = self.cache.generate_key(url, hint)
        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.decision_log.log_validation(
                    url,
                    cached,
                    self._elapsed_ms(started),
                    detection_method=f"{cached.detection_method}{CACHED_SUFFIX}",
                )
                return cached, True, False

        state = _ChainState()
        network_request = False

        for strategy in self.strategies:
            probing = strategy.kind is StrategyKind.HTTP_CONTENT_TYPE
            if probing and strategy.will_probe(url):
                network_request = True

            try:
                result = await strategy.detect(url, hint)
            except Exception as e:
                if probing:
                    return self._probe_fault_result(url, e, started), False, network_request
                logger.warning(f"Detection strategy {strategy.name} failed for {url}: {e}")
                state.last_fault = e
                continue

            state.last_result = result

            if result.confidence >= DEFINITIVE_CONFIDENCE:
                return self._finish(url, cache_key, result, state, started), False, network_request

            if result.detected_format and result.confidence >= FALLBACK_CONFIDENCE:
                is_valid, reason = self.registry.classify(result.detected_format)
                candidate = replace(result, is_valid=is_valid, rejection_reason=reason)
                if state.best_result is None or candidate.confidence > state.best_result.confidence:
                    state.best_result = candidate
                if result.confidence >= STOP_CONFIDENCE:
                    break

        final = state.best_result or state.last_result or self._undetermined(state.last_fault)
        return self._finish(url, cache_key, final, state, started), False, network_request

    def _finish(
        self,
        url: str,
        cache_key: Optional[str],
        result: ClassificationResult,
        state: _ChainState,
        started: float,
    ) -> ClassificationResult:
        elapsed = self._elapsed_ms(started)
        # Only a verdict built from a swallowed fault is transient
        from_fault = result.detection_method == UNKNOWN_METHOD and state.last_fault is not None
        if from_fault:
            self.decision_log.log_error(url, state.last_fault, elapsed, UNKNOWN_METHOD, result=result)
        elif result.is_valid:
            self.decision_log.log_success(url, result, elapsed)
        else:
            self.decision_log.log_rejection(url, result, elapsed)

        if cache_key is not None:
            self.cache.put(cache_key, result, transient_error=from_fault)
        return result

    def _probe_fault_result(self, url: str, fault: Exception, started: float) -> ClassificationResult:
        result = ClassificationResult(
            is_valid=False,
            confidence=0.0,
            detection_method=StrategyKind.HTTP_CONTENT_TYPE.value,
            rejection_reason=self.translator.translate_probe_fault(fault),
        )
        is_timeout = isinstance(fault, ContentTypeProbeError) and fault.is_timeout
        status_code = fault.status_code if isinstance(fault, ContentTypeProbeError) else None
        self.decision_log.log_network_error(
            url,
            fault,
            self._elapsed_ms(started),
            is_timeout=is_timeout,
            http_status_code=status_code,
            result=result,
        )
        return result

    @staticmethod
    def _undetermined(fault: Optional[Exception]) -> ClassificationResult:
        reason = f"{UNDETERMINED_REASON}: {fault}" if fault is not None else UNDETERMINED_REASON
        return ClassificationResult(
            is_valid=False,
            confidence=0.0,
            detection_method=UNKNOWN_METHOD,
            rejection_reason=reason,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000
