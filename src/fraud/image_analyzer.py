"""
Image forensics analyzer for claim damage photos.

Runs five independent sub-checks (metadata, quality, tamper, hashing, content)
concurrently, then judges the photo against the claim: duplicate photos across
claims, content that doesn't fit the claim type and capture dates far from the
incident.

Interface designed for easy swap to a real vision service.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import constants as C
from .errors import UnreadableInputError
from .image_checks import (
    CheckReport,
    analyze_quality,
    check_claim_type,
    check_photo_date,
    compute_hashes,
    detect_content,
    detect_tampering,
    extract_metadata,
    image_confidence,
    image_risk_level,
    open_image,
)
from .schema import (
    CheckOutcome,
    CheckStatus,
    ClaimContext,
    DuplicateMatch,
    ImageAnalysisResult,
    ImageMetadata,
    TamperFlags,
)
from .scoring import clamp_score
from ..storage.hash_registry import PerceptualHashRegistry, get_hash_registry, hash_similarity
from ..utils.config import get_settings

logger = logging.getLogger(__name__)

SubCheck = Callable[[bytes], CheckReport]

SUB_CHECKS: Dict[str, SubCheck] = {
    "metadata": extract_metadata,
    "quality": analyze_quality,
    "tamper": detect_tampering,
    "hash": compute_hashes,
    "content": detect_content,
}


def analysis_failed_result(error: str) -> ImageAnalysisResult:
    """Minimal result for bytes that could not be analyzed at all."""
    return ImageAnalysisResult(
        error=error,
        fraud_indicators=[C.ANALYSIS_FAILED_INDICATOR],
        fraud_score=float(C.ANALYSIS_FAILED_PENALTY),
        confidence=0.0,
        risk_level=image_risk_level(C.ANALYSIS_FAILED_PENALTY),
    )


class ImageAnalyzer(ABC):
    """Base class for image analysis."""

    @abstractmethod
    async def analyze(
        self,
        image_bytes: bytes,
        context: Optional[ClaimContext] = None,
    ) -> ImageAnalysisResult:
        """
        Analyze a single image.

        Args:
            image_bytes: Raw encoded image
            context: Claim type, incident date and policy id, all optional

        Returns:
            ImageAnalysisResult. Never raises.
        """
        pass

    async def analyze_batch(
        self,
        images: Sequence[bytes],
        context: Optional[ClaimContext] = None,
    ) -> List[ImageAnalysisResult]:
        """Analyze multiple images concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.analyze(image, context) for image in images)))


class ImageForensicsAnalyzer(ImageAnalyzer):
    """
    Heuristic forensic analyzer.

    Sub-checks run in worker threads, each bounded by a timeout. A sub-check
    that fails or times out contributes nothing to the score; its check_status
    entry records the reason instead.
    """

    def __init__(
        self,
        registry: Optional[PerceptualHashRegistry] = None,
        check_timeout: Optional[float] = None,
    ):
        """
        Initialize analyzer.

        Args:
            registry: Hash registry for cross-claim duplicates (default: process-wide one)
            check_timeout: Seconds per sub-check (default: settings.image_check_timeout_seconds)
        """
        self.registry = registry if registry is not None else get_hash_registry()
        self.check_timeout = check_timeout or get_settings().image_check_timeout_seconds

    async def analyze(
        self,
        image_bytes: bytes,
        context: Optional[ClaimContext] = None,
    ) -> ImageAnalysisResult:
        context = context or ClaimContext()
        try:
            return await self._analyze(image_bytes, context)
        except UnreadableInputError as e:
            logger.warning(f"Image analysis failed: {e}")
            return analysis_failed_result(str(e))
        except asyncio.TimeoutError:
            reason = f"Image decode timed out after {self.check_timeout}s"
            logger.warning(f"Image analysis failed: {reason}")
            return analysis_failed_result(reason)
        except Exception as e:
            logger.error(f"Image analysis failed unexpectedly: {e}", exc_info=True)
            return analysis_failed_result(str(e))

    async def _run_check(
        self,
        name: str,
        check: SubCheck,
        image_bytes: bytes,
    ) -> Tuple[Optional[CheckReport], CheckOutcome]:
        """Run one sub-check in a thread and tag its outcome."""
        try:
            report = await asyncio.wait_for(
                asyncio.to_thread(check, image_bytes),
                timeout=self.check_timeout,
            )
        except asyncio.TimeoutError:
            reason = f"timed out after {self.check_timeout}s"
            logger.warning(f"Image check '{name}' {reason}")
            return None, CheckOutcome(status=CheckStatus.TIMEOUT, reason=reason)
        except Exception as e:
            logger.warning(f"Image check '{name}' failed: {e}")
            return None, CheckOutcome(status=CheckStatus.ERROR, reason=str(e))
        return report, CheckOutcome(status=report.status)

    def _check_duplicates(
        self,
        perceptual_hash: str,
        context: ClaimContext,
        report: CheckReport,
    ) -> List[DuplicateMatch]:
        """Look the hash up in the registry, then record it under this claim."""
        matches = self.registry.lookup(
            perceptual_hash,
            exclude_claim_id=context.policy_number,
            max_distance=C.CROSS_CLAIM_DUPLICATE_DISTANCE,
        )
        duplicates = [
            DuplicateMatch(
                claim_id=match.claim_id,
                hash=match.hash,
                distance=match.distance,
                similarity=hash_similarity(match.distance, perceptual_hash),
            )
            for match in matches
        ]
        if duplicates:
            report.flag(
                f"Image matches photos from {len(duplicates)} other claim(s)",
                C.CROSS_CLAIM_DUPLICATE_PENALTY,
            )
        if context.policy_number:
            self.registry.append(context.policy_number, perceptual_hash)
        return duplicates

    async def _analyze(self, image_bytes: bytes, context: ClaimContext) -> ImageAnalysisResult:
        # Undecodable bytes fail the whole image, not five sub-checks
        await asyncio.wait_for(
            asyncio.to_thread(open_image, image_bytes),
            timeout=self.check_timeout,
        )

        outcomes = await asyncio.gather(*(
            self._run_check(name, check, image_bytes) for name, check in SUB_CHECKS.items()
        ))
        reports: Dict[str, Optional[CheckReport]] = {}
        check_status: Dict[str, CheckOutcome] = {}
        for name, (report, outcome) in zip(SUB_CHECKS, outcomes):
            reports[name] = report
            check_status[name] = outcome

        metadata = reports["metadata"].payload if reports["metadata"] else ImageMetadata()
        quality = reports["quality"].payload if reports["quality"] else None
        tamper = reports["tamper"].payload if reports["tamper"] else TamperFlags()
        labels = reports["content"].payload if reports["content"] else []

        perceptual_hash = content_hash = None
        duplicates: List[DuplicateMatch] = []
        hash_report = reports["hash"]
        if hash_report:
            perceptual_hash, content_hash = hash_report.payload
            try:
                duplicates = self._check_duplicates(perceptual_hash, context, hash_report)
            except Exception as e:
                logger.warning(f"Hash registry unavailable: {e}")
                check_status["registry"] = CheckOutcome(status=CheckStatus.ERROR, reason=str(e))

        type_report = check_claim_type(labels, context.claim_type)
        date_report = check_photo_date(metadata.capture_time, context.incident_date)

        indicators: List[str] = []
        score = 0
        for report in [*reports.values(), type_report, date_report]:
            if report is None:
                continue
            indicators.extend(report.indicators)
            score += report.score

        fraud_score = clamp_score(score)
        result = ImageAnalysisResult(
            metadata=metadata,
            quality=quality,
            tamper=tamper,
            perceptual_hash=perceptual_hash,
            content_hash=content_hash,
            duplicates=duplicates,
            content_labels=labels,
            claim_type_match=type_report.payload,
            check_status=check_status,
            fraud_indicators=indicators,
            fraud_score=fraud_score,
            confidence=image_confidence(metadata, quality, perceptual_hash, labels),
            risk_level=image_risk_level(fraud_score),
        )

        logger.debug(
            f"Image analyzed: score={result.fraud_score}, "
            f"indicators={len(result.fraud_indicators)}, risk={result.risk_level.value}"
        )
        return result


def create_image_analyzer(
    registry: Optional[PerceptualHashRegistry] = None,
    check_timeout: Optional[float] = None,
) -> ImageAnalyzer:
    """
    Factory function to create image analyzer.

    Args:
        registry: Hash registry to use (default: process-wide registry)
        check_timeout: Per sub-check timeout in seconds

    Returns:
        ImageAnalyzer instance
    """
    return ImageForensicsAnalyzer(registry=registry, check_timeout=check_timeout)


# Module-level convenience function
_default_analyzer: Optional[ImageAnalyzer] = None


async def analyze_image(
    image_bytes: bytes,
    context: Optional[ClaimContext] = None,
    registry: Optional[PerceptualHashRegistry] = None,
) -> ImageAnalysisResult:
    """
    Analyze one damage photo (convenience function).

    Args:
        image_bytes: Raw encoded image
        context: Optional claim context
        registry: Hash registry override; the default analyzer is used when None

    Returns:
        ImageAnalysisResult
    """
    global _default_analyzer

    if registry is not None:
        return await create_image_analyzer(registry=registry).analyze(image_bytes, context)

    if _default_analyzer is None:
        _default_analyzer = create_image_analyzer()

    return await _default_analyzer.analyze(image_bytes, context)
