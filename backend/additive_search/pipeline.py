"""
pipeline.py — OCR + additive search orchestration.

Runs: OCR(image) → text sanity check → AdditiveMatcher.search, inside one
deadline. The OCR engine is a black box: any callable taking image bytes and
returning text, sync (run in a worker thread) or async.

Never crashes — timeouts, OCR failures and unusable text all come back as a
PipelineResult with an empty additive list and a status saying why.
"""

import time
import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from additive_search.match import AdditiveMatcher
from additive_search.models import MatchResult
from additive_search.normalize import HANGUL_RUN, coerce_text

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0
MIN_TEXT_LENGTH = 3

STATUS_COMPLETED = 'completed'
STATUS_NO_TEXT = 'no_text'
STATUS_TIMEOUT = 'timeout'
STATUS_FAILED = 'failed'


@dataclass
class PipelineResult:
    status: str
    extracted_text: str = ''
    additives: List[MatchResult] = field(default_factory=list)
    elapsed_ms: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'status': self.status,
            'extractedText': self.extracted_text,
            'additives': [a.to_api() for a in self.additives],
            'elapsedMs': round(self.elapsed_ms, 1),
            'error': self.error,
        }


async def search_with_deadline(matcher: AdditiveMatcher, text, timeout: float = DEFAULT_TIMEOUT) -> List[MatchResult]:
    """A timed-out search is indistinguishable from an empty one."""
    try:
        return await asyncio.wait_for(matcher.search(text), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Additive search exceeded {timeout}s deadline")
        return []


def is_usable_text(text: str, min_length: int = MIN_TEXT_LENGTH) -> bool:
    """OCR output worth searching: long enough and containing letters or Hangul."""
    stripped = text.strip()
    if len(stripped) < min_length:
        return False
    return bool(HANGUL_RUN.search(stripped)) or any(c.isalpha() for c in stripped)


class OcrSearchPipeline:
    """Image → OCR text → ranked additives, within `timeout` seconds."""

    def __init__(self, matcher: AdditiveMatcher, ocr: Callable[[bytes], Any],
                 timeout: float = DEFAULT_TIMEOUT, min_text_length: int = MIN_TEXT_LENGTH):
        self.matcher = matcher
        self.ocr = ocr
        self.timeout = timeout
        self.min_text_length = min_text_length

    async def _extract_text(self, image: bytes) -> str:
        if inspect.iscoroutinefunction(self.ocr):
            text = await self.ocr(image)
        else:
            text = await asyncio.to_thread(self.ocr, image)
        return coerce_text(text)

    async def _run(self, image: bytes, result: PipelineResult) -> PipelineResult:
        result.extracted_text = await self._extract_text(image)
        if not is_usable_text(result.extracted_text, self.min_text_length):
            logger.warning(f"OCR text unusable ({len(result.extracted_text)} chars)")
            result.status = STATUS_NO_TEXT
            return result
        result.additives = await self.matcher.search(result.extracted_text)
        result.status = STATUS_COMPLETED
        return result

    async def run(self, image: bytes) -> PipelineResult:
        started = time.perf_counter()
        result = PipelineResult(status=STATUS_FAILED)
        try:
            await asyncio.wait_for(self._run(image, result), self.timeout)
        except asyncio.TimeoutError:
            result.status = STATUS_TIMEOUT
            result.additives = []
            result.error = f"deadline of {self.timeout}s exceeded"
            logger.warning(f"OCR search pipeline timed out after {self.timeout}s")
        except Exception as e:
            result.status = STATUS_FAILED
            result.additives = []
            result.error = f"{type(e).__name__}: {e}"
            logger.exception("OCR search pipeline failed")
        result.elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"OCR search pipeline: {result.status}, {len(result.additives)} additives, "
                    f"{result.elapsed_ms:.0f}ms")
        return result
