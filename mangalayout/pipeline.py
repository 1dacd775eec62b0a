"""Deskew-then-segment pipeline for single pages and batches."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .core.batch import BatchOutcome, ProgressCallback, run_batch
from .core.config import Settings, get_settings
from .errors import ErrorKind, InvalidInputError
from .layout.segmenter import segment
from .layout.types import ReadingDirection, SegmentationResult
from .preprocess.deskew import DeskewResult, SkewMethod, deskew
from .raster import RasterImage

logger = logging.getLogger(__name__)

__all__ = ["BatchOutcome", "PageAnalysis", "PageError", "analyze_batch", "analyze_page", "run_batch"]


@dataclass(frozen=True)
class PageError:
    kind: ErrorKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class PageAnalysis:
    """Everything known about one page after the pipeline ran."""

    image: Any
    deskew: Optional[DeskewResult] = None
    segmentation: Optional[SegmentationResult] = None
    error: Optional[PageError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deskew": self.deskew.to_dict() if self.deskew else None,
            "segmentation": self.segmentation.to_dict() if self.segmentation else None,
            "error": self.error.to_dict() if self.error else None,
        }


def analyze_page(
    image: RasterImage,
    *,
    settings: Settings | None = None,
    method: SkewMethod | str | None = None,
    direction: ReadingDirection | str | None = None,
) -> PageAnalysis:
    """Deskew ``image`` and segment the corrected page.

    Never raises: failures are reported through :attr:`PageAnalysis.error`
    and the original image is returned untouched.
    """

    settings = settings or get_settings()
    deskewed = deskew(image, settings.deskew_config(), method=method or settings.deskew_method)
    if not deskewed.ok:
        kind = deskewed.error_kind or ErrorKind.INTERNAL
        return PageAnalysis(image=image, deskew=deskewed, error=PageError(kind, deskewed.error or ""))

    try:
        segmentation = segment(deskewed.corrected_image, settings.segment_config(), direction=direction)
    except InvalidInputError as exc:
        logger.warning("Segmentation rejected the page: %s", exc)
        return PageAnalysis(image=image, deskew=deskewed, error=PageError(ErrorKind.INVALID_INPUT, str(exc)))
    except Exception as exc:
        logger.exception("Page analysis failed")
        return PageAnalysis(image=image, deskew=deskewed, error=PageError(ErrorKind.INTERNAL, str(exc)))

    return PageAnalysis(image=image, deskew=deskewed, segmentation=segmentation)


def analyze_batch(
    images: Iterable[RasterImage],
    *,
    settings: Settings | None = None,
    method: SkewMethod | str | None = None,
    direction: ReadingDirection | str | None = None,
    concurrency: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> List[PageAnalysis]:
    """Analyse several pages; one :class:`PageAnalysis` per input, in order."""

    settings = settings or get_settings()
    pages = list(images)
    outcomes = run_batch(
        lambda page: analyze_page(page, settings=settings, method=method, direction=direction),
        pages,
        concurrency=concurrency or settings.batch_concurrency,
        on_progress=on_progress,
    )
    results: List[PageAnalysis] = []
    for outcome in outcomes:
        if outcome.ok:
            results.append(outcome.result)
        else:
            error = PageError(ErrorKind.INTERNAL, str(outcome.error))
            results.append(PageAnalysis(image=pages[outcome.index], error=error))
    return results
