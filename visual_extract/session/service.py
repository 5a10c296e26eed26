# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Scan session orchestration.

A ScanSession runs one scan at a time: rasterize the requested page,
detect visual elements on it, then crop each detection. The resulting
items stay on the session until it is reset or a new scan starts, and
any of them can be explained on demand.

Every scan and reset advances a generation counter. Work that completes
after the generation has moved on (a scan that was reset mid-flight, or
an explanation for an item from an earlier scan) is discarded instead of
overwriting the current state.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional

from visual_extract import utils
from visual_extract.config import get_config
from visual_extract.detection import DetectionResult, ElementDetector
from visual_extract.explanation import ElementExplainer
from visual_extract.extraction import RegionExtractor
from visual_extract.models import (
    ExtractedItem,
    ItemNotFound,
    PageRaster,
    ScanFailed,
    ScanSummary,
    SessionState,
    SourceDocument,
)
from visual_extract.rasterizer import PageRasterizer

logger = logging.getLogger(__name__)


class ScanSession:
    """Holds the page and extracted items of the active scan."""

    def __init__(
        self,
        detector: ElementDetector,
        explainer: ElementExplainer,
        rasterizer: Optional[PageRasterizer] = None,
        extractor: Optional[RegionExtractor] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a session around its collaborators.

        Args:
            detector: Remote detection capability (detect_with_result)
            explainer: Remote explanation capability (explain_with_result)
            rasterizer: Page rasterizer; built from config when omitted
            extractor: Region extractor; built from config when omitted
            config: Configuration dictionary
        """
        self.config = config or {}
        self.detector = detector
        self.explainer = explainer
        self.rasterizer = rasterizer or PageRasterizer(config=self.config)
        self.extractor = extractor or RegionExtractor(config=self.config)
        self.page_jpeg_quality = float(
            self.config.get("rasterization", {}).get("jpeg_quality", 0.95)
        )

        self._lock = threading.Lock()
        self._generation = 0
        self._state = SessionState.IDLE
        self._page_raster: Optional[PageRaster] = None
        self._page_image: Optional[bytes] = None
        self._items: List[ExtractedItem] = []
        self._last_detection: Optional[DetectionResult] = None
        self.metering: Dict[str, Any] = {}

    @classmethod
    def from_config(
        cls,
        config: Optional[Dict[str, Any]] = None,
        region: Optional[str] = None,
        metrics_enabled: bool = True,
    ) -> "ScanSession":
        """Build a session with Bedrock-backed collaborators from configuration."""
        effective_config = get_config(custom=config)
        return cls(
            detector=ElementDetector(config=effective_config, region=region, metrics_enabled=metrics_enabled),
            explainer=ElementExplainer(config=effective_config, region=region, metrics_enabled=metrics_enabled),
            config=effective_config,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def items(self) -> List[ExtractedItem]:
        with self._lock:
            return list(self._items)

    @property
    def page_raster(self) -> Optional[PageRaster]:
        return self._page_raster

    @property
    def page_image(self) -> Optional[bytes]:
        """The scanned page as JPEG bytes, or None when idle."""
        return self._page_image

    @property
    def last_detection(self) -> Optional[DetectionResult]:
        """Detection outcome of the current scan, including whether it failed."""
        return self._last_detection

    def _clear(self):
        self._page_raster = None
        self._page_image = None
        self._items = []
        self._last_detection = None

    def scan(self, document: SourceDocument, page_number: Optional[int] = 1) -> List[ExtractedItem]:
        """
        Rasterize, detect and extract one page.

        Args:
            document: Uploaded image or PDF
            page_number: 1-based page to scan; ignored for images

        Returns:
            Extracted items in detection order; empty if the scan was superseded

        Raises:
            ScanFailed: If the page could not be rasterized or cropped
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._clear()
            self._state = SessionState.SCANNING

        logger.info(f"Starting scan {generation} of '{document.filename or 'upload'}' page {page_number}")
        t0 = time.time()

        try:
            page_raster = self.rasterizer.rasterize(document, page_number)
            page_image = page_raster.to_jpeg(self.page_jpeg_quality)
            detection_result = self.detector.detect_with_result(page_image)
            if not detection_result.ok:
                logger.warning(f"Scan {generation}: detection failed ({detection_result.error}), no elements extracted")
            items = self.extractor.extract_all(page_raster, detection_result.detections, generation=generation)
        except Exception as e:
            with self._lock:
                if generation != self._generation:
                    logger.info(f"Discarding failure of superseded scan {generation}: {str(e)}")
                    return []
                self._clear()
                self._state = SessionState.IDLE
            logger.error(f"Scan {generation} failed: {str(e)}", exc_info=True)
            raise ScanFailed("Extraction failed. Check the logs for details.") from e

        with self._lock:
            if generation != self._generation:
                logger.info(f"Discarding result of superseded scan {generation}")
                return []
            self._page_raster = page_raster
            self._page_image = page_image
            self._items = items
            self._last_detection = detection_result
            self._state = SessionState.READY
            self.metering = utils.merge_metering_data(self.metering, detection_result.metering)

        logger.info(f"Scan {generation} ready with {len(items)} items in {time.time() - t0:.2f} seconds")
        return list(items)

    def reset(self):
        """Discard the page and items and return to idle; in-flight work becomes stale."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._clear()
            self._state = SessionState.IDLE
        logger.info(f"Session reset (generation {generation})")

    def get_item(self, item_id: str) -> ExtractedItem:
        """
        Look up an extracted item of the current scan.

        Raises:
            ItemNotFound: If no current item has this id
        """
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
        raise ItemNotFound(item_id)

    def explain(self, item_id: str) -> str:
        """
        Fetch a fresh explanation for one item.

        The session state is not changed; the text is stored on the item
        unless the session has moved on to a newer scan in the meantime.

        Raises:
            ItemNotFound: If no current item has this id
        """
        item = self.get_item(item_id)
        result = self.explainer.explain_with_result(item.image_data, item.label)

        with self._lock:
            if item.generation == self._generation and any(current is item for current in self._items):
                item.explanation = result.text
                self.metering = utils.merge_metering_data(self.metering, result.metering)
            else:
                logger.info(f"Discarding explanation for item {item_id} from superseded scan {item.generation}")
        return result.text

    def explain_all(self, max_workers: int = 4) -> Dict[str, str]:
        """
        Explain every current item concurrently.

        Returns:
            Mapping of item id to explanation text
        """
        items = self.items
        explanations: Dict[str, str] = {}
        if not items:
            return explanations

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_item = {executor.submit(self.explain, item.id): item for item in items}
            for future in as_completed(future_to_item):
                item = future_to_item[future]
                try:
                    explanations[item.id] = future.result()
                except ItemNotFound:
                    logger.info(f"Item {item.id} left the session before it was explained")

        return explanations

    def summary(self) -> ScanSummary:
        with self._lock:
            raster = self._page_raster
            return ScanSummary(
                state=self._state,
                generation=self._generation,
                page_number=raster.page_number if raster else None,
                page_count=raster.page_count if raster else None,
                items=list(self._items),
            )

    def to_dict(self) -> Dict[str, Any]:
        return self.summary().to_dict()
