# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Unit tests for the region extraction service.
"""

import io

import pytest
from PIL import Image

from visual_extract.extraction import PixelRegion, RegionExtractor, crop_region, to_pixel_region
from visual_extract.models import Detection, NormalizedBox, PageRaster


def _detection(label, box, description="desc"):
    return Detection(label=label, box=NormalizedBox.from_list(box), description=description)


def _decode(data):
    return Image.open(io.BytesIO(data))


@pytest.mark.unit
class TestToPixelRegion:
    """Tests for the normalized-to-pixel transform."""

    def test_reference_example(self):
        region = to_pixel_region(NormalizedBox(100, 200, 400, 800), 800, 600)
        assert region == PixelRegion(left=160, top=60, width=480, height=180)

    def test_full_page_box(self):
        region = to_pixel_region(NormalizedBox(0, 0, 1000, 1000), 1234, 567)
        assert region == PixelRegion(left=0, top=0, width=1234, height=567)

    def test_rounds_to_nearest_pixel(self):
        # 333/1000 * 100 = 33.3, 667/1000 * 100 = 66.7
        region = to_pixel_region(NormalizedBox(333, 333, 667, 667), 100, 100)
        assert region.left == 33
        assert region.top == 33
        assert region.width == 33
        assert region.height == 33

    def test_inverted_box_clamps_to_zero(self):
        region = to_pixel_region(NormalizedBox(500, 600, 400, 100), 800, 600)
        assert region.width == 0
        assert region.height == 0
        assert region.is_empty

    def test_crop_box(self):
        assert PixelRegion(10, 20, 30, 40).as_crop_box() == (10, 20, 40, 60)


@pytest.mark.unit
class TestCropRegion:
    """Tests for crop_region."""

    def test_crop_has_exact_region_size(self):
        page = Image.new("RGB", (800, 600), (255, 255, 255))
        cropped = crop_region(page, PixelRegion(160, 60, 480, 180))
        assert cropped.size == (480, 180)

    def test_out_of_bounds_area_is_black(self):
        page = Image.new("RGB", (100, 100), (255, 255, 255))
        cropped = crop_region(page, PixelRegion(90, 0, 20, 10))

        assert cropped.size == (20, 10)
        assert cropped.getpixel((5, 5)) == (255, 255, 255)
        assert cropped.getpixel((15, 5)) == (0, 0, 0)


@pytest.mark.unit
class TestRegionExtractor:
    """Tests for RegionExtractor."""

    @pytest.fixture
    def page(self):
        # Left half red, right half blue
        img = Image.new("RGB", (800, 600), (255, 0, 0))
        img.paste((0, 0, 255), (400, 0, 800, 600))
        return PageRaster(image=img)

    def test_config_overrides_quality(self):
        assert RegionExtractor().jpeg_quality == 0.9
        assert RegionExtractor(config={"extraction": {"jpeg_quality": 0.5}}).jpeg_quality == 0.5

    def test_extract_reference_example(self, page):
        data, region = RegionExtractor().extract(page, _detection("Chart", [100, 200, 400, 800]))

        assert region == PixelRegion(160, 60, 480, 180)
        cropped = _decode(data)
        assert cropped.format == "JPEG"
        assert cropped.size == (480, 180)

    def test_extracted_pixels_come_from_the_page(self, page):
        data, _ = RegionExtractor().extract(page, _detection("Right half", [100, 600, 900, 900]))

        r, g, b = _decode(data).convert("RGB").getpixel((10, 10))
        assert b > 200
        assert r < 50
        assert g < 50

    def test_degenerate_box_gives_empty_bytes(self, page):
        data, region = RegionExtractor().extract(page, _detection("Flat", [300, 200, 300, 800]))
        assert data == b""
        assert region.height == 0

    def test_extract_all_preserves_order_and_metadata(self, page):
        detections = [
            _detection("Photo", [0, 0, 500, 500], "A photo."),
            _detection("Broken", [500, 500, 400, 400], "Inverted."),
            _detection("Map", [500, 500, 1000, 1000], "A map."),
        ]

        items = RegionExtractor().extract_all(page, detections, generation=7)

        assert [item.label for item in items] == ["Photo", "Broken", "Map"]
        assert [item.description for item in items] == ["A photo.", "Inverted.", "A map."]
        assert all(item.generation == 7 for item in items)
        assert len({item.id for item in items}) == 3
        assert items[1].is_empty
        assert (items[0].width, items[0].height) == (400, 300)
        assert items[0].explanation is None

    def test_extract_all_is_deterministic(self, page):
        detections = [_detection("Chart", [100, 200, 400, 800])]
        extractor = RegionExtractor()

        first = extractor.extract_all(page, detections)
        second = extractor.extract_all(page, detections)

        assert first[0].image_data == second[0].image_data
        assert first[0].id != second[0].id

    def test_extract_all_with_no_detections(self, page):
        assert RegionExtractor().extract_all(page, []) == []

    def test_zero_pixel_box_is_not_called_degenerate(self, page, caplog):
        with caplog.at_level("WARNING", logger="visual_extract.extraction.service"):
            data, region = RegionExtractor().extract(page, _detection("Speck", [100, 100, 100.4, 100.4]))

        assert data == b""
        assert region.is_empty
        assert "rounds to" in caplog.text
        assert "degenerate" not in caplog.text

    def test_inverted_box_is_reported_degenerate(self, page, caplog):
        with caplog.at_level("WARNING", logger="visual_extract.extraction.service"):
            data, region = RegionExtractor().extract(page, _detection("Broken", [500, 500, 400, 400]))

        assert data == b""
        assert region == PixelRegion(0, 0, 0, 0)
        assert "degenerate" in caplog.text

    def test_non_finite_box_gives_empty_item(self, page):
        detection = Detection(label="Bad", box=NormalizedBox(float("nan"), 0, 500, 500), description="x")

        data, region = RegionExtractor().extract(page, detection)

        assert data == b""
        assert region == PixelRegion(0, 0, 0, 0)

    def test_unencodable_crop_keeps_its_index(self):
        # 100000/1000 * 700 = 70000 pixels wide, past the JPEG size limit
        page = PageRaster(image=Image.new("RGB", (700, 100), (255, 255, 255)))
        detections = [
            _detection("Good", [0, 0, 500, 500]),
            _detection("Oversized", [0, 0, 1000, 100000]),
            _detection("Also Good", [500, 500, 1000, 1000]),
        ]

        items = RegionExtractor().extract_all(page, detections)

        assert [item.label for item in items] == ["Good", "Oversized", "Also Good"]
        assert not items[0].is_empty
        assert items[1].is_empty
        assert (items[1].width, items[1].height) == (0, 0)
        assert not items[2].is_empty
