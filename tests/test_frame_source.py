"""Tests for deterministic frame synthesis."""

import pytest
from PIL import Image

from gencam_server.frame_source import (
    ASSET_NAME,
    GENERATED_ASSET_SIZE,
    FrameLoadError,
    FrameSource,
    generate_test_assets,
    hue_shift,
)
from gencam_server.models.frame import BYTES_PER_PIXEL, RawFrame


def test_generate_test_assets(tmp_path):
    """Assets are written at their native size, not the frame size."""
    paths = generate_test_assets(tmp_path, count=3)
    assert [p.name for p in paths] == [ASSET_NAME.format(index=i) for i in range(3)]
    with Image.open(paths[0]) as image:
        assert image.size == GENERATED_ASSET_SIZE
        assert image.mode == "RGB"


def test_generate_test_assets_keeps_existing(tmp_path):
    existing = tmp_path / ASSET_NAME.format(index=0)
    Image.new("RGB", (8, 8), (1, 2, 3)).save(existing)
    before = existing.read_bytes()

    generate_test_assets(tmp_path, count=2)
    assert existing.read_bytes() == before

    generate_test_assets(tmp_path, count=2, overwrite=True)
    assert existing.read_bytes() != before


def test_produce_canonical_size(frame_source):
    frame = frame_source.produce(1)
    assert (frame.width, frame.height) == (64, 64)
    assert len(frame.data) == 64 * 64 * BYTES_PER_PIXEL
    assert frame.index == 1
    assert frame.counter == 1


def test_produce_custom_size(assets_dir):
    frame = FrameSource(assets_dir, width=32, height=16).produce(0)
    assert len(frame.data) == 32 * 16 * BYTES_PER_PIXEL


def test_produce_is_deterministic(frame_source):
    """Two calls with the same counter return byte-identical payloads."""
    for counter in (0, 1, 7, 123):
        assert frame_source.produce(counter).data == frame_source.produce(counter).data


def test_separate_sources_agree(assets_dir):
    assert FrameSource(assets_dir).produce(5).data == FrameSource(assets_dir).produce(5).data


def test_asset_selection_wraps(frame_source):
    assert frame_source.produce(13).index == 3
    assert frame_source.produce(10).index == 0


def test_counters_repeat_after_twenty(frame_source):
    """Asset index repeats every 10 counters and hue every 4, so frames repeat every 20."""
    assert frame_source.produce(3).data == frame_source.produce(23).data


def test_hue_changes_between_counters(frame_source):
    """Same asset, different hue rotation, different bytes."""
    assert frame_source.produce(0).data != frame_source.produce(10).data


def test_missing_asset(empty_frame_source):
    with pytest.raises(FrameLoadError):
        empty_frame_source.produce(1)


def test_unreadable_asset(tmp_path):
    (tmp_path / ASSET_NAME.format(index=0)).write_bytes(b"not a png")
    with pytest.raises(FrameLoadError):
        FrameSource(tmp_path, asset_count=1).produce(0)


def test_oversized_asset_is_a_load_error(frame_source, monkeypatch):
    """Pillow's decompression-bomb guard surfaces as FrameLoadError."""
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(FrameLoadError):
        frame_source.produce(1)


def test_asset_index_bounds(frame_source):
    with pytest.raises(ValueError):
        frame_source.asset_path(10)


def test_invalid_configuration(tmp_path):
    with pytest.raises(ValueError):
        FrameSource(tmp_path, asset_count=0)
    with pytest.raises(ValueError):
        FrameSource(tmp_path, width=0)
    with pytest.raises(ValueError):
        FrameSource(tmp_path, height=0x10000)


def test_hue_shift_zero_and_full_turn():
    image = Image.new("RGB", (4, 4), (200, 40, 10))
    assert hue_shift(image, 0).tobytes() == image.tobytes()
    assert hue_shift(image, 360).tobytes() == image.tobytes()


def test_hue_shift_moves_red_towards_green():
    shifted = hue_shift(Image.new("RGB", (1, 1), (255, 0, 0)), 120)
    r, g, b = shifted.getpixel((0, 0))
    assert g > r
    assert g > b


def test_raw_frame_size_check():
    with pytest.raises(ValueError):
        RawFrame(data=b"\x00" * 5, width=2, height=1)


def test_raw_frame_to_packet():
    frame = RawFrame(data=b"\x00" * 12, width=2, height=2, counter=3)
    packet = frame.to_packet(sequence=3)
    assert packet.payload == frame.data
    assert (packet.width, packet.height, packet.sequence) == (2, 2, 3)
