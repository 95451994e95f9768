"""Tests for material grain injection."""

from pathlib import Path

import numpy as np
import pytest

from conftest import rgba, write_texture, write_texture_set
from pack_tuner.tuning import NoisePatternCache, PackInfo, PixelBuffer
from pack_tuner.tuning.material_grain import (
    NoisePattern,
    add_material_grain,
    apply_grain,
    base_filename,
    flipbook_frame_height,
    generate_noise_pattern,
    noise_effectiveness,
)


def constant_pattern(shape: tuple[int, int], red: int, green: int, blue: int, checker: int) -> NoisePattern:
    return NoisePattern(
        np.full(shape, red, dtype=np.int32),
        np.full(shape, green, dtype=np.int32),
        np.full(shape, blue, dtype=np.int32),
        np.full(shape, checker, dtype=np.int32),
    )


class TestHelpers:
    """Test grain helpers."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("furnace_front_on.png", "furnace_front"),
            ("redstone_lamp_off.tga", "redstone_lamp"),
            ("Redstone_Lamp_ON_mer.png", "Redstone_Lamp_mer"),
            ("observer_back_lit_mer.png", "observer_back_mer"),
            ("stone_mer.png", "stone_mer"),
        ],
    )
    def test_base_filename(self, name: str, expected: str) -> None:
        """Test variant suffixes are dropped from names."""
        assert base_filename(Path(name)) == expected

    def test_flipbook_frame_height(self) -> None:
        """Test flipbook frame detection."""
        assert flipbook_frame_height(16, 64) == 16
        assert flipbook_frame_height(16, 32) == 16
        assert flipbook_frame_height(16, 16) == 16
        assert flipbook_frame_height(16, 40) == 40
        assert flipbook_frame_height(32, 16) == 16

    def test_noise_effectiveness(self) -> None:
        """Test the effectiveness curve."""
        values = np.array([0, 64, 128, 255], dtype=np.uint8)

        assert noise_effectiveness(values).tolist() == pytest.approx([0.0, 0.5, 1.0, 0.33])

    def test_generated_pattern_ranges(self) -> None:
        """Test noise and checkerboard value ranges."""
        pattern = generate_noise_pattern(8, 6, 20, np.random.default_rng(9))

        for grid in (pattern.red, pattern.green, pattern.blue):
            assert grid.shape == (6, 8)
            assert grid.min() >= -20 and grid.max() <= 20
        assert pattern.checkerboard.min() >= 0 and pattern.checkerboard.max() <= 255
        # Even squares stay near 0, odd squares near 255
        assert pattern.checkerboard[0, 0] <= 4
        assert pattern.checkerboard[0, 1] >= 251

    def test_cache_reuses_patterns(self) -> None:
        """Test patterns are cached per name and size."""
        cache = NoisePatternCache(10, np.random.default_rng(10))

        first = cache.get("lamp", 8, 8)

        assert cache.get("lamp", 8, 8) is first
        assert cache.get("lamp", 16, 16) is not first
        assert len(cache) == 2


class TestApplyGrain:
    """Test applying a noise pattern."""

    def test_clipping_change_is_discarded(self) -> None:
        """Test a channel that would clip keeps its value."""
        buffer = PixelBuffer(pixels=rgba([[250, 200]], 128, [[250, 200]], 77, shape=(1, 2)))
        pattern = constant_pattern((1, 2), 40, 40, 40, 128)

        assert apply_grain(buffer, pattern, 40, 1)

        # 250 + 11 would clip and is dropped; 200 + 20 fits
        assert buffer.red.tolist() == [[250, 220]]
        assert buffer.blue.tolist() == [[250, 220]]
        # green runs at a fifth of the strength
        assert buffer.green.tolist() == [[134, 134]]
        assert buffer.alpha.tolist() == [[77, 77]]

    def test_black_channels_unaffected(self) -> None:
        """Test black channels get no noise."""
        buffer = PixelBuffer(pixels=rgba(0, 0, 0, shape=(4, 4)))
        pattern = generate_noise_pattern(4, 4, 30, np.random.default_rng(11))

        assert not apply_grain(buffer, pattern, 30, 4)
        assert np.all(buffer.pixels[:, :, :3] == 0)

    def test_frames_share_noise(self) -> None:
        """Test every flipbook frame gets the same noise."""
        frame = np.random.default_rng(12).integers(40, 220, size=(4, 4, 4), dtype=np.uint8)
        buffer = PixelBuffer(pixels=np.concatenate([frame, frame, frame]))
        pattern = generate_noise_pattern(4, 4, 25, np.random.default_rng(13))

        assert apply_grain(buffer, pattern, 25, 4)

        assert np.array_equal(buffer.pixels[0:4], buffer.pixels[4:8])
        assert np.array_equal(buffer.pixels[0:4], buffer.pixels[8:12])

    def test_extreme_input_fuzz(self) -> None:
        """Test extreme inputs stay valid."""
        rng = np.random.default_rng(14)
        pixels = rng.choice(np.array([0, 1, 127, 128, 254, 255], dtype=np.uint8), size=(16, 16, 4))
        buffer = PixelBuffer(pixels=pixels.copy())
        pattern = generate_noise_pattern(16, 16, 100, rng)

        apply_grain(buffer, pattern, 100, 16)

        assert buffer.pixels.dtype == np.uint8
        assert np.array_equal(buffer.alpha, pixels[:, :, 3])
        # Zero channels have no effectiveness
        black = pixels[:, :, :3] == 0
        assert np.all(buffer.pixels[:, :, :3][black] == 0)


class TestAddMaterialGrain:
    """Test material grain on packs."""

    def _mer(self, folder: Path, name: str, pixels: np.ndarray) -> Path:
        texture = write_texture(folder / f"{name}.png", pixels)
        write_texture_set(folder, name, metalness_emissive_roughness=name)
        return texture

    def test_variants_share_noise(self, pack: PackInfo) -> None:
        """Test state variants get identical noise."""
        folder = Path(pack.path)
        flat = rgba(128, 128, 128, shape=(8, 8))
        lamp_on = self._mer(folder, "lamp_on", flat)
        lamp_off = self._mer(folder, "lamp_off", flat)
        other = self._mer(folder, "torch", flat)

        written = add_material_grain(pack, 30, seed=42)

        assert sorted(written) == sorted([lamp_on, lamp_off, other])
        on_pixels = PixelBuffer.load(lamp_on).pixels
        assert np.array_equal(on_pixels, PixelBuffer.load(lamp_off).pixels)
        assert not np.array_equal(on_pixels, PixelBuffer.load(other).pixels)

    def test_seed_is_reproducible(self, tmp_path: Path) -> None:
        """Test the same seed gives the same grain."""
        results = []
        for run in ("a", "b"):
            folder = tmp_path / run
            texture = self._mer(folder, "ore", rgba(128, 128, 128, shape=(8, 8)))
            add_material_grain(PackInfo(name=run, path=folder), 12, seed=7)
            results.append(PixelBuffer.load(texture).pixels)

        assert np.array_equal(results[0], results[1])

    def test_zero_offset_is_noop(self, pack: PackInfo) -> None:
        """Test a zero offset writes nothing."""
        texture = self._mer(Path(pack.path), "ore", rgba(128, 128, 128, shape=(4, 4)))
        before = texture.read_bytes()

        assert add_material_grain(pack, 0) == []
        assert texture.read_bytes() == before

    def test_flipbook_frames_match(self, pack: PackInfo) -> None:
        """Test flipbook frames stay identical on disk."""
        frame = rgba(128, 100, 160, shape=(4, 4))
        texture = self._mer(Path(pack.path), "fire_mer", np.concatenate([frame, frame]))

        assert add_material_grain(pack, 20, seed=1) == [texture]

        pixels = PixelBuffer.load(texture).pixels
        assert pixels.shape == (8, 4, 4)
        assert np.array_equal(pixels[:4], pixels[4:])
