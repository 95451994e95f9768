"""Tests for pack selection and the full tuning pass."""

import json
from pathlib import Path

import numpy as np

from conftest import rgba, write_texture, write_texture_set
from pack_tuner.tuning import PackInfo, PixelBuffer, TuningParameters, TuningPlan, tune_packs
from pack_tuner.tuning.orchestrator import select_packs


class TestSelectPacks:
    """Test pack selection."""

    def test_drops_disabled_and_pathless(self, tmp_path: Path) -> None:
        """Test disabled and pathless packs are dropped."""
        packs = [
            PackInfo(name="A", path=tmp_path / "a"),
            PackInfo(name="B", path=tmp_path / "b", enabled=False),
            PackInfo(name="C", path=None),
        ]

        assert [p.name for p in select_packs(packs)] == ["A"]

    def test_same_folder_is_processed_once(self, tmp_path: Path, caplog) -> None:
        """Test repeated folders are processed once."""
        packs = [
            PackInfo(name="Vanilla RTX", path=tmp_path / "rtx"),
            PackInfo(name="Custom", path=Path(str(tmp_path / "rtx") + "/")),
            PackInfo(name="Upper", path=Path(str(tmp_path / "RTX"))),
        ]

        with caplog.at_level("WARNING"):
            selected = select_packs(packs)

        assert [p.name for p in selected] == ["Vanilla RTX"]
        assert "Custom was selected twice" in caplog.text


class TestTuningPlan:
    """Test option gating."""

    def test_defaults_give_empty_plan(self) -> None:
        """Test default parameters give an empty plan."""
        assert TuningPlan.from_parameters(TuningParameters()).is_empty()

    def test_only_changed_options_are_set(self) -> None:
        """Test only changed options are planned."""
        plan = TuningPlan.from_parameters(
            TuningParameters(add_ambient_light=True, roughness_control=-5)
        )

        assert plan.emissivity == (1.0, True)
        assert plan.roughness_control == -5
        assert plan.fog_multiplier is None
        assert plan.normal_intensity is None
        assert plan.lazify_alpha is None
        assert plan.material_noise_offset is None


class TestTunePacks:
    """Test full tuning passes."""

    def _mer_pack(self, pack: PackInfo) -> Path:
        folder = Path(pack.path) / "textures" / "blocks"
        texture = write_texture(
            folder / "ore_mer.png",
            rgba([[0, 128, 255]], [[10, 50, 200]], [[0, 128, 255]], shape=(1, 3)),
        )
        write_texture_set(folder, "ore", color="ore", metalness_emissive_roughness="ore_mer")
        return texture

    def test_emissivity_then_roughness(self, pack: PackInfo) -> None:
        """Test emissivity followed by roughness on one MER texture."""
        texture = self._mer_pack(pack)

        report = tune_packs(
            [pack], TuningParameters(emissivity_multiplier=2.0, roughness_control=20)
        )

        pixels = PixelBuffer.load(texture).pixels[0, :, :3]
        assert pixels.tolist() == [[0, 13, 61], [109, 63, 183], [255, 249, 255]]
        assert report.packs == ["Test Pack"]
        assert set(report.written) == {"emissivity", "roughness"}
        assert report.total_files == 2

    def test_default_parameters_touch_nothing(self, pack: PackInfo) -> None:
        """Test default parameters write nothing."""
        texture = self._mer_pack(pack)
        before = texture.read_bytes()

        report = tune_packs([pack], TuningParameters())

        assert report.total_files == 0
        assert texture.read_bytes() == before

    def test_unit_fog_multiplier_leaves_fog_files(self, pack: PackInfo) -> None:
        """Test fog at 1.0 leaves fog files alone."""
        fog_dir = Path(pack.path) / "fogs"
        fog_dir.mkdir()
        fog_file = fog_dir / "default.json"
        fog_file.write_text(json.dumps({"minecraft:fog_settings": {"volumetric": {}}}))
        before = fog_file.read_bytes()
        self._mer_pack(pack)

        report = tune_packs([pack], TuningParameters(fog_multiplier=1.0, roughness_control=10))

        assert fog_file.read_bytes() == before
        assert "fog" not in report.written

    def test_fog_file_reported_once(self, pack: PackInfo) -> None:
        """Test a fog file rewritten by both passes is reported once."""
        fog_dir = Path(pack.path) / "fogs"
        fog_dir.mkdir()
        fog_file = fog_dir / "default.json"
        document = {
            "minecraft:fog_settings": {
                "volumetric": {
                    "density": {"air": {"max_density": 0.5}},
                    "media_coefficients": {
                        "air": {"scattering": [0.2, 0.2, 0.2]},
                        "water": {"scattering": [0.1, 0.1, 0.1], "absorption": [0.1, 0.1, 0.1]},
                    },
                }
            }
        }
        fog_file.write_text(json.dumps(document))

        report = tune_packs([pack], TuningParameters(fog_multiplier=2.0))

        assert report.written["fog"] == [fog_file]
        assert report.total_files == 1

    def test_duplicate_pack_tuned_once(self, pack: PackInfo) -> None:
        """Test a pack selected twice is tuned once."""
        texture = self._mer_pack(pack)
        twin = PackInfo(name="Twin", path=pack.path)

        tune_packs([pack, twin], TuningParameters(emissivity_multiplier=2.0))

        # A second pass would have scaled green again
        assert PixelBuffer.load(texture).green.tolist() == [[13, 63, 249]]

    def test_grain_seed_is_reproducible(self, tmp_path: Path) -> None:
        """Test a seeded pass is reproducible."""
        results = []
        for run in ("first", "second"):
            pack = PackInfo(name=run, path=tmp_path / run)
            Path(pack.path).mkdir()
            texture = write_texture(
                Path(pack.path) / "stone_mer.png", rgba(100, 100, 100, shape=(4, 4))
            )
            write_texture_set(Path(pack.path), "stone", metalness_emissive_roughness="stone_mer")

            tune_packs([pack], TuningParameters(material_noise_offset=8), seed=3)
            results.append(PixelBuffer.load(texture).pixels)

        assert np.array_equal(results[0], results[1])
