import unittest
import numpy as np

from core import DrawingContextUnavailable
from core.data_manager import VolumeRegistry
from slicing import (
    Axis,
    RegionColorEntry,
    VolumeModel,
    VolumeSlice,
    screen_blend,
    window_to_bytes,
)


def rotation_z(degrees):
    angle = np.radians(degrees)
    matrix = np.eye(4)
    matrix[:2, :2] = [[np.cos(angle), -np.sin(angle)], [np.sin(angle), np.cos(angle)]]
    return matrix


def uniform_volume(value, dims=(3, 3, 3), dtype=np.int16):
    return VolumeModel(np.full(dims[0] * dims[1] * dims[2], value, dtype=dtype), dims)


class TestBlendHelpers(unittest.TestCase):
    def test_window_to_bytes(self):
        values = np.array([-10.0, 0.0, 31.5, 63.0, 100.0])
        np.testing.assert_array_equal(window_to_bytes(values, 0, 63), [0, 0, 127, 255, 255])

    def test_empty_window(self):
        np.testing.assert_array_equal(window_to_bytes(np.array([4.0, 5.0, 6.0]), 5, 5), [0, 0, 255])

    def test_screen_blend(self):
        base = np.array([0, 100, 255], dtype=np.uint8)
        layer = np.array([80, 100, 10], dtype=np.uint8)
        np.testing.assert_array_equal(screen_blend(base, layer), [80, 161, 255])


class TestEndToEnd(unittest.TestCase):
    def test_ramp_z_slice(self):
        registry = VolumeRegistry()
        volume = VolumeModel(np.arange(64, dtype=np.uint8), (4, 4, 4))
        self.assertEqual((volume.window_low, volume.window_high), (0, 63))
        volume_id = registry.add_volume(volume)

        volume_slice = registry.extract_slice(volume_id, Axis.Z, 2)
        raster = volume_slice.raster
        self.assertEqual(raster.shape, (4, 4, 4))
        np.testing.assert_array_equal(raster[0, 0], [190, 190, 190, 255])
        self.assertTrue(volume_slice.texture_needs_update)

        # voxel (0, 0, 2) = 32 lands at the opposite corner
        np.testing.assert_array_equal(raster[3, 3, :3], [129, 129, 129])


class TestWindowing(unittest.TestCase):
    def paint(self, volume, low, high):
        registry = VolumeRegistry()
        volume_id = registry.add_volume(volume)
        volume.set_window(low, high)
        return registry.extract_slice(volume_id, Axis.Z, 1).raster

    def test_value_at_window_high(self):
        raster = self.paint(uniform_volume(50), 0, 50)
        self.assertTrue(np.all(raster[..., :3] == 255))
        self.assertTrue(np.all(raster[..., 3] == 255))

    def test_value_at_window_low(self):
        raster = self.paint(uniform_volume(50), 50, 100)
        self.assertTrue(np.all(raster[..., :3] == 0))

    def test_uniform_volume_paints_black(self):
        registry = VolumeRegistry()
        volume = uniform_volume(50)
        self.assertEqual((volume.window_low, volume.window_high), (50, 50))
        volume_id = registry.add_volume(volume)
        raster = registry.extract_slice(volume_id, Axis.Z, 1).raster
        self.assertTrue(np.all(raster[..., :3] == 0))
        self.assertTrue(np.all(raster[..., 3] == 255))

    def test_values_clamp(self):
        self.assertTrue(np.all(self.paint(uniform_volume(50), 0, 25)[..., :3] == 255))
        self.assertTrue(np.all(self.paint(uniform_volume(50), 60, 100)[..., :3] == 0))


class TestColorTable(unittest.TestCase):
    def setUp(self):
        self.table = [
            None,
            RegionColorEntry(1, "A", "L", (255, 0, 0, 255)),
            RegionColorEntry(2, "B", "R", (0, 0, 255, 255)),
        ]

    def test_missing_entry_is_transparent(self):
        for mix_ratio in (0.0, 0.5, 1.0):
            volume = uniform_volume(3, dtype=np.uint8)
            volume.lookup_table = self.table
            volume.mix_ratio = mix_ratio
            registry = VolumeRegistry()
            volume_id = registry.add_volume(volume)
            raster = registry.extract_slice(volume_id, Axis.Z, 1).raster
            self.assertTrue(np.all(raster[..., 3] == 0))
            self.assertTrue(np.all(raster[..., :3] == 0))

    def test_entry_color(self):
        volume = uniform_volume(2.7, dtype=np.float32)
        volume.lookup_table = self.table
        registry = VolumeRegistry()
        volume_id = registry.add_volume(volume)
        raster = registry.extract_slice(volume_id, Axis.Y, 0).raster
        np.testing.assert_array_equal(raster[0, 0], [0, 0, 255, 255])

    def test_negative_values_are_missing(self):
        volume = uniform_volume(-1, dtype=np.int16)
        volume.lookup_table = self.table
        registry = VolumeRegistry()
        volume_id = registry.add_volume(volume)
        raster = registry.extract_slice(volume_id, Axis.X, 0).raster
        self.assertTrue(np.all(raster[..., 3] == 0))


class TestOverlays(unittest.TestCase):
    def setUp(self):
        self.registry = VolumeRegistry()
        self.main = VolumeModel(np.arange(27, dtype=np.int16), (3, 3, 3))
        self.overlay = VolumeModel(np.arange(27, dtype=np.int16)[::-1].copy(), (3, 3, 3))
        self.main_id = self.registry.add_volume(self.main)
        self.overlay_id = self.registry.add_volume(self.overlay)
        self.registry.prepare_slices(self.main_id)
        self.registry.attach_overlay(self.main_id, self.overlay_id)

    def test_layer_alpha_half_mix(self):
        self.main.mix_ratio = 0.5
        self.registry.repaint(self.main_id, Axis.Z)
        layers = self.registry.get_slice(self.main_id, Axis.Z).layer_rasters
        self.assertEqual(len(layers), 2)
        for layer in layers:
            self.assertTrue(np.all(np.abs(layer[..., 3].astype(int) - 127) <= 1))

    def test_screen_composite(self):
        self.main.mix_ratio = 0.25
        self.registry.repaint(self.main_id, Axis.Z)
        volume_slice = self.registry.get_slice(self.main_id, Axis.Z)
        main_layer, overlay_layer = volume_slice.layer_rasters
        np.testing.assert_array_equal(volume_slice.raster, screen_blend(main_layer, overlay_layer))
        self.assertEqual(int(main_layer[0, 0, 3]), 63)
        self.assertEqual(int(overlay_layer[0, 0, 3]), 191)

    def test_mix_ratio_is_clamped(self):
        self.main.mix_ratio = 3.0
        self.registry.repaint(self.main_id, Axis.Z)
        main_layer, overlay_layer = self.registry.get_slice(self.main_id, Axis.Z).layer_rasters
        self.assertTrue(np.all(main_layer[..., 3] == 255))
        self.assertTrue(np.all(overlay_layer[..., 3] == 0))

    def test_overlay_follows_main_index(self):
        volume_slice = self.registry.get_slice(self.main_id, Axis.Z)
        volume_slice.set_index(2)
        self.registry.repaint(self.main_id, Axis.Z)
        overlay_slice = self.registry.get_slice(self.overlay_id, Axis.Z)
        self.assertEqual(overlay_slice.index, 2)
        self.assertEqual(overlay_slice.geometry.index, 2)
        self.assertTrue(overlay_slice.shallow)
        self.assertIsNone(overlay_slice.raster)

    def test_without_overlays_mix_ratio_ignored(self):
        self.main.detach_overlay(self.overlay)
        self.main.mix_ratio = 0.1
        self.registry.repaint(self.main_id, Axis.Z)
        layers = self.registry.get_slice(self.main_id, Axis.Z).layer_rasters
        self.assertEqual(len(layers), 1)
        self.assertTrue(np.all(layers[0][..., 3] == 255))


class TestRepaint(unittest.TestCase):
    def setUp(self):
        self.registry = VolumeRegistry()
        self.volume = VolumeModel(np.arange(60, dtype=np.float64), (3, 4, 5))
        self.volume_id = self.registry.add_volume(self.volume)

    def test_repaint_is_idempotent(self):
        volume_slice = self.registry.extract_slice(self.volume_id, Axis.X, 1)
        first = volume_slice.raster.copy()
        self.registry.repaint(self.volume_id, Axis.X)
        self.assertEqual(volume_slice.raster.tobytes(), first.tobytes())

    def test_set_index_marks_geometry_stale(self):
        volume_slice = self.registry.extract_slice(self.volume_id, Axis.Z, 1)
        self.assertFalse(volume_slice.geometry_needs_update)
        volume_slice.set_index(1)
        self.assertFalse(volume_slice.geometry_needs_update)
        volume_slice.set_index(3)
        self.assertTrue(volume_slice.geometry_needs_update)

        before = volume_slice.raster.copy()
        self.registry.repaint(self.volume_id, Axis.Z)
        self.assertFalse(volume_slice.geometry_needs_update)
        self.assertEqual(volume_slice.geometry.index, 3)
        self.assertFalse(np.array_equal(before, volume_slice.raster))

    def test_value_at_uv(self):
        volume = VolumeModel(np.arange(64, dtype=np.uint8), (4, 4, 4))
        volume_id = self.registry.add_volume(volume)
        volume_slice = self.registry.extract_slice(volume_id, Axis.Z, 2)
        self.assertEqual(volume_slice.value_at_uv(volume, 0.0, 1.0), 47)
        self.assertEqual(volume_slice.value_at_uv(volume, 1.0, 0.0), 32)

    def test_presentation_clears_upload_flag(self):
        volume_slice = self.registry.extract_slice(self.volume_id, Axis.Y, 0)
        presentation = volume_slice.presentation()
        self.assertFalse(volume_slice.texture_needs_update)
        self.assertEqual(presentation.raster.shape, (5, 3, 4))
        self.assertAlmostEqual(presentation.plane_width, 3.0)
        self.assertAlmostEqual(presentation.plane_height, 5.0)

    def test_zero_size_plane(self):
        volume_slice = VolumeSlice(self.volume_id, 0, Axis.Z)
        volume = VolumeModel(np.zeros(64, dtype=np.uint8), (4, 4, 4), transform=rotation_z(45))
        with self.assertRaises(DrawingContextUnavailable):
            volume_slice.repaint(volume)

    def test_failed_slice_does_not_stop_others(self):
        volume = VolumeModel(np.zeros(64, dtype=np.uint8), (4, 4, 4), transform=rotation_z(45))
        volume_id = self.registry.add_volume(volume)
        self.registry.prepare_slices(volume_id)

        repainted = []
        self.registry.slice_repainted.connect(lambda vid, axis: repainted.append((vid, axis)))
        self.registry.repaint_all_slices(volume_id)
        self.assertEqual(repainted, [(volume_id, int(Axis.X))])


if __name__ == '__main__':
    unittest.main()
