import unittest
import numpy as np

from core import ScanHeader, SpatialUnit, UnsupportedOrientation
from slicing import AffineResolver, TransformMethod, rotation_part


def make_header(**fields):
    defaults = dict(dims=(4, 4, 4), pixdim=(1.0, 2.0, 3.0, 4.0), xyzt_units=SpatialUnit.MM.value)
    defaults.update(fields)
    return ScanHeader(**defaults)


class TestIdentityMethod(unittest.TestCase):
    def test_no_codes_uses_pixdim(self):
        info = AffineResolver().resolve(make_header())
        self.assertEqual(info.method, TransformMethod.IDENTITY)
        np.testing.assert_allclose(info.rotation, np.eye(4))
        np.testing.assert_allclose(info.spacing, [2.0, 3.0, 4.0])

    def test_spatial_unit_factors(self):
        expected = {
            SpatialUnit.MM: 1.0,
            SpatialUnit.METER: 1000.0,
            SpatialUnit.MICRON: 0.001,
            SpatialUnit.UNKNOWN: 1.0,
        }
        for unit, factor in expected.items():
            info = AffineResolver().resolve(make_header(xyzt_units=unit.value))
            np.testing.assert_allclose(info.spacing, np.array([2.0, 3.0, 4.0]) * factor)

    def test_temporal_bits_ignored(self):
        # mm + seconds
        info = AffineResolver().resolve(make_header(xyzt_units=SpatialUnit.MM.value | 8))
        np.testing.assert_allclose(info.spacing, [2.0, 3.0, 4.0])

    def test_zero_pixdim_is_unusable(self):
        with self.assertRaises(UnsupportedOrientation):
            AffineResolver().resolve(make_header(pixdim=(1.0, 0.0, 1.0, 1.0)))


class TestSFormMethod(unittest.TestCase):
    def test_sform_takes_precedence_over_qform(self):
        srow = np.diag([2.0, 3.0, 4.0, 1.0])
        header = make_header(sform_code=1, qform_code=1, quatern_d=0.5, srow=srow)
        info = AffineResolver().resolve(header)
        self.assertEqual(info.method, TransformMethod.SFORM)
        self.assertEqual(info.code, 1)
        np.testing.assert_allclose(info.rotation, np.eye(4))
        np.testing.assert_allclose(info.spacing, [2.0, 3.0, 4.0])

    def test_spacing_from_columns_not_pixdim(self):
        srow = np.array([
            [0.0, -2.0, 0.0, 10.0],
            [2.0, 0.0, 0.0, 20.0],
            [0.0, 0.0, 3.0, 30.0],
            [0.0, 0.0, 0.0, 1.0],
        ])
        info = AffineResolver().resolve(make_header(sform_code=2, srow=srow, pixdim=(1, 9, 9, 9)))
        np.testing.assert_allclose(info.spacing, [2.0, 2.0, 3.0])
        expected = np.eye(4)
        expected[:3, :3] = [[0, -1, 0], [1, 0, 0], [0, 0, 1]]
        np.testing.assert_allclose(info.rotation, expected, atol=1e-12)

    def test_sform_unit_factor(self):
        srow = np.diag([0.002, 0.002, 0.002, 1.0])
        info = AffineResolver().resolve(
            make_header(sform_code=1, srow=srow, xyzt_units=SpatialUnit.METER.value)
        )
        np.testing.assert_allclose(info.spacing, [2.0, 2.0, 2.0])

    def test_degenerate_sform_falls_back_to_qform(self):
        srow = np.diag([1.0, 0.0, 1.0, 1.0])
        info = AffineResolver().resolve(make_header(sform_code=1, qform_code=1, srow=srow))
        self.assertEqual(info.method, TransformMethod.QFORM)


class TestQFormMethod(unittest.TestCase):
    def test_zero_quaternion_is_identity(self):
        info = AffineResolver().resolve(make_header(qform_code=1))
        self.assertEqual(info.method, TransformMethod.QFORM)
        np.testing.assert_allclose(info.rotation, np.eye(4), atol=1e-12)
        np.testing.assert_allclose(info.spacing, [2.0, 3.0, 4.0])

    def test_quarter_turn_about_z(self):
        d = np.sin(np.pi / 4)
        info = AffineResolver().resolve(make_header(qform_code=1, quatern_d=d))
        expected = np.array([[0, -1, 0], [1, 0, 0], [0, 0, 1]], dtype=float)
        np.testing.assert_allclose(info.rotation[:3, :3], expected, atol=1e-9)

    def test_offsets_not_applied(self):
        info = AffineResolver().resolve(
            make_header(qform_code=1, qoffset_x=5.0, qoffset_y=-3.0, qoffset_z=1.0)
        )
        np.testing.assert_allclose(info.rotation[:3, 3], [0.0, 0.0, 0.0])

    def test_half_turn_is_renormalized(self):
        for b in (1.0, 2.0):
            info = AffineResolver().resolve(make_header(qform_code=1, quatern_b=b))
            np.testing.assert_allclose(
                info.rotation[:3, :3], np.diag([1.0, -1.0, -1.0]), atol=1e-9
            )

    def test_negative_pixdim_taken_by_magnitude(self):
        info = AffineResolver().resolve(make_header(qform_code=1, pixdim=(-1.0, -2.0, 3.0, 4.0)))
        np.testing.assert_allclose(info.spacing, [2.0, 3.0, 4.0])

    def test_negative_qform_code_without_sform_fails(self):
        with self.assertRaises(UnsupportedOrientation):
            AffineResolver().resolve(make_header(qform_code=-1))


class TestRotationPart(unittest.TestCase):
    def test_strips_scale_and_translation(self):
        matrix = np.array([
            [0.0, 0.0, -3.0, 7.0],
            [2.0, 0.0, 0.0, 8.0],
            [0.0, 5.0, 0.0, 9.0],
            [0.0, 0.0, 0.0, 1.0],
        ])
        expected = np.array([
            [0.0, 0.0, -1.0, 0.0],
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ])
        np.testing.assert_allclose(rotation_part(matrix), expected)


if __name__ == '__main__':
    unittest.main()
