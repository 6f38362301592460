import unittest

import numpy as np

from yolo_scorer.config import DecodeMode, YoloModelConfig
from yolo_scorer.decode import decode, decode_raw, map_boxes, sigmoid, unmap_boxes
from yolo_scorer.errors import ConfigurationMismatch
from yolo_scorer.letterbox import letterbox_geometry
from yolo_scorer.metadata import labels_from_names

HIGH = 10.0  # sigmoid -> ~0.99995
LOW = -10.0


def _cfg(**kwargs) -> YoloModelConfig:
    params = dict(
        width=64,
        height=64,
        dimensions=7,
        labels=labels_from_names(["cat", "dog"]),
        confidence=0.2,
        mul_confidence=0.25,
        overlap=0.45,
        decode_mode=DecodeMode.RAW,
        outputs=("p3",),
        strides=(32,),
        shapes=(2,),
        anchors=(((10, 20), (30, 40)),),
    )
    params.update(kwargs)
    return YoloModelConfig(**params)


def _empty(na: int, g: int, dims: int = 7) -> np.ndarray:
    out = np.full((1, na, g, g, dims), LOW, dtype=np.float32)
    return out


class TestRawDecode(unittest.TestCase):
    def test_half_sigmoid_gives_anchor_sized_box(self) -> None:
        out = _empty(2, 2)
        # anchor 0, row 1, col 0: all box logits 0 -> sigmoid 0.5
        out[0, 0, 1, 0, :4] = 0.0
        out[0, 0, 1, 0, 4] = HIGH
        out[0, 0, 1, 0, 5] = HIGH

        dets = decode_raw([out], (64, 64), _cfg())
        self.assertEqual(len(dets), 1)
        det = dets[0]
        # cx = (0.5*2 - 0.5 + 0) * 32 = 16, cy = (0.5*2 - 0.5 + 1) * 32 = 48
        # w = (0.5*2)**2 * 10 = 10, h = (0.5*2)**2 * 20 = 20
        self.assertTrue(np.allclose(det.as_xyxy(), (11, 38, 21, 58), atol=1e-4))
        self.assertAlmostEqual(det.width, 10.0, places=4)
        self.assertAlmostEqual(det.height, 20.0, places=4)
        self.assertEqual(det.label.name, "cat")
        expected = float(sigmoid(np.float32(HIGH)) ** 2)
        self.assertAlmostEqual(det.score, expected, places=5)

    def test_size_formula_regression(self) -> None:
        out = _empty(2, 2)
        # anchor 1 (30x40), row 0, col 1, tw/th chosen so sigmoid = 0.75
        logit = float(np.log(0.75 / 0.25))
        out[0, 1, 0, 1, :2] = 0.0
        out[0, 1, 0, 1, 2:4] = logit
        out[0, 1, 0, 1, 4] = HIGH
        out[0, 1, 0, 1, 6] = HIGH

        dets = decode_raw([out], (64, 64), _cfg(width=128, height=128))
        self.assertEqual(len(dets), 1)
        # w = (0.75*2)**2 * 30 = 67.5, h = 2.25 * 40 = 90, centered at (48, 16) in the
        # 128 input; a 64x64 image has gain 2, so halve and clip the top edge
        self.assertTrue(np.allclose(dets[0].as_xyxy(), (7.125, 0.0, 40.875, 30.5), atol=1e-3))
        self.assertEqual(dets[0].label.name, "dog")

    def test_flat_offset_layout(self) -> None:
        # offset = (g*g*a + g*y + x) * dims
        na, g, dims = 2, 2, 7
        flat = np.full(na * g * g * dims, LOW, dtype=np.float32)
        a, y, x = 1, 1, 1
        offset = (g * g * a + g * y + x) * dims
        flat[offset : offset + 4] = 0.0
        flat[offset + 4] = HIGH
        flat[offset + 5] = HIGH

        dets = decode_raw([flat], (64, 64), _cfg())
        self.assertEqual(len(dets), 1)
        # cx = cy = 1.5 * 32 = 48; anchor 1 -> 30x40
        self.assertTrue(np.allclose(dets[0].as_xyxy(), (33, 28, 63, 63), atol=1e-4))

    def test_low_objectness_rejected(self) -> None:
        out = _empty(2, 2)
        out[0, 0, 0, 0, :4] = 0.0
        out[0, 0, 0, 0, 5] = HIGH  # objectness stays LOW
        self.assertEqual(decode_raw([out], (64, 64), _cfg()), [])

    def test_low_class_score_rejected(self) -> None:
        out = _empty(2, 2)
        out[0, 0, 0, 0, :4] = 0.0
        out[0, 0, 0, 0, 4] = HIGH
        self.assertEqual(decode_raw([out], (64, 64), _cfg()), [])

    def test_best_class_wins(self) -> None:
        out = _empty(2, 2)
        out[0, 0, 0, 0, :4] = 0.0
        out[0, 0, 0, 0, 4] = HIGH
        out[0, 0, 0, 0, 5] = 1.0
        out[0, 0, 0, 0, 6] = 2.0
        dets = decode_raw([out], (64, 64), _cfg())
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].label.name, "dog")
        self.assertAlmostEqual(dets[0].score, float(sigmoid(np.float32(HIGH)) * sigmoid(np.float32(2.0))), places=5)

    def test_multiple_scales(self) -> None:
        cfg = _cfg(
            outputs=("p3", "p4"),
            strides=(16, 32),
            shapes=(4, 2),
            anchors=(((10, 20),), ((30, 40),)),
        )
        small = _empty(1, 4)
        small[0, 0, 2, 3, :4] = 0.0
        small[0, 0, 2, 3, 4] = HIGH
        small[0, 0, 2, 3, 5] = HIGH
        large = _empty(1, 2)
        large[0, 0, 0, 0, :4] = 0.0
        large[0, 0, 0, 0, 4] = HIGH
        large[0, 0, 0, 0, 6] = HIGH

        dets = decode_raw([small, large], (64, 64), cfg)
        self.assertEqual(len(dets), 2)
        by_label = {d.label.name: d for d in dets}
        # cat: cx = 3.5*16 = 56, cy = 2.5*16 = 40, 10x20
        self.assertTrue(np.allclose(by_label["cat"].as_xyxy(), (51, 30, 61, 50), atol=1e-4))
        # dog: cx = cy = 0.5*32 = 16, 30x40
        self.assertTrue(np.allclose(by_label["dog"].as_xyxy(), (1, 0, 31, 36), atol=1e-4))

    def test_size_mismatch_raises(self) -> None:
        with self.assertRaises(ConfigurationMismatch):
            decode_raw([np.zeros((1, 2, 3, 3, 7), dtype=np.float32)], (64, 64), _cfg())

    def test_output_count_mismatch_raises(self) -> None:
        out = _empty(2, 2)
        with self.assertRaises(ConfigurationMismatch):
            decode_raw([out, out], (64, 64), _cfg())

    def test_dispatch(self) -> None:
        out = _empty(2, 2)
        out[0, 0, 1, 0, :4] = 0.0
        out[0, 0, 1, 0, 4] = HIGH
        out[0, 0, 1, 0, 5] = HIGH
        self.assertEqual(len(decode([out], (64, 64), _cfg())), 1)


class TestCoordinateMapping(unittest.TestCase):
    def test_map_then_unmap_round_trips(self) -> None:
        geo = letterbox_geometry((640, 480), (416, 416))
        boxes = np.array([[0.0, 0.0, 10.0, 10.0], [100.5, 50.25, 639.0, 479.0]])
        back = unmap_boxes(map_boxes(boxes, geo), geo)
        self.assertTrue(np.allclose(back, boxes))

    def test_unmap_then_map_round_trips(self) -> None:
        geo = letterbox_geometry((300, 500), (640, 640))
        net = np.array([[120.0, 10.0, 300.0, 600.0]])
        self.assertTrue(np.allclose(map_boxes(unmap_boxes(net, geo), geo), net))

    def test_clip_bounds(self) -> None:
        geo = letterbox_geometry((100, 50), (100, 100))
        out = unmap_boxes(np.array([[-20.0, -20.0, 500.0, 500.0]]), geo, (100, 50))
        self.assertTrue(np.array_equal(out[0], [0.0, 0.0, 99.0, 49.0]))


if __name__ == "__main__":
    unittest.main()
