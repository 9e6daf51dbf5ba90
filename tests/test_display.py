
import numpy as np, cv2, pytest

from core.display import map_to_display, mirror_rect, letterbox_transform, preview_frame_size, box_to_frame
from core.models import BoundingBox, DisplayRect, Size


def _full(size: Size) -> BoundingBox:
    return BoundingBox(left=0, top=0, width=size.width, height=size.height)

def test_full_extent_matching_aspect():
    frame = Size(width=480, height=640)
    display = Size(width=960, height=1280)
    r = map_to_display(_full(frame), frame, display, False)
    assert r.left == pytest.approx(0) and r.top == pytest.approx(0)
    assert r.width == pytest.approx(960) and r.height == pytest.approx(1280)

def test_letterbox_taller_display():
    scale, dx, dy = letterbox_transform(Size(width=640, height=480), Size(width=1080, height=1920))
    assert scale == pytest.approx(1.6875)
    assert dx == 0 and dy == pytest.approx(555)

def test_landscape_display_portrait_frame_mirrored():
    display = Size(width=1920, height=1080)
    frame = Size(width=480, height=640)
    plain = map_to_display(_full(frame), frame, display, False)
    assert plain.top == pytest.approx(0) and plain.bottom == pytest.approx(1080)
    assert plain.left == pytest.approx(555) and plain.right == pytest.approx(1365)

    mirrored = map_to_display(_full(frame), frame, display, True)
    assert mirror_rect(mirrored, display.width) == plain

def test_mirror_is_involution():
    r = DisplayRect(left=10.5, top=3, right=200.25, bottom=90)
    assert mirror_rect(mirror_rect(r, 640), 640) == r
    m = mirror_rect(r, 640)
    assert (m.left, m.right) == (439.75, 629.5)
    assert (m.top, m.bottom) == (r.top, r.bottom)

def test_box_maps_with_offset():
    display = Size(width=1920, height=1080)
    frame = Size(width=480, height=640)
    r = map_to_display(BoundingBox(left=100, top=64, width=32, height=128), frame, display, False)
    assert r.left == pytest.approx(100 * 1.6875 + 555)
    assert r.top == pytest.approx(64 * 1.6875)
    assert r.height == pytest.approx(128 * 1.6875)

def test_preview_frame_size_swaps_for_rotated_sensor():
    assert preview_frame_size(640, 480, 90) == Size(width=480, height=640)
    assert preview_frame_size(640, 480, 270) == Size(width=480, height=640)
    assert preview_frame_size(640, 480, 180) == Size(width=640, height=480)

@pytest.mark.parametrize("rotation,code", [
    (90, cv2.ROTATE_90_CLOCKWISE), (180, cv2.ROTATE_180), (270, cv2.ROTATE_90_COUNTERCLOCKWISE),
])
def test_box_to_frame_undoes_rotation(rotation, code):
    W, H = 64, 48
    raw = np.zeros((H, W), dtype=np.uint8)
    raw[5:5 + 10, 20:20 + 30] = 255  # top=5 height=10 left=20 width=30
    up = cv2.rotate(raw, code)
    ys, xs = np.nonzero(up)
    up_box = BoundingBox(left=int(xs.min()), top=int(ys.min()),
                         width=int(xs.max() - xs.min() + 1), height=int(ys.max() - ys.min() + 1))
    back = box_to_frame(up_box, W, H, rotation)
    assert (back.left, back.top, back.width, back.height) == (20, 5, 30, 10)
