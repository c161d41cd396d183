import io
from types import SimpleNamespace

import pytest
from PIL import Image

from cleaning_cards.errors import HeicConversionFailed, ImageDecodeFailed
from cleaning_cards.image_processing import _pyheif_to_image, convert_heic_to_jpeg, is_heic, prepare_photo, resize_image_bytes
from tests.helpers import make_jpeg


def _size(jpeg: bytes):
    with Image.open(io.BytesIO(jpeg)) as im:
        return im.format, im.size


def test_resize_downscales_long_edge_to_1280():
    data = make_jpeg(2000, 1000)
    out, w, h, orient = resize_image_bytes(data, max_size=1280, quality=75)
    assert (w, h) == (1280, 640)
    assert orient == "landscape"
    assert _size(out) == ("JPEG", (1280, 640))


def test_resize_portrait_keeps_aspect_ratio():
    data = make_jpeg(900, 1800)
    _, w, h, orient = resize_image_bytes(data, max_size=1280, quality=75)
    assert h == 1280 and w == 640
    assert orient == "portrait"


def test_resize_small_image_untouched():
    data = make_jpeg(100, 80)
    out, w, h, _ = resize_image_bytes(data, max_size=1280, quality=75)
    assert (w, h) == (100, 80)
    assert len(out) > 0


def test_png_source_becomes_jpeg():
    img = Image.new("RGBA", (300, 200), (10, 20, 30, 128))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    photo = prepare_photo(buf.getvalue(), filename="room.png", mime_type="image/png", locale="ja-JP")
    assert _size(photo.jpeg) == ("JPEG", (300, 200))
    assert photo.locale == "ja-JP"


def test_corrupt_bytes_raise_decode_failed():
    with pytest.raises(ImageDecodeFailed):
        resize_image_bytes(b"definitely not an image", 1280, 75)


def test_non_image_mime_rejected():
    with pytest.raises(ImageDecodeFailed):
        prepare_photo(make_jpeg(), filename="notes.txt", mime_type="text/plain")


def test_empty_data_rejected():
    with pytest.raises(ImageDecodeFailed):
        prepare_photo(b"", mime_type="image/jpeg")


@pytest.mark.parametrize(
    "mime,name,expected",
    [
        ("image/heic", "a.bin", True),
        ("image/heif", None, True),
        ("", "IMG_0001.HEIC", True),
        (None, "photo.heif", True),
        ("image/jpeg", "room.jpg", False),
        (None, None, False),
    ],
)
def test_is_heic(mime, name, expected):
    assert is_heic(mime, name) is expected


def test_heic_falls_back_to_second_decoder(monkeypatch):
    def primary(data, quality):
        raise OSError("plugin cannot identify image")

    monkeypatch.setattr("cleaning_cards.image_processing._heic_via_pillow", primary)
    monkeypatch.setattr("cleaning_cards.image_processing._heic_via_pyheif", lambda data, quality: b"jpeg-from-fallback")
    assert convert_heic_to_jpeg(b"heic", 85) == b"jpeg-from-fallback"


def test_heic_both_decoders_fail(monkeypatch):
    def fail(data, quality):
        raise OSError("nope")

    monkeypatch.setattr("cleaning_cards.image_processing._heic_via_pillow", fail)
    monkeypatch.setattr("cleaning_cards.image_processing._heic_via_pyheif", fail)
    with pytest.raises(HeicConversionFailed):
        convert_heic_to_jpeg(b"heic", 85)


def test_prepare_photo_converts_heic_before_resizing(monkeypatch):
    seen = {}

    def fake_convert(data, quality):
        seen["quality"] = quality
        return make_jpeg(2560, 1920)

    monkeypatch.setattr("cleaning_cards.image_processing.convert_heic_to_jpeg", fake_convert)
    photo = prepare_photo(b"heic-bytes", filename="IMG_1.HEIC", mime_type="image/heic", heic_quality=90)
    assert seen["quality"] == 90
    assert (photo.width, photo.height) == (1280, 960)
    assert photo.orientation == "landscape"


def test_oversized_image_raises_decode_failed(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ImageDecodeFailed):
        prepare_photo(make_jpeg(200, 150), mime_type="image/jpeg")


def test_pyheif_result_becomes_pillow_image():
    heif_file = SimpleNamespace(mode="RGB", size=(2, 1), data=bytes([255, 0, 0, 0, 0, 255]), stride=6)
    im = _pyheif_to_image(heif_file)
    assert im.size == (2, 1)
    assert im.getpixel((0, 0)) == (255, 0, 0)
    assert im.getpixel((1, 0)) == (0, 0, 255)
