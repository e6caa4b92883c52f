import numpy as np
import pytest
from PIL import Image

from utils.codec import as_rgba_buffer, load_rgba, load_stroke, output_format, save_rgba
from utils.errors import ImageReadError, ImageWriteError, PreconditionError


def test_rgb_source_loads_opaque(tmp_path):
    p = tmp_path / "rgb.png"
    Image.new("RGB", (5, 3), (10, 20, 30)).save(p)
    px = load_rgba(str(p))
    assert px.shape == (3, 5, 4)
    assert px.dtype == np.uint8
    assert (px[..., 3] == 255).all()
    assert tuple(px[0, 0, :3]) == (10, 20, 30)


def test_alpha_survives_load(tmp_path):
    p = tmp_path / "rgba.png"
    Image.new("RGBA", (4, 4), (1, 2, 3, 77)).save(p)
    assert (load_rgba(str(p))[..., 3] == 77).all()


def test_missing_file_is_read_error(tmp_path):
    with pytest.raises(ImageReadError):
        load_rgba(str(tmp_path / "nope.png"))


def test_garbage_file_is_read_error(tmp_path):
    p = tmp_path / "junk.png"
    p.write_bytes(b"definitely not an image")
    with pytest.raises(ImageReadError):
        load_stroke(str(p))


def test_output_format_by_extension():
    assert output_format("a.png") == "PNG"
    assert output_format("a.JPG") == "JPEG"
    assert output_format("a.jpeg") == "JPEG"
    assert output_format("a.webp") == "PNG"
    assert output_format("noext") == "PNG"


def test_unknown_extension_writes_png_bytes(tmp_path):
    p = tmp_path / "out.bin"
    save_rgba(np.zeros((4, 4, 4), dtype=np.uint8), str(p))
    assert p.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_jpeg_output_drops_alpha(tmp_path):
    p = tmp_path / "out.jpg"
    px = np.full((8, 8, 4), 200, dtype=np.uint8)
    save_rgba(px, str(p))
    with Image.open(p) as img:
        assert img.format == "JPEG"
        assert img.mode == "RGB"


def test_forced_png_ignores_extension(tmp_path):
    p = tmp_path / "out.jpg"
    save_rgba(np.zeros((4, 4, 4), dtype=np.uint8), str(p), fmt="PNG")
    with Image.open(p) as img:
        assert img.format == "PNG"


def test_missing_parent_directory_is_created(tmp_path):
    p = tmp_path / "a" / "b" / "out.png"
    save_rgba(np.zeros((4, 4, 4), dtype=np.uint8), str(p))
    assert p.exists()


def test_unwritable_path_is_write_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(ImageWriteError):
        save_rgba(np.zeros((4, 4, 4), dtype=np.uint8), str(blocker / "out.png"))


def test_rgb_buffer_gets_opaque_alpha():
    out = as_rgba_buffer(np.zeros((2, 3, 3), dtype=np.uint8))
    assert out.shape == (2, 3, 4)
    assert (out[..., 3] == 255).all()


@pytest.mark.parametrize("shape", [(4, 4), (4, 4, 2), (0, 4, 4)])
def test_bad_buffer_shape_rejected(shape):
    with pytest.raises(PreconditionError):
        as_rgba_buffer(np.zeros(shape, dtype=np.uint8))
