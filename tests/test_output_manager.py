"""
Module: tests.test_output_manager
Purpose: Saving generated images and speech to session folders
"""

import pytest
from PIL import Image

from conftest import make_png_b64
from sd_showcase.errors import ValidationError
from sd_showcase.utils.output_manager import OutputManager, safe_stem


def test_session_layout(tmp_path):
    mgr = OutputManager(str(tmp_path), session_name="my comparison!", add_timestamp=False)

    assert mgr.session_dir == tmp_path / "my_comparison"
    assert mgr.images_dir.is_dir()
    assert mgr.audio_dir.is_dir()


def test_save_image_decodes_data_uri(tmp_path):
    mgr = OutputManager(str(tmp_path), add_timestamp=False)

    path = mgr.save_image(f"data:image/png;base64,{make_png_b64(size=(8, 6))}", "a cat")

    assert path.name == "a_cat.png"
    with Image.open(path) as image:
        assert image.size == (8, 6)


def test_save_image_as_jpeg(tmp_path):
    mgr = OutputManager(str(tmp_path), add_timestamp=False, image_format="jpeg")

    path = mgr.save_image(f"data:image/png;base64,{make_png_b64()}", "castle")

    assert path.suffix == ".jpg"
    with Image.open(path) as image:
        assert image.format == "JPEG"


def test_repeated_names_get_counters(tmp_path):
    mgr = OutputManager(str(tmp_path), add_timestamp=False)
    data_uri = f"data:image/png;base64,{make_png_b64()}"

    first = mgr.save_image(data_uri, "dragon")
    second = mgr.save_image(data_uri, "dragon")

    assert first.name == "dragon.png"
    assert second.name == "dragon_1.png"


@pytest.mark.parametrize("data_uri", ["data:image/png;base64,!!!not-base64", "data:image/png;base64,QUJD"])
def test_undecodable_image_is_rejected(tmp_path, data_uri):
    mgr = OutputManager(str(tmp_path), add_timestamp=False)

    with pytest.raises(ValidationError):
        mgr.save_image(data_uri, "broken")

    assert list(mgr.images_dir.iterdir()) == []


def test_save_audio(tmp_path):
    mgr = OutputManager(str(tmp_path), add_timestamp=False)

    path = mgr.save_audio(b"ID3fake", "Fantasy Creatures")

    assert path.name == "Fantasy_Creatures.mp3"
    assert path.read_bytes() == b"ID3fake"


def test_safe_stem():
    assert safe_stem("a cat, on mars!") == "a_cat_on_mars"
    assert safe_stem("???") == "generated"
    assert len(safe_stem("x" * 200)) == 50
