"""
Output Management Utility for saving generated images and speech.

Creates a dated session folder and writes decoded artifacts into it.
"""

from pathlib import Path
from datetime import datetime
from typing import Optional
from io import BytesIO
import base64
import binascii
import logging
import re

from PIL import Image

from sd_showcase.errors import ValidationError

logger = logging.getLogger(__name__)


class OutputManager:
    """
    Manages organized output directories for generation sessions.

    Example:
        mgr = OutputManager("outputs", session_name="comparison")
        path = mgr.save_image(result.image_data, "a_cat_sdxl")
        # Returns: outputs/comparison_20261018/images/a_cat_sdxl.png
    """

    def __init__(
        self,
        base_dir: str = "outputs",
        session_name: Optional[str] = None,
        add_timestamp: bool = True,
        image_format: str = "PNG",
        jpeg_quality: int = 95,
    ):
        """
        Initialize output manager.

        Args:
            base_dir: Base output directory (default: "outputs")
            session_name: Name for this generation session (e.g., "comparison")
            add_timestamp: Add date timestamp to folder name (default: True)
            image_format: Pillow format used for saved images
            jpeg_quality: Quality used when image_format is JPEG
        """
        self.base_dir = Path(base_dir)
        self.session_name = session_name or "generation"
        self.add_timestamp = add_timestamp
        self.image_format = image_format.upper()
        self.jpeg_quality = jpeg_quality

        self.session_dir = self._create_session_dir()
        self.images_dir = self.session_dir / "images"
        self.audio_dir = self.session_dir / "audio"

        for dir_path in [self.images_dir, self.audio_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

    def _create_session_dir(self) -> Path:
        """Create and return the session directory."""
        safe_name = safe_stem(self.session_name)

        if self.add_timestamp:
            timestamp = datetime.now().strftime("%Y%m%d")
            dir_name = f"{safe_name}_{timestamp}"
        else:
            dir_name = safe_name

        session_path = self.base_dir / dir_name
        session_path.mkdir(parents=True, exist_ok=True)

        return session_path

    @property
    def image_extension(self) -> str:
        return ".jpg" if self.image_format in ("JPEG", "JPG") else f".{self.image_format.lower()}"

    def save_image(self, data_uri: str, stem: str) -> Path:
        """
        Decode a base64 image data URI and save it.

        Args:
            data_uri: "data:image/...;base64,..." string
            stem: File name without extension

        Returns:
            Path of the written file

        Raises:
            ValidationError: If the data URI does not decode to an image
        """
        _, _, payload = data_uri.partition(",")
        try:
            raw = base64.b64decode(payload, validate=True)
            image = Image.open(BytesIO(raw))
            image.load()
        except (binascii.Error, OSError) as e:
            raise ValidationError(f"Not a decodable image data URI: {e}")

        path = self._unique_path(self.images_dir, safe_stem(stem), self.image_extension)
        if self.image_format in ("JPEG", "JPG"):
            image.convert("RGB").save(path, format="JPEG", quality=self.jpeg_quality)
        else:
            image.save(path, format=self.image_format)

        logger.info(f"Image saved to: {path}")
        return path

    def save_audio(self, audio: bytes, stem: str) -> Path:
        """Write MP3 bytes and return the path."""
        path = self._unique_path(self.audio_dir, safe_stem(stem), ".mp3")
        path.write_bytes(audio)
        logger.info(f"Audio saved to: {path}")
        return path

    @staticmethod
    def _unique_path(directory: Path, stem: str, extension: str) -> Path:
        """Add a counter suffix until the path does not exist."""
        final_path = directory / f"{stem}{extension}"
        counter = 1
        while final_path.exists():
            final_path = directory / f"{stem}_{counter}{extension}"
            counter += 1
        return final_path

    def __str__(self) -> str:
        """String representation showing the session directory."""
        return str(self.session_dir)

    def __repr__(self) -> str:
        """Detailed representation."""
        return f"OutputManager(session_dir='{self.session_dir}')"


def safe_stem(text: str, max_length: int = 50) -> str:
    """
    Make a filesystem-safe name from free text.

    Example:
        >>> safe_stem("a cat, on mars!")
        'a_cat_on_mars'
    """
    safe_name = re.sub(r'[^\w\s-]', '', text[:max_length]).strip().replace(' ', '_')
    return safe_name or "generated"
