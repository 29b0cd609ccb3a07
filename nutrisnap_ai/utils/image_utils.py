# image_utils.py
import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO

import requests
from PIL import Image, UnidentifiedImageError

from nutrisnap_ai.utils.validations import ClientInputError

logger = logging.getLogger(__name__)

SUPPORTED_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

@dataclass(frozen=True)
class InlineImage:
    """Base64 image content sent inline with the instruction"""
    media_type: str
    data: str

    def to_data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"

class ImageProcessor:
    """Resolves the caller's image reference into inline image content"""

    DATA_URI_PATTERN = re.compile(r"^data:(?P<media_type>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

    def __init__(self, max_dim: int = 1024, download_timeout: float = 15):
        self.max_dim = max_dim
        self.download_timeout = download_timeout

    def load(self, reference: str) -> InlineImage:
        """
        Accepts a data URI, an http(s) URL or bare base64 data

        Raises:
            ClientInputError: If the reference cannot be turned into an image
        """
        reference = reference.strip()

        match = self.DATA_URI_PATTERN.match(reference)
        if match:
            media_type = match.group("media_type").lower()
            data = re.sub(r"\s+", "", match.group("data"))
            raw = self._decode(data)
            if media_type in SUPPORTED_MEDIA_TYPES:
                return InlineImage(media_type=media_type, data=data)
            return self.optimize(raw)

        if reference.startswith(("http://", "https://")):
            return self.download(reference)

        return self.optimize(self._decode(reference))

    def download(self, url: str) -> InlineImage:
        """Download the image and re-encode it for the model."""
        try:
            response = requests.get(url, timeout=self.download_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error downloading image: {str(e)}")
            raise ClientInputError(f"Image could not be downloaded: {str(e)}")
        return self.optimize(response.content)

    def optimize(self, raw: bytes) -> InlineImage:
        """Resize and compress the image before base64 encoding."""
        try:
            image = Image.open(BytesIO(raw))
            image = image.convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            logger.error(f"Error processing image: {str(e)}")
            raise ClientInputError("Image data is not a valid image")

        # Maintain aspect ratio while resizing
        image.thumbnail((self.max_dim, self.max_dim))

        buffer = BytesIO()
        image.save(buffer, format="JPEG", quality=85, optimize=True)
        return InlineImage(media_type="image/jpeg", data=base64.b64encode(buffer.getvalue()).decode("utf-8"))

    @staticmethod
    def _decode(data: str) -> bytes:
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise ClientInputError("Unsupported image reference")
