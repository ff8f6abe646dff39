"""
Detects PNG/JPEG images and their pixel dimensions from header bytes only.

No pixel data is decoded. PNG dimensions live in the IHDR chunk, which must
directly follow the 8-byte signature; JPEG dimensions live in the first
Start-Of-Frame segment.
"""
from dataclasses import dataclass
from typing import Optional

PNG_MIME = "image/png"
JPEG_MIME = "image/jpeg"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SOI = b"\xff\xd8"

# SOF0-SOF15 minus DHT (C4), JPG (C8) and DAC (CC)
SOF_MARKERS = frozenset(
    {0xC0, 0xC1, 0xC2, 0xC3, 0xC5, 0xC6, 0xC7, 0xC9, 0xCA, 0xCB, 0xCD, 0xCE, 0xCF}
)

EXTENSIONS = {PNG_MIME: "png", JPEG_MIME: "jpg"}


@dataclass(frozen=True)
class ImageInfo:
    mime: str
    width: int
    height: int

    @property
    def ext(self) -> str:
        return EXTENSIONS[self.mime]


def _u16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], "big")


def _u32(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 4], "big")


def _sniff_jpeg(data: bytes) -> Optional[ImageInfo]:
    offset = 2
    while offset + 9 < len(data):
        if data[offset] != 0xFF:
            return None
        marker = data[offset + 1]
        length = _u16(data, offset + 2)
        if length < 2:
            return None
        if marker in SOF_MARKERS:
            height = _u16(data, offset + 5)
            width = _u16(data, offset + 7)
            return ImageInfo(JPEG_MIME, width, height)
        offset += 2 + length
    return None


def sniff_image(data: bytes) -> Optional[ImageInfo]:
    """Returns the MIME type and dimensions of a PNG or JPEG buffer, or None."""
    if len(data) < 10:
        return None

    if data.startswith(PNG_SIGNATURE) and len(data) >= 24:
        info = ImageInfo(PNG_MIME, _u32(data, 16), _u32(data, 20))
    elif data.startswith(JPEG_SOI):
        info = _sniff_jpeg(data)
    else:
        info = None

    if info is None or info.width == 0 or info.height == 0:
        return None
    return info
