"""
Embedded JPEG preview extraction for raw photo containers.

Canon CR2 and Nikon NEF files are TIFF-based and carry a baseline JPEG
preview next to the sensor data. The extractor finds the JPEG Start-Of-Image
marker and hands back everything from there to the end of the buffer; the
JPEG decoder reading the result stops at the real End-Of-Image marker.
"""

import io
from typing import Optional

from .file_manager import derive_output_name
from .logging_config import DecodeError, NoPreviewFoundError, get_logger
from .models import ContainerKind, JpegPreview, RawContainerBuffer

logger = get_logger("rawpreview")

SOI_MARKER = b"\xff\xd8"
EOI_MARKER = b"\xff\xd9"
MARKER_PREFIX = 0xFF

RAW_SUFFIXES = {kind.value for kind in ContainerKind}


def _find_soi(data: bytes, kind: ContainerKind) -> int:
    # The last two bytes never start a preview: there is nothing after them.
    limit = len(data) - 2
    offset = data.find(SOI_MARKER, 0, limit + 1)
    while 0 <= offset < limit:
        if kind is ContainerKind.CR2:
            return offset
        # NEF: a real preview continues with another marker segment.
        if data[offset + 2] == MARKER_PREFIX:
            return offset
        offset = data.find(SOI_MARKER, offset + 1, limit + 1)
    return -1


def extract_preview(
    buffer: RawContainerBuffer,
    kind: ContainerKind | str,
    source_name: Optional[str] = None,
    stop_at_eoi: bool = False,
) -> JpegPreview:
    """
    Locate the embedded JPEG preview in a raw container.

    Args:
        buffer: Full contents of the raw file
        kind: Container type, which selects how strict the marker check is
        source_name: Original filename, used to name the output
        stop_at_eoi: End the preview after the first EOI marker following
            the SOI instead of at the end of the buffer

    Returns:
        JpegPreview covering the preview bytes

    Raises:
        NoPreviewFoundError: If no qualifying SOI marker exists
    """
    if not isinstance(kind, ContainerKind):
        kind = ContainerKind(kind.lower())
    data = bytes(buffer) if not isinstance(buffer, bytes) else buffer

    start = _find_soi(data, kind)
    if start < 0:
        raise NoPreviewFoundError(
            f"No embedded JPEG preview found in {kind.value.upper()} file",
            suggestion="The file may be truncated or not a camera raw file",
        )

    end = len(data)
    if stop_at_eoi:
        eoi = data.find(EOI_MARKER, start + 2)
        if eoi >= 0:
            end = eoi + len(EOI_MARKER)

    name = source_name or f"preview.{kind.value}"
    filename = derive_output_name(name, "jpg", source_formats=RAW_SUFFIXES)

    logger.debug(f"JPEG preview in {name} at [{start}, {end}) of {len(data)} bytes")
    return JpegPreview(source=data, start=start, end=end, filename=filename)


def inspect_preview(data: bytes) -> dict:
    """
    Decode a preview header with Pillow and describe it.

    Raises:
        DecodeError: If Pillow cannot identify the image
    """
    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(io.BytesIO(data)) as img:
            return {
                "format": img.format,
                "mode": img.mode,
                "size": img.size,
                "width": img.width,
                "height": img.height,
            }
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Preview is not a decodable JPEG: {e}") from e
