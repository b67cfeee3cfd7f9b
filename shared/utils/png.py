import struct

from shared.errors import InspectionFailure

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def is_png(data):
    return bool(data) and len(data) >= 24 and data[:8] == PNG_SIGNATURE


def png_size(png_bytes):
    """Read (width, height) from the IHDR chunk without decoding the image."""
    if not is_png(png_bytes):
        raise InspectionFailure("screenshot is not a valid PNG")
    width, height = struct.unpack(">II", png_bytes[16:24])
    return int(width), int(height)
