"""Small builders shared by unit and integration tests."""

import base64
import io

from PIL import Image


def png_bytes(width: int, height: int, color=(255, 0, 0, 255)) -> bytes:
    """Encoded RGBA PNG of the given size."""
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri_directive(content: bytes, image_type: str = "png") -> str:
    """\\includegraphics directive embedding content as a base64 data URI."""
    payload = base64.b64encode(content).decode("ascii")
    return "\\includegraphics{data:image/%s;base64,%s}" % (image_type, payload)
