import struct

import pytest


def make_extended_payload(flags=0, width=1, height=1):
    """Build a VP8X payload: flag byte, 3 reserved bytes, width-1 and height-1 as LE24."""
    return (
        bytes([flags, 0, 0, 0])
        + (width - 1).to_bytes(3, 'little')
        + (height - 1).to_bytes(3, 'little')
    )


def make_chunk(tag, payload, size=None):
    size = len(payload) if size is None else size
    return tag + struct.pack('<I', size) + payload


def make_webp(flags=0, width=1, height=1, chunk_tag=b'VP8X', riff=b'RIFF', form=b'WEBP', chunk_size=None):
    """Build the header region of a WebP file followed by a little trailing data."""
    if chunk_tag == b'VP8X':
        body = make_chunk(chunk_tag, make_extended_payload(flags, width, height), chunk_size)
    else:
        body = make_chunk(chunk_tag, b'\x00' * 6, chunk_size)
    body += b'\x00' * 4
    return riff + struct.pack('<I', 4 + len(body)) + form + body


@pytest.fixture
def webp_dir(tmp_path):
    """Directory with a valid extended file, an animated one, a lossless one and a non-WebP file."""
    (tmp_path / "plain.webp").write_bytes(make_webp(flags=0x10, width=640, height=480))
    sub = tmp_path / "anim"
    sub.mkdir()
    (sub / "loop.webp").write_bytes(make_webp(flags=0x02, width=32, height=16))
    (tmp_path / "lossless.webp").write_bytes(make_webp(chunk_tag=b'VP8L'))
    (tmp_path / "notes.txt").write_text("not an image")
    return tmp_path
