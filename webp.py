import argparse
import json
import os
import struct
import sys
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Union

RIFF_TAG = "RIFF"
WEBP_TAG = "WEBP"
EXTENDED_TAG = "VP8X"

FILE_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8
EXTENDED_CHUNK_SIZE = 10

# Chunk sizes do not count the tag and the size field itself
RIFF_PREFIX_SIZE = 8


class WebpError(Exception):
    """Base class for header parsing failures."""


class TruncatedInput(WebpError):
    """The source ended before a field could be read in full."""

    def __init__(self, offset, expected, actual):
        self.offset = offset
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Truncated input at offset {offset}: expected {expected} bytes, got {actual} "
            f"({expected - actual} missing)"
        )


class UnsupportedChunkType(WebpError):
    """The first chunk has a tag with no decoder."""

    def __init__(self, tag):
        self.tag = tag
        super().__init__(f"Unsupported chunk type '{tag}'")


class MalformedHeader(WebpError):
    """A header field did not hold its required value."""

    def __init__(self, field, expected, actual):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Malformed header: {field} is {actual!r}, expected {expected!r}")


class FeatureFlags(IntFlag):
    """Feature bits of the first VP8X flag byte, counted from the most significant bit."""
    ICC_PROFILE = 1 << (7 - 2)    # bit 2
    ALPHA = 1 << (7 - 3)          # bit 3
    EXIF_METADATA = 1 << (7 - 4)  # bit 4
    XMP_METADATA = 1 << (7 - 5)   # bit 5
    ANIMATION = 1 << (7 - 6)      # bit 6


@dataclass(frozen=True)
class FileHeader:
    container_tag: str
    declared_size: int
    format_tag: str


@dataclass(frozen=True)
class ExtendedChunkHeader:
    icc_profile: bool
    alpha: bool
    exif_metadata: bool
    xmp_metadata: bool
    animation: bool
    width: int
    height: int

    @classmethod
    def from_flags(cls, flags, width, height):
        flags = FeatureFlags(flags)
        return cls(
            icc_profile=FeatureFlags.ICC_PROFILE in flags,
            alpha=FeatureFlags.ALPHA in flags,
            exif_metadata=FeatureFlags.EXIF_METADATA in flags,
            xmp_metadata=FeatureFlags.XMP_METADATA in flags,
            animation=FeatureFlags.ANIMATION in flags,
            width=width,
            height=height,
        )

    @property
    def flags(self):
        flags = FeatureFlags(0)
        if self.icc_profile:
            flags |= FeatureFlags.ICC_PROFILE
        if self.alpha:
            flags |= FeatureFlags.ALPHA
        if self.exif_metadata:
            flags |= FeatureFlags.EXIF_METADATA
        if self.xmp_metadata:
            flags |= FeatureFlags.XMP_METADATA
        if self.animation:
            flags |= FeatureFlags.ANIMATION
        return flags


@dataclass(frozen=True)
class ExtendedChunk:
    header: ExtendedChunkHeader
    size: int
    tag: str = field(default=EXTENDED_TAG, init=False)


@dataclass(frozen=True)
class UnsupportedChunk:
    tag: str
    size: int


ChunkHeader = Union[ExtendedChunk, UnsupportedChunk]


@dataclass(frozen=True)
class Header:
    file_header: FileHeader
    chunk_header: ChunkHeader

    def to_dict(self):
        """Render the header as plain JSON-friendly values."""
        chunk = self.chunk_header
        result = {
            "container_tag": self.file_header.container_tag,
            "declared_size": self.file_header.declared_size,
            "format_tag": self.file_header.format_tag,
            "chunk": {"tag": chunk.tag, "size": chunk.size, "supported": isinstance(chunk, ExtendedChunk)},
        }
        if isinstance(chunk, ExtendedChunk):
            ext = chunk.header
            result["chunk"].update({
                "icc_profile": ext.icc_profile,
                "alpha": ext.alpha,
                "exif_metadata": ext.exif_metadata,
                "xmp_metadata": ext.xmp_metadata,
                "animation": ext.animation,
                "width": ext.width,
                "height": ext.height,
            })
        return result


class ByteCursor:
    """Forward-only reader over anything with a read(n) method."""

    def __init__(self, source):
        self.source = source
        self.offset = 0

    def read(self, size):
        """
        Read exactly `size` bytes.

        Short reads are retried until the source reports end of stream, so
        pipes and HTTP bodies behave like files.

        Raises:
            TruncatedInput: If the source ends first.
        """
        data = b''
        while len(data) < size:
            chunk = self.source.read(size - len(data))
            if not chunk:
                raise TruncatedInput(self.offset, size, len(data))
            data += chunk
        self.offset += size
        return data


def _tag(raw):
    return raw.decode('ascii', errors='backslashreplace')


def _le24(data):
    return data[0] | (data[1] << 8) | (data[2] << 16)


def read_file_header(cursor):
    """
    Read the 12-byte RIFF envelope: container tag, size, format tag.

    The tags are returned as read. Use validate_file_header() to check them.
    """
    data = cursor.read(FILE_HEADER_SIZE)
    riff_size = struct.unpack('<I', data[4:8])[0]
    return FileHeader(
        container_tag=_tag(data[:4]),
        declared_size=riff_size + RIFF_PREFIX_SIZE,
        format_tag=_tag(data[8:12]),
    )


def validate_file_header(file_header):
    if file_header.container_tag != RIFF_TAG:
        raise MalformedHeader("container_tag", RIFF_TAG, file_header.container_tag)
    if file_header.format_tag != WEBP_TAG:
        raise MalformedHeader("format_tag", WEBP_TAG, file_header.format_tag)


def read_extended_chunk(cursor):
    """
    Read the 10-byte VP8X payload.

    Layout:
    - 1 byte: feature flags (remaining bits reserved)
    - 3 bytes: reserved
    - 3 bytes: canvas width - 1 (little-endian)
    - 3 bytes: canvas height - 1 (little-endian)
    """
    data = cursor.read(EXTENDED_CHUNK_SIZE)
    return ExtendedChunkHeader.from_flags(
        data[0],
        width=_le24(data[4:7]) + 1,
        height=_le24(data[7:10]) + 1,
    )


def _decode_extended(cursor, size):
    return ExtendedChunk(header=read_extended_chunk(cursor), size=size)


# Decoders for the chunk kinds that may open a WebP file
CHUNK_DECODERS = {
    EXTENDED_TAG: _decode_extended,
}


def read_chunk_header(cursor):
    """
    Read an 8-byte chunk header and decode the chunk it introduces.

    Returns:
        ExtendedChunk for 'VP8X', UnsupportedChunk for any other tag. The
        payload of an unsupported chunk is left unread.
    """
    data = cursor.read(CHUNK_HEADER_SIZE)
    tag = _tag(data[:4])
    size = struct.unpack('<I', data[4:8])[0]
    decoder = CHUNK_DECODERS.get(tag)
    if decoder is None:
        return UnsupportedChunk(tag=tag, size=size)
    return decoder(cursor, size)


def read_header(source, strict=True, allow_unsupported=False):
    """
    Parse the WebP header from a byte source positioned at offset 0.

    Args:
        source: Object with a read(n) method (file, BytesIO, HTTP body).
        strict (bool): Require 'RIFF', 'WEBP' and a 10-byte VP8X chunk.
        allow_unsupported (bool): Return chunks with no decoder instead of raising.

    Returns:
        Header: The file header and the first chunk header.

    Raises:
        TruncatedInput, MalformedHeader, UnsupportedChunkType
    """
    cursor = ByteCursor(source)
    file_header = read_file_header(cursor)
    if strict:
        validate_file_header(file_header)

    # The chunk size is only read before dispatch; validate it afterwards
    chunk_header = read_chunk_header(cursor)
    if isinstance(chunk_header, UnsupportedChunk):
        if not allow_unsupported:
            raise UnsupportedChunkType(chunk_header.tag)
    elif strict and chunk_header.size != EXTENDED_CHUNK_SIZE:
        raise MalformedHeader("chunk_size", EXTENDED_CHUNK_SIZE, chunk_header.size)

    return Header(file_header=file_header, chunk_header=chunk_header)


def parse_file(filename, **options):
    """Open `filename` and read its header. Options are passed to read_header()."""
    with open(filename, 'rb') as f:
        return read_header(f, **options)


def format_header(filename, header):
    lines = [
        f"File: {filename}",
        f"Container: {header.file_header.container_tag} / {header.file_header.format_tag}",
        f"Size: {header.file_header.declared_size} bytes",
        f"Chunk: {header.chunk_header.tag} ({header.chunk_header.size} bytes)",
    ]
    chunk = header.chunk_header
    if isinstance(chunk, ExtendedChunk):
        ext = chunk.header
        lines.append(f"Canvas: {ext.width}x{ext.height} pixels")
        lines.append(f"ICC profile: {ext.icc_profile}")
        lines.append(f"Alpha: {ext.alpha}")
        lines.append(f"EXIF metadata: {ext.exif_metadata}")
        lines.append(f"XMP metadata: {ext.xmp_metadata}")
        lines.append(f"Animation: {ext.animation}")
    else:
        lines.append("Canvas: unknown (chunk type not supported)")
    return "\n".join(lines)


def main(argv=None):
    """Command-line interface for the WebP header reader."""
    parser = argparse.ArgumentParser(description="Read the RIFF and VP8X header of a WebP file.")
    parser.add_argument("filename", help="Path to the WebP file")
    parser.add_argument("--lenient", action="store_true", help="Do not validate tags and chunk size")
    parser.add_argument("--allow-unsupported", action="store_true",
                        help="Report chunk types other than VP8X instead of failing")
    parser.add_argument("--json", action="store_true", help="Print the header as JSON")
    args = parser.parse_args(argv)

    filename = args.filename
    if not os.path.isfile(filename):
        print(f"Error: File '{filename}' not found.")
        return 1
    if not filename.lower().endswith('.webp'):
        print("Error: File is not a WebP image (based on extension).")
        return 1

    try:
        header = parse_file(filename, strict=not args.lenient, allow_unsupported=args.allow_unsupported)
    except WebpError as e:
        print(f"Error: {e}")
        return 1
    except IOError as e:
        print(f"Error: I/O error occurred: {e}")
        return 1

    if args.json:
        print(json.dumps(header.to_dict(), indent=2))
    else:
        print(format_header(filename, header))
    return 0


if __name__ == "__main__":
    sys.exit(main())
