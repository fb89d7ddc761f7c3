import os
import sys

from PIL import Image

from webp import ExtendedChunk, WebpError, parse_file


def decode_dimensions(filename):
    """
    Decode a WebP file with Pillow and report what the decoder sees.

    Args:
        filename (str): Path to the image file.

    Returns:
        tuple: (width, height, frame_count)
    """
    with Image.open(filename) as img:
        width, height = img.size
        return width, height, getattr(img, "n_frames", 1)


def compare_with_decoder(filename, **options):
    """
    Read the header and decode the image independently, then compare canvas sizes.

    Args:
        filename (str): Path to the WebP file.
        **options: Passed to webp.read_header().

    Returns:
        dict: Header view, decoder view and whether the canvas sizes agree.
    """
    header = parse_file(filename, **options)
    width, height, frames = decode_dimensions(filename)

    result = {
        "header": header.to_dict(),
        "decoded": {"width": width, "height": height, "frames": frames},
        "match": None,
    }
    chunk = header.chunk_header
    if isinstance(chunk, ExtendedChunk):
        result["match"] = (chunk.header.width, chunk.header.height) == (width, height)
    return result


if __name__ == "__main__":
    """Command-line interface for the header/decoder comparison."""
    if len(sys.argv) != 2:
        print("Usage: python images.py <filename>")
        sys.exit(1)

    filename = sys.argv[1]
    if not os.path.isfile(filename):
        print(f"Error: File '{filename}' not found.")
        sys.exit(1)

    try:
        result = compare_with_decoder(filename, allow_unsupported=True)
    except WebpError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except (IOError, Image.UnidentifiedImageError) as e:
        print(f"Error: could not decode image: {e}")
        sys.exit(1)

    chunk = result["header"]["chunk"]
    decoded = result["decoded"]
    print(f"File: {filename}")
    if chunk["supported"]:
        print(f"Header canvas: {chunk['width']}x{chunk['height']} pixels")
    else:
        print(f"Header canvas: unknown ({chunk['tag']} chunk)")
    print(f"Decoded: {decoded['width']}x{decoded['height']} pixels, {decoded['frames']} frame(s)")
    if result["match"] is not None:
        print(f"Match: {result['match']}")
    if result["match"] is False:
        sys.exit(1)
