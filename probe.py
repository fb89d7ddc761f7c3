import argparse
import sys

import requests
from tqdm import tqdm

from webp import ExtendedChunk, WebpError, read_header


def probe_file(session, url, **options):
    """
    Read the header of a remote WebP file without downloading the rest of it.

    The response body is consumed as a stream and closed once the header has
    been parsed.

    Args:
        session (requests.Session): Session used for the request.
        url (str): Address of the file.
        **options: Passed to webp.read_header().

    Returns:
        webp.Header
    """
    with session.get(url, stream=True) as r:
        r.raise_for_status()
        return read_header(r.raw, **options)


def describe(header):
    chunk = header.chunk_header
    if not isinstance(chunk, ExtendedChunk):
        return f"{chunk.tag} chunk, {header.file_header.declared_size} bytes"
    ext = chunk.header
    features = [name for name, present in (
        ("icc", ext.icc_profile),
        ("alpha", ext.alpha),
        ("exif", ext.exif_metadata),
        ("xmp", ext.xmp_metadata),
        ("animation", ext.animation),
    ) if present]
    return f"{ext.width}x{ext.height}, {header.file_header.declared_size} bytes, features: {', '.join(features) or 'none'}"


def probe_all(server_url, session=None, progress=True, **options):
    """
    Probe every WebP file listed by a serve.py instance.

    Returns:
        list: (name, header, error) tuples. Exactly one of header/error is set.
    """
    session = session or requests.Session()
    response = session.get(f"{server_url}/")
    response.raise_for_status()
    files = response.json().get('files', [])

    results = []
    for file in tqdm(files, desc="Reading headers", unit="file", disable=not progress):
        filename = file['name']  # URL-encoded relative path of the file
        url = f"{server_url}/{file['directory_index']}/{filename}"
        try:
            results.append((filename, probe_file(session, url, **options), None))
        except (WebpError, requests.RequestException) as e:
            results.append((filename, None, e))
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Read WebP headers from a remote file server.")
    parser.add_argument('--host', '-H', default='http://localhost:3138', help="Host of the server")
    parser.add_argument('--lenient', action='store_true', help="Do not validate tags and chunk size")
    parser.add_argument('--allow-unsupported', action='store_true',
                        help="Report chunk types other than VP8X instead of failing")
    args = parser.parse_args(argv)

    try:
        results = probe_all(args.host, strict=not args.lenient, allow_unsupported=args.allow_unsupported)
    except requests.RequestException as e:
        print(f"Error: could not list files on {args.host}: {e}")
        return 1

    failed = 0
    for name, header, error in results:
        if error is not None:
            failed += 1
            print(f" - {name}: Error: {error}")
        else:
            print(f" - {name}: {describe(header)}")
    print(f"{len(results) - failed} of {len(results)} headers read.")
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
