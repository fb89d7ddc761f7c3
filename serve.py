import argparse
import os
import sys
import urllib.parse

from flask import Flask, request, send_from_directory
from werkzeug.security import safe_join

from webp import MalformedHeader, TruncatedInput, UnsupportedChunkType, WebpError, parse_file


def _flag(name):
    return request.args.get(name, "0").lower() in ("1", "true", "yes")


def error_payload(error):
    """Describe a WebpError as JSON fields."""
    payload = {"error": str(error), "kind": type(error).__name__}
    if isinstance(error, TruncatedInput):
        payload.update(offset=error.offset, expected=error.expected, actual=error.actual)
    elif isinstance(error, UnsupportedChunkType):
        payload.update(tag=error.tag)
    elif isinstance(error, MalformedHeader):
        payload.update(field=error.field, expected=error.expected, actual=error.actual)
    return payload


def create_app(files_directories):
    app = Flask(__name__)
    files_directories = [os.path.abspath(d) for d in files_directories]

    def resolve(directory_index, filename):
        # The routing layer has already URL-decoded the filename
        if 0 <= directory_index < len(files_directories):
            directory_path = files_directories[directory_index]
            filepath = safe_join(directory_path, filename)
            if filepath is not None and os.path.isfile(filepath):
                return directory_path, filepath
        return None, None

    @app.route('/<int:directory_index>/<path:filename>')
    def get_file(directory_index, filename):
        directory_path, filepath = resolve(directory_index, filename)
        if directory_path is None:
            return {'error': 'File not found'}, 404
        return send_from_directory(directory_path, filename)

    @app.route('/header/<int:directory_index>/<path:filename>')
    def get_header(directory_index, filename):
        directory_path, filepath = resolve(directory_index, filename)
        if directory_path is None:
            return {'error': 'File not found'}, 404
        try:
            header = parse_file(
                filepath,
                strict=not _flag('lenient'),
                allow_unsupported=_flag('allow_unsupported'),
            )
        except WebpError as e:
            return error_payload(e), 422
        return header.to_dict()

    @app.route('/')
    def list_files():
        files = []
        for index, directory in enumerate(files_directories):
            for root, _, filenames in os.walk(directory):  # Recursively walk through subdirectories
                for filename in sorted(filenames):
                    if not filename.lower().endswith('.webp'):
                        continue
                    filepath = os.path.join(root, filename)
                    if os.path.isfile(filepath):
                        relative_path = os.path.relpath(filepath, directory).replace(os.sep, '/')  # Use Linux-style paths
                        files.append({
                            'name': urllib.parse.quote(relative_path),  # URL-encode the path
                            'size': os.path.getsize(filepath),
                            'directory_index': index
                        })
        return {'files': files, 'directories': files_directories}

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve WebP files and their parsed headers.")
    parser.add_argument('--directory', '-d', action='append', help="Directories to serve files from")
    parser.add_argument('--port', '-p', type=int, default=3138, help="Port to run the server on")
    args = parser.parse_args(argv)
    files_directories = [os.path.abspath(d) for d in args.directory] if args.directory else [os.path.abspath('.')]

    # Validate that all specified directories exist
    for directory in files_directories:
        if not os.path.isdir(directory):
            print(f"Error: '{directory}' is not a valid directory.")
            return 1

    print(f"Serving WebP headers on port {args.port} from directories:")
    for index, directory in enumerate(files_directories):
        print(f"  {index}: {directory}")
    print()

    create_app(files_directories).run(host='0.0.0.0', port=args.port)
    return 0


if __name__ == '__main__':
    sys.exit(main())
