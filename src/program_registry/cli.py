"""program-registry CLI: hash, resolve, upload, download and serve programs."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

import httpx

UPLOAD_TIMEOUT_SECONDS = 60.0


def _server_url(args, config) -> str:
    return (args.url or config.server_url).rstrip("/")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict) and "detail" in payload:
        code = payload.get("code")
        return f"{code}: {payload['detail']}" if code else str(payload["detail"])
    return str(payload)


def main():
    """Main CLI entry point for program-registry commands."""
    try:
        registry_version = get_version("program-registry")
    except PackageNotFoundError:
        registry_version = "dev"

    parser = argparse.ArgumentParser(
        prog="program-registry",
        description="Program Registry: hash-addressed storage of compiled programs"
    )
    parser.add_argument("--version", action="version", version=f"program-registry {registry_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    client_parser = argparse.ArgumentParser(add_help=False, parents=[parent_parser])
    client_parser.add_argument(
        "--url",
        default=None,
        help="Registry server URL (defaults to PROGRAM_REGISTRY_URL or http://localhost:3000)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # hash command
    hash_parser = subparsers.add_parser(
        "hash",
        help="Compute hash, builtins and layout of a compiled program without storing it",
        parents=[parent_parser]
    )
    hash_parser.add_argument(
        "file_path",
        type=Path,
        help="Path to compiled program JSON"
    )

    # resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Print the cheapest layout providing the given builtins",
        parents=[parent_parser]
    )
    resolve_parser.add_argument(
        "builtins",
        nargs="*",
        help="Builtin names, e.g. pedersen range_check"
    )

    # upload command
    upload_parser = subparsers.add_parser(
        "upload",
        help="Upload a compiled program to a registry server",
        parents=[client_parser]
    )
    upload_parser.add_argument(
        "-f", "--file-path",
        type=Path,
        required=True,
        help="Path to compiled program JSON"
    )

    # download command
    download_parser = subparsers.add_parser(
        "download",
        help="Download a stored program by hash",
        parents=[client_parser]
    )
    download_parser.add_argument(
        "-p", "--program-hash",
        required=True,
        help="Program hash returned by upload"
    )
    download_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output file (defaults to <program_hash>.json)"
    )

    # metadata command
    metadata_parser = subparsers.add_parser(
        "metadata",
        help="Show version, layout and builtins of a stored program",
        parents=[client_parser]
    )
    metadata_parser.add_argument(
        "-p", "--program-hash",
        required=True,
        help="Program hash returned by upload"
    )

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the registry HTTP server"
    )
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument(
        "--database",
        type=Path,
        default=None,
        help="SQLite database path"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    from .config import load_config

    try:
        config = load_config()
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=config.logging_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == "hash":
        from .api import inspect
        from ._internal.canonical_json import canonical_dumps
        from .kernel.errors import ArtifactError

        try:
            result = inspect(args.file_path.read_bytes())
            if not args.quiet:
                print(canonical_dumps(result.model_dump(mode="json")))
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except ArtifactError as e:
            print(f"Error: {e.code.value}: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.command == "resolve":
        from .api import resolve

        layout = resolve(args.builtins)
        if not args.quiet:
            print(layout)
    elif args.command == "upload":
        try:
            url = _server_url(args, config)
            with open(args.file_path, "rb") as f:
                response = httpx.post(
                    f"{url}/upload-program",
                    files={"program": (args.file_path.name, f, "application/json")},
                    timeout=UPLOAD_TIMEOUT_SECONDS,
                )
            if response.status_code not in (200, 201):
                print(f"Error: upload failed: {_error_detail(response)}", file=sys.stderr)
                sys.exit(1)
            payload = response.json()
            if not args.quiet:
                print(f"Program hash: {payload['program_hash']}")
                print(f"  Layout: {payload['layout']}")
                if payload["already_existed"]:
                    print("  Status: ALREADY STORED")
                else:
                    print("  Status: STORED")
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except httpx.HTTPError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.command == "download":
        try:
            url = _server_url(args, config)
            response = httpx.get(f"{url}/get-program", params={"program_hash": args.program_hash})
            if response.status_code != 200:
                print(f"Error: download failed: {_error_detail(response)}", file=sys.stderr)
                sys.exit(1)
            out_path = args.out or Path(f"{args.program_hash}.json")
            out_path.write_bytes(response.content)
            if not args.quiet:
                print("[OK] Download complete")
                print(f"  Program: {out_path}")
        except httpx.HTTPError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.command == "metadata":
        from ._internal.canonical_json import canonical_dumps

        try:
            url = _server_url(args, config)
            response = httpx.get(f"{url}/get-metadata", params={"program_hash": args.program_hash})
            if response.status_code != 200:
                print(f"Error: metadata lookup failed: {_error_detail(response)}", file=sys.stderr)
                sys.exit(1)
            if not args.quiet:
                print(canonical_dumps(response.json()))
        except httpx.HTTPError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.command == "serve":
        import uvicorn

        from .server import create_app
        from .store.sqlite import SqliteProgramStore

        database = args.database or config.database_path
        app = create_app(store=SqliteProgramStore(database), config=config)
        uvicorn.run(
            app,
            host=args.host or config.host,
            port=args.port or config.port,
            log_level=config.log_level.lower(),
        )
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
