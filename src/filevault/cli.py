"""FileVault CLI.

Usage:
    python -m filevault.cli save PATH --bucket BUCKET [--category image|pdf|any]
                                  [--mime-type TYPE] [--no-encrypt]
    python -m filevault.cli cat NAME --bucket BUCKET [--out PATH] [--unencrypted]
    python -m filevault.cli delete NAME --bucket BUCKET
    python -m filevault.cli serve [--host HOST] [--port PORT]

Global options (before the command): --root DIR, --log-level LEVEL.
The passphrase is read from FILEVAULT_ENCRYPTION_KEY.

Exit codes:
    0: Success
    1: Storage failure or internal error
    2: Rejected input, unsafe path, missing object or missing key
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import os
import sys
from pathlib import Path
from typing import Any, BinaryIO

from filevault.config import (
    DEFAULT_BUCKET,
    FILEVAULT_STORAGE_ROOT_ENV,
    VaultSettings,
    load_settings,
)
from filevault.crypto.keys import MissingEncryptionKeyError
from filevault.storage.errors import (
    FileVaultError,
    InvalidFileTypeError,
    ObjectNotFoundError,
    PathTraversalError,
)
from filevault.storage.manager import FileVault
from filevault.storage.models import OnDiskSource, UploadedFile
from filevault.storage.naming import DEFAULT_EXTENSION
from filevault.storage.validation import AllowedFileType

logger = logging.getLogger(__name__)

# Caller mistakes; every other FileVaultError is a storage failure (exit 1).
REJECTED_INPUT_ERRORS = (InvalidFileTypeError, PathTraversalError, ObjectNotFoundError)


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _error_result(code: str, message: str) -> dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message}}


def _guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


async def _save(vault: FileVault, args: argparse.Namespace) -> dict[str, Any]:
    path = Path(args.path)
    upload = UploadedFile(
        source=OnDiskSource(path),
        mime_type=args.mime_type or _guess_mime_type(path),
        original_filename=path.name if path.suffix else f"{path.name}.{DEFAULT_EXTENSION}",
    )
    name = await vault.save(
        upload,
        args.bucket,
        args.category,
        error_message=f"file type not allowed for category '{args.category}'",
        encrypt=not args.no_encrypt,
    )
    return {"ok": True, "bucket": args.bucket, "name": name}


async def _cat(vault: FileVault, args: argparse.Namespace, sink: BinaryIO) -> int:
    served = await vault.open_object(args.bucket, args.name, encrypted=not args.unencrypted)
    if served is None:
        raise ObjectNotFoundError(bucket=args.bucket, name=args.name)

    written = 0
    async for chunk in served.stream:
        await asyncio.to_thread(sink.write, chunk)
        written += len(chunk)
    await asyncio.to_thread(sink.flush)
    return written


def cmd_save(vault: FileVault, args: argparse.Namespace) -> int:
    _output_json(asyncio.run(_save(vault, args)))
    return 0


def cmd_cat(vault: FileVault, args: argparse.Namespace) -> int:
    """Write decoded content to --out, or to stdout."""
    if args.out:
        with open(args.out, "wb") as sink:
            asyncio.run(_cat(vault, args, sink))
    else:
        asyncio.run(_cat(vault, args, sys.stdout.buffer))
    return 0


def cmd_delete(vault: FileVault, args: argparse.Namespace) -> int:
    asyncio.run(vault.delete_file(args.bucket, args.name))
    _output_json({"ok": True, "bucket": args.bucket, "deleted": args.name})
    return 0


def cmd_serve(settings: VaultSettings, args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from filevault.api.main import create_app

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host or settings.host, port=args.port or settings.port)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="filevault",
        description="FileVault - encrypted, compressed file storage",
    )
    parser.add_argument(
        "--root",
        metavar="DIR",
        help="Storage root directory (overrides FILEVAULT_STORAGE_ROOT)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    save_parser = subparsers.add_parser("save", help="Store a local file")
    save_parser.add_argument("path", metavar="PATH", help="File to store")
    save_parser.add_argument("--bucket", default=DEFAULT_BUCKET, help="Destination bucket")
    save_parser.add_argument(
        "--category",
        default=AllowedFileType.ANY.value,
        choices=[t.value for t in AllowedFileType],
        help="Allowed file category (default: any)",
    )
    save_parser.add_argument(
        "--mime-type",
        metavar="TYPE",
        help="MIME type (guessed from the filename if omitted)",
    )
    save_parser.add_argument(
        "--no-encrypt",
        action="store_true",
        default=False,
        help="Store bytes unchanged, without compression or encryption",
    )

    cat_parser = subparsers.add_parser("cat", help="Decode a stored file")
    cat_parser.add_argument("name", metavar="NAME", help="Stored object name")
    cat_parser.add_argument("--bucket", default=DEFAULT_BUCKET, help="Source bucket")
    cat_parser.add_argument("--out", metavar="PATH", help="Write to PATH instead of stdout")
    cat_parser.add_argument(
        "--unencrypted",
        action="store_true",
        default=False,
        help="The object was saved with --no-encrypt",
    )

    delete_parser = subparsers.add_parser("delete", help="Delete a stored file")
    delete_parser.add_argument("name", metavar="NAME", help="Stored object name")
    delete_parser.add_argument("--bucket", default=DEFAULT_BUCKET, help="Bucket")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: FILEVAULT_HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: FILEVAULT_PORT)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.root:
            settings = load_settings({**os.environ, FILEVAULT_STORAGE_ROOT_ENV: args.root})
        else:
            settings = load_settings()

        if args.command == "serve":
            return cmd_serve(settings, args)

        vault = FileVault.from_settings(settings)

        if args.command == "save":
            return cmd_save(vault, args)
        if args.command == "cat":
            return cmd_cat(vault, args)
        if args.command == "delete":
            return cmd_delete(vault, args)

        return 0

    except MissingEncryptionKeyError as e:
        _output_json(_error_result("MISSING_ENCRYPTION_KEY", str(e)))
        return 2
    except REJECTED_INPUT_ERRORS as e:
        _output_json(_error_result(type(e).__name__, e.message))
        return 2
    except FileVaultError as e:
        logger.error("Storage failure: %s", e)
        _output_json(_error_result(type(e).__name__, e.message))
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        _output_json(_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
