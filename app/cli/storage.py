# app/cli/storage.py
"""
CLI commands for storage management.

Usage:
    python -m app.cli.storage providers
    python -m app.cli.storage stats
    python -m app.cli.storage upload ./poster.png posters/ --prefix poster --width 800
    python -m app.cli.storage exists https://bucket.s3.us-east-1.amazonaws.com/avatars/a.jpg
    python -m app.cli.storage delete https://.../avatars/a.jpg --dry-run
    python -m app.cli.storage delete https://.../avatars/a.jpg --confirm
    python -m app.cli.storage audit references.txt
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()


def get_gateway():
    """Get the configured storage gateway."""
    from app.storage import get_storage_gateway

    return get_storage_gateway()


def parse_reference_line(line: str) -> tuple[str, str] | None:
    """
    Parse one audit input line.

    Lines are either a bare URL or "label<TAB>url". Blank lines and
    lines starting with "#" are skipped.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if "\t" in line:
        label, url = line.split("\t", 1)
        return label.strip(), url.strip()
    return line, line


def cmd_providers(args):
    """Show the detected provider chain."""
    gateway = get_gateway()

    print("\n=== Storage Providers ===\n")
    for position, name in enumerate(gateway.available_providers, start=1):
        print(f"{position}. {name}")
    print()


def cmd_stats(args):
    """Show per-provider usage."""
    gateway = get_gateway()
    stats = gateway.storage_stats()

    print("\n=== Storage Statistics ===\n")
    for provider, values in stats.items():
        print(f"{provider}:")
        for key, value in values.items():
            print(f"  {key}: {value}")
    print()


def cmd_upload(args):
    """Store a local file through the provider chain."""
    from app.storage import UploadFailed, UploadOptions, UploadRequest

    gateway = get_gateway()

    try:
        upload = UploadRequest.from_path(args.path)
    except OSError as e:
        print(f"Error: Cannot read {args.path}: {e}")
        sys.exit(2)

    options = UploadOptions(prefix=args.prefix, width=args.width, height=args.height, quality=args.quality)
    try:
        if options.wants_resize:
            url = gateway.store_image(upload, args.directory, options)
        else:
            url = gateway.store(upload, args.directory, options)
    except UploadFailed as e:
        print(f"Error: {e}")
        for provider, error in e.errors.items():
            print(f"  - {provider}: {error}")
        sys.exit(1)
    finally:
        upload.close()

    print(url)


def cmd_exists(args):
    """Check whether each URL still points at a stored file."""
    gateway = get_gateway()
    missing = 0

    for url in args.urls:
        found = gateway.exists(url)
        if not found:
            missing += 1
        print(f"{'OK     ' if found else 'MISSING'} {url}")

    if missing:
        sys.exit(1)


def cmd_delete(args):
    """Delete the files behind the given URLs."""
    # Safety check
    if not args.dry_run and not args.confirm:
        print("Error: Delete requires --confirm flag for non-dry-run operations")
        print("Use --dry-run to preview what would be deleted")
        sys.exit(1)

    gateway = get_gateway()
    print(f"\n{'DRY RUN - ' if args.dry_run else ''}Deleting {len(args.urls)} file(s)...\n")

    failed = []
    for url in args.urls:
        if args.dry_run:
            state = "exists" if gateway.exists(url) else "already absent"
            print(f"  would delete: {url} ({state})")
            continue
        if gateway.delete(url):
            print(f"  deleted: {url}")
        else:
            failed.append(url)

    if failed:
        print("\nErrors:")
        for url in failed:
            print(f"  - {url}")
        sys.exit(1)


def cmd_audit(args):
    """Report stored references whose file no longer exists."""
    gateway = get_gateway()

    try:
        with open(args.file, encoding="utf-8") as handle:
            references = [ref for ref in (parse_reference_line(line) for line in handle) if ref]
    except OSError as e:
        print(f"Error: Cannot read {args.file}: {e}")
        sys.exit(2)

    print(f"\nAuditing {len(references)} stored reference(s)...\n")

    orphans = [(label, url) for label, url in references if not gateway.exists(url)]

    print(f"Checked: {len(references)}")
    print(f"Orphaned: {len(orphans)}")

    if orphans:
        print("\nOrphaned references:")
        for label, url in orphans:
            print(f"  - {label}: {url}" if label != url else f"  - {url}")
        sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Storage Gateway Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show which providers uploads will go to
  python -m app.cli.storage providers

  # Preview a deletion
  python -m app.cli.storage delete https://cdn.example.com/a.jpg --dry-run

  # Find references whose files are gone (exit code 1 if any)
  python -m app.cli.storage audit references.txt
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # providers command
    providers_parser = subparsers.add_parser("providers", help="Show the provider chain")
    providers_parser.set_defaults(func=cmd_providers)

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show per-provider usage")
    stats_parser.set_defaults(func=cmd_stats)

    # upload command
    upload_parser = subparsers.add_parser("upload", help="Store a local file")
    upload_parser.add_argument("path", help="Local file to upload")
    upload_parser.add_argument("directory", help="Target directory, e.g. avatars/")
    upload_parser.add_argument("--prefix", default="file", help="Generated filename prefix")
    upload_parser.add_argument("--width", type=int, help="Resize width (images only)")
    upload_parser.add_argument("--height", type=int, help="Resize height (images only)")
    upload_parser.add_argument("--quality", type=int, help="Output quality 1-100")
    upload_parser.set_defaults(func=cmd_upload)

    # exists command
    exists_parser = subparsers.add_parser("exists", help="Check stored URLs")
    exists_parser.add_argument("urls", nargs="+", help="Stored URLs or legacy paths")
    exists_parser.set_defaults(func=cmd_exists)

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete stored files")
    delete_parser.add_argument("urls", nargs="+", help="Stored URLs or legacy paths")
    delete_parser.add_argument("--dry-run", action="store_true", help="Preview only, don't delete")
    delete_parser.add_argument("--confirm", action="store_true", help="Confirm delete operation")
    delete_parser.set_defaults(func=cmd_delete)

    # audit command
    audit_parser = subparsers.add_parser("audit", help="Find references to missing files")
    audit_parser.add_argument("file", help="File with one URL (or label<TAB>url) per line")
    audit_parser.set_defaults(func=cmd_audit)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
