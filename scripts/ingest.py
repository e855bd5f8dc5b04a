#!/usr/bin/env python
"""Ingestion script for code-explorer.

This script provides a command-line interface for indexing codebases. Each
path becomes its own session unless --session-id is given, in which case
every path is added to that session.

Usage:
    # Index a repository checkout
    python scripts/ingest.py --path ~/src/my-app

    # Index a single file into an existing session
    python scripts/ingest.py --path app/main.py --session-id 3f2a...

    # List files that would be indexed
    python scripts/ingest.py --path ~/src/my-app --dry-run

Exit codes:
    0 - Success (all paths indexed)
    1 - Partial failure (some paths failed or some chunks were dropped)
    2 - Complete failure (all paths failed or configuration error)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

# Ensure src/ is on sys.path when run from a checkout
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from code_explorer.core.settings import load_settings
from code_explorer.core.trace import TraceCollector, TraceContext
from code_explorer.ingestion.pipeline import IngestionPipeline, IngestionResult
from code_explorer.libs.loader.code_loader import CodeLoader
from code_explorer.observability.logger import configure_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Index codebases for exploration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--path", "-p",
        required=True,
        action="append",
        help="File or directory to index. Repeat to index several paths.",
    )
    parser.add_argument(
        "--session-id", "-s",
        default=None,
        help="Add every path to this session instead of creating new ones.",
    )
    parser.add_argument(
        "--config",
        default=str(_REPO_ROOT / "config" / "settings.yaml"),
        help="Path to configuration file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List files that would be indexed without indexing them",
    )
    return parser.parse_args(argv)


def print_summary(results: List[IngestionResult], verbose: bool = False) -> None:
    total = len(results)
    successful = sum(1 for r in results if r.success)
    failed = total - successful

    print("\n" + "=" * 60)
    print("INGESTION SUMMARY")
    print("=" * 60)
    print(f"Total paths processed: {total}")
    print(f"  [OK] Successful: {successful}")
    print(f"  [FAIL] Failed: {failed}")
    print(f"\nTotal files indexed: {sum(len(r.files) for r in results if r.success)}")
    print(f"Total chunks stored: {sum(len(r.vector_ids) for r in results if r.success)}")

    dropped = sum(r.failed_chunks for r in results)
    if dropped:
        print(f"Chunks dropped (embedding failed): {dropped}")

    print("\nSessions:")
    for r in results:
        status = "[OK]" if r.success else "[FAIL]"
        print(f"  {status} {r.session_id}: {r.path}")
        if verbose and not r.success:
            print(f"         {r.error}")

    print("=" * 60)


def main(argv: List[str] = None) -> int:
    """Main entry point for the ingestion script.

    Returns:
        Exit code (0=success, 1=partial failure, 2=complete failure)
    """
    args = parse_args(argv)

    print("[*] code-explorer ingestion")
    print("=" * 60)

    try:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"[FAIL] Configuration file not found: {config_path}")
            return 2
        settings = load_settings(config_path)
        print(f"[OK] Configuration loaded from: {config_path}")
    except Exception as e:
        print(f"[FAIL] Failed to load configuration: {e}")
        return 2

    configure_logging(settings)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    missing = [p for p in args.path if not Path(p).exists()]
    if missing:
        for p in missing:
            print(f"[FAIL] Path does not exist: {p}")
        return 2

    if args.dry_run:
        loader = CodeLoader.from_settings(settings)
        for p in args.path:
            try:
                files = loader.load(p)
            except ValueError as e:
                print(f"[FAIL] {e}")
                return 2
            print(f"[INFO] {p}: {len(files)} file(s), {len(loader.skipped)} skipped")
            for code_file in files:
                print(f"   - {code_file.path} ({code_file.language})")
        print("\n[INFO] Dry run mode - nothing was indexed")
        return 0

    print("\n[INFO] Initializing pipeline...")
    try:
        pipeline = IngestionPipeline(settings)
    except Exception as e:
        print(f"[FAIL] Failed to initialize pipeline: {e}")
        logger.exception("Pipeline initialization failed")
        return 2

    def on_progress(stage: str, current: int, total: int) -> None:
        print(f"   [{current}/{total}] {stage}")

    collector = TraceCollector.from_settings(settings)
    results: List[IngestionResult] = []

    for i, path in enumerate(args.path, 1):
        print(f"\n[{i}/{len(args.path)}] Indexing: {path}")
        trace = TraceContext(trace_type="ingestion")
        trace.metadata["source_path"] = str(path)
        result = pipeline.run(path, session_id=args.session_id, trace=trace, on_progress=on_progress)
        collector.collect(trace)
        results.append(result)

        if result.success:
            print(f"   [OK] Session {result.session_id}: {len(result.files)} files, {result.chunk_count} chunks")
        else:
            print(f"   [FAIL] Failed: {result.error}")

    print_summary(results, args.verbose)

    successful = [r for r in results if r.success]
    if len(successful) == len(results) and not any(r.failed_chunks for r in results):
        return 0
    if successful:
        return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
