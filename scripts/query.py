#!/usr/bin/env python
"""Query script for code-explorer.

Runs one query mode against an indexed session.

Usage:
    python scripts/query.py sessions
    python scripts/query.py search  --session-id SID --query "where is auth handled?"
    python scripts/query.py chat    --session-id SID --message "how are requests retried?"
    python scripts/query.py summarize --session-id SID [--file-path app/main.py]
    python scripts/query.py visualize --session-id SID
    python scripts/query.py guide   --session-id SID [--json]
    python scripts/query.py clear   --session-id SID

Exit codes:
    0 - Success
    1 - Query failure
    2 - Configuration error
"""

import argparse
import json
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
from code_explorer.mcp_server.context import ServerContext
from code_explorer.observability.logger import configure_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Query an indexed codebase.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        default=str(_REPO_ROOT / "config" / "settings.yaml"),
        help="Path to configuration file (default: config/settings.yaml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sessions", help="List indexed sessions")

    files = sub.add_parser("files", help="List the files of a session")
    files.add_argument("--session-id", "-s", required=True)

    search = sub.add_parser("search", help="Semantic search")
    search.add_argument("--session-id", "-s", required=True)
    search.add_argument("--query", "-q", required=True)
    search.add_argument("--top-k", type=int, default=None)

    chat = sub.add_parser("chat", help="Ask a question about the code")
    chat.add_argument("--session-id", "-s", required=True)
    chat.add_argument("--message", "-m", required=True)
    chat.add_argument("--top-k", type=int, default=None)

    summarize = sub.add_parser("summarize", help="Summarize a file or the project")
    summarize.add_argument("--session-id", "-s", required=True)
    summarize.add_argument("--file-path", "-f", default=None)

    visualize = sub.add_parser("visualize", help="Print the file dependency graph as JSON")
    visualize.add_argument("--session-id", "-s", required=True)

    guide = sub.add_parser("guide", help="Generate a build guide")
    guide.add_argument("--session-id", "-s", required=True)
    guide.add_argument("--overview", action="store_true", help="Include a project overview")
    guide.add_argument("--json", action="store_true", help="Print the guide as JSON")

    clear = sub.add_parser("clear", help="Delete a session")
    clear.add_argument("--session-id", "-s", required=True)

    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, context: ServerContext, trace: TraceContext) -> None:
    if args.command == "sessions":
        sessions = context.sessions().list_sessions()
        if not sessions:
            print("No indexed sessions found.")
        for info in sessions:
            print(f"{info.session_id}  files={info.file_count}  chunks={info.chunk_count}")

    elif args.command == "files":
        for info in context.sessions().list_files(args.session_id):
            print(f"{info.file_path}  ({info.language}, {info.chunk_type}, {info.chunk_count} chunks)")

    elif args.command == "search":
        results = context.search().search(args.session_id, args.query, top_k=args.top_k, trace=trace)
        if not results:
            print("No results found.")
        for i, result in enumerate(results, 1):
            metadata = result.metadata
            print(f"\n[{i}] {result.file_path}:{metadata.get('start_line')}-{metadata.get('end_line')}"
                  f"  score={result.score:.4f}")
            print(result.text)

    elif args.command == "chat":
        answer = context.chat().ask(args.session_id, args.message, top_k=args.top_k, trace=trace)
        print(answer.answer)
        for source in answer.sources:
            print(f"  - {source.file_path}:{source.metadata.get('start_line')}-{source.metadata.get('end_line')}")

    elif args.command == "summarize":
        summarizer = context.summarizer()
        if args.file_path:
            summary = summarizer.summarize_file(args.session_id, args.file_path, trace=trace)
        else:
            summary = summarizer.summarize_project(args.session_id, trace=trace)
        print(summary.summary)

    elif args.command == "visualize":
        graph = context.visualizer().build_graph(args.session_id, trace=trace)
        print(json.dumps(graph, ensure_ascii=False, indent=2))

    elif args.command == "guide":
        generator = context.build_guide()
        if args.json:
            guide = generator.generate(args.session_id, include_overview=args.overview)
            print(json.dumps(guide.to_dict(), ensure_ascii=False, indent=2))
            return
        for event in generator.stream(args.session_id):
            if event["type"] == "total":
                print(f"[INFO] {event['count']} steps")
            elif event["type"] == "error":
                print(f"[WARN] step {event['step_number']}: {event['message']}")
            elif event["type"] == "step":
                step = event["step"]
                print(f"\n## Step {step['step_number']}: {step['file_path']} "
                      f"(lines {step['start_line']}-{step['end_line']})")
                print(step["explanation"])
            elif event["type"] == "complete":
                print(f"\n[OK] {event['total_steps']} steps generated")

    elif args.command == "clear":
        removed = context.sessions().clear_session(args.session_id)
        print(f"[OK] Removed {removed} chunks from session {args.session_id}")


def main(argv: List[str] = None) -> int:
    """Main entry point for the query script.

    Returns:
        Exit code (0=success, 1=query failure, 2=configuration error)
    """
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except Exception as e:
        print(f"[FAIL] Failed to load configuration: {e}")
        return 2

    configure_logging(settings)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    context = ServerContext(settings=settings)
    trace = TraceContext(trace_type="query", session_id=getattr(args, "session_id", None))
    trace.metadata["command"] = args.command
    collector = TraceCollector.from_settings(settings)

    try:
        run_command(args, context, trace)
    except (ValueError, LookupError) as e:
        print(f"[FAIL] {e}")
        return 1
    except Exception as e:
        logger.exception("Query failed")
        print(f"[FAIL] Query failed: {e}")
        return 1
    finally:
        collector.collect(trace)
    return 0


if __name__ == "__main__":
    sys.exit(main())
