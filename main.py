#!/usr/bin/env python3
"""
Vector Engine - command-line entry point.

Sub-commands:
  serve   Run the HTTP API (uvicorn)
  chunk   Chunk a text file and print or save the result as JSON
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from chunking import ChunkingError, ChunkingService, ChunkingServiceConfig, ChunkingStrategy
from vector_engine import EngineConfig, get_logger, setup_logging

ROOT = Path(__file__).resolve().parent

# Module logger
logger = get_logger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from vector_engine.app import create_app

    app = create_app(EngineConfig.from_env())
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)
    return 0


def _chunk(args: argparse.Namespace) -> int:
    if not args.text_path.exists():
        logger.error("Text file not found: %s", args.text_path)
        return 1

    strategy = ChunkingStrategy(
        kind=args.strategy,
        chunk_size=args.chunk_size,
        overlap=args.overlap,
    )
    service = ChunkingService(ChunkingServiceConfig(data_dir=str(args.output), strategy=strategy))

    try:
        if args.save:
            result, path = service.chunk_and_save(str(args.text_path))
            logger.info("Saved %d chunks to %s", result.total_chunks, path)
        else:
            result = service.chunk_file(str(args.text_path))
            print(result.to_json())
    except ChunkingError as e:
        logger.error("Chunking failed: %s", e)
        return 1

    return 0


def main() -> int:
    """Main entry point."""
    load_dotenv(ROOT / ".env")

    parser = argparse.ArgumentParser(
        description="In-memory vector search engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8000
  %(prog)s chunk notes.txt --strategy fixed --chunk-size 500 --overlap 50
  %(prog)s chunk notes.txt --save -o data/chunking
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show detailed output"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only show warnings and errors"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn log level (default: info)"
    )
    serve.set_defaults(handler=_serve)

    chunk = subparsers.add_parser("chunk", help="Chunk a text file")
    chunk.add_argument("text_path", type=Path, help="Path to a UTF-8 text file")
    chunk.add_argument(
        "--strategy",
        default="sentence",
        help="fixed, sentence, paragraph or semantic (default: sentence)"
    )
    chunk.add_argument("--chunk-size", type=int, default=1000, help="Chunk size in characters (default: 1000)")
    chunk.add_argument("--overlap", type=int, default=200, help="Overlap in characters (default: 200)")
    chunk.add_argument("--save", action="store_true", help="Save the JSON result instead of printing it")
    chunk.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("data/chunking"),
        help="Output directory for --save (default: data/chunking)"
    )
    chunk.set_defaults(handler=_chunk)

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logging(level=log_level)

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
