"""
Command-line interface for Bug Whisperer.

    bugwhisperer analyze path/to/file.js [--json] [--write]
    bugwhisperer serve [--host 0.0.0.0] [--port 8000] [--reload]

Exit codes for `analyze`: 0 no issues, 1 issues found, 2 engine failure or
unusable input file.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ._version import __version__

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".js", ".jsx", ".mjs", ".cjs")

EXIT_CLEAN = 0
EXIT_ISSUES = 1
EXIT_FAILURE = 2


def build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="bugwhisperer",
        description="Analyze JavaScript snippets, repair them and explain the dominant defect.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (defaults to LOG_LEVEL / config.json / INFO)."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze one JavaScript file.")
    analyze.add_argument("file", help="Path to the .js/.jsx/.mjs/.cjs file to analyze.")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON.")
    analyze.add_argument("--write", action="store_true", help="Write the fixed code back to the file.")
    analyze.add_argument("--engine", choices=["esprima", "eslint"], default=None, help="Override the lint engine.")

    serve = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind.")
    serve.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development).")

    return parser


def _configure_logging(level: Optional[str]) -> None:
    from backend.app.config import config

    logging.basicConfig(
        level=(level or config.get_log_level()).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _print_report(path: Path, payload: dict) -> None:
    issues = payload["issues"]
    if issues:
        print(f"📋 {len(issues)} issue(s) in {path}")
        for issue in issues:
            location = f"{issue['line']}:{issue['column']}" if issue.get("column") else f"{issue['line']}"
            rule = f" [{issue['rule_id']}]" if issue.get("rule_id") else ""
            print(f"  {path}:{location} {issue['severity']} {issue['message']}{rule}")
            print(f"    → {issue['suggestion']}")
    else:
        print(f"✅ No issues in {path}")

    print()
    print(payload["lesson"])
    print()
    print("=" * 60)
    print("Fixed code:")
    print("=" * 60)
    print(payload["fixed_code"], end="" if payload["fixed_code"].endswith("\n") else "\n")


def run_analyze(args: argparse.Namespace) -> int:
    from backend.app.services.analysis_service import AnalysisService
    from backend.app.services.lesson_service import generate_lesson
    from backend.app.services.lint_engine import LintEngineError, create_lint_engine

    path = Path(args.file)
    if not path.is_file():
        print(f"❌ Error: File not found: {path}", file=sys.stderr)
        return EXIT_FAILURE
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        print(f"❌ Error: Only JavaScript files are supported ({', '.join(SUPPORTED_SUFFIXES)})", file=sys.stderr)
        return EXIT_FAILURE

    code = path.read_bytes().decode("utf-8", errors="replace")

    try:
        service = AnalysisService(engine=create_lint_engine(args.engine))
        result = asyncio.run(service.analyze(path.name, code))
    except LintEngineError as e:
        print(f"❌ Analysis engine failure: {e}", file=sys.stderr)
        return EXIT_FAILURE

    payload = {
        "issues": [issue.model_dump(mode="json") for issue in result.issues],
        "fixed_code": result.fixed_code,
        "lesson": generate_lesson(result.issues, code, result.fixed_code),
    }

    if args.json:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        _print_report(path, payload)

    if args.write and result.fixed_code != code:
        path.write_text(result.fixed_code, encoding="utf-8")
        logger.info(f"Wrote fixed code to {path}")

    return EXIT_ISSUES if result.issues else EXIT_CLEAN


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    print("🚀 Starting Bug Whisperer API...")
    print(f"🌐 Server will be available at: http://{args.host}:{args.port}")
    print(f"📖 API documentation will be available at: http://{args.host}:{args.port}/docs")
    try:
        uvicorn.run(
            "backend.app.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\n🛑 Server stopped by user")
    return EXIT_CLEAN


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    if args.command == "analyze":
        return run_analyze(args)
    return run_serve(args)


if __name__ == "__main__":
    sys.exit(main())
