"""
CherryAi - Server Launcher
===========================
CLI entry point that:
    1. Loads settings and fails fast on configuration errors
       (e.g. missing ``GOOGLE_API_KEY``).
    2. Prints the effective configuration (API key masked).
    3. Starts uvicorn on ``cherry.src.main:app``.

Flags:
    --host      Bind address (default 127.0.0.1).
    --port      Port (default 8000).
    --reload    Auto-reload on code changes (development only).

Usage:
    python -m cherry.scripts.serve
    python -m cherry.scripts.serve --host 0.0.0.0 --port 8080
    cherry-serve --reload
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cherry-serve", description="CherryAi — run the conversational search web app.")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000).")
    parser.add_argument("--reload", action="store_true", default=False, help="Auto-reload on code changes.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    try:
        from cherry.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    from cherry.src.utils.logger import get_logger
    logger = get_logger(__name__)

    _print_header(settings, args)

    import uvicorn

    logger.info("Starting uvicorn on %s:%d (reload=%s)", args.host, args.port, args.reload)
    uvicorn.run("cherry.src.main:app", host=args.host, port=args.port, reload=args.reload, log_level="debug" if settings.ENV == "dev" else "warning")


def _print_header(settings: object, args: argparse.Namespace) -> None:
    api_key_val = settings.GOOGLE_API_KEY.get_secret_value()  # type: ignore[attr-defined]
    masked = f"****{api_key_val[-4:]}" if len(api_key_val) > 4 else "****"
    web = f"{settings.SEARCH_URL} (top {settings.SEARCH_RESULTS_LIMIT})" if settings.WEB_SEARCH_ENABLED else "disabled"  # type: ignore[attr-defined]

    print()
    print("=" * 60)
    print("  CHERRYAI — Conversational Search")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                      # type: ignore[attr-defined]
    print(f"  LLM          : {settings.LLM_MODEL} (t={settings.LLM_TEMPERATURE})")  # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")          # type: ignore[attr-defined]
    print(f"  LanceDB path : {settings.LANCEDB_PATH or 'system temp dir'} (private dir per process)")  # type: ignore[attr-defined]
    print(f"  Retrieval k  : {settings.RETRIEVAL_K}")              # type: ignore[attr-defined]
    print(f"  Web search   : {web}")
    print(f"  API Key      : {masked}")
    print(f"  Listening    : http://{args.host}:{args.port}")
    print("=" * 60)
    print()


if __name__ == "__main__":
    main()
