#!/usr/bin/env python3
"""
MealPlanner -- account sessions and a quota-limited meal planning assistant.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --port 8080
  python main.py --reload --log-level debug

Environment variables (see core/config.py for the full list):
  JWT_SECRET          Token signing secret. MUST be set in production; the
                      built-in development fallback is public.
  DATABASE_URL        SQLAlchemy URL. Default: sqlite:///mealplanner.db
  ANTHROPIC_API_KEY   Key for the meal assistant. Without it /api/v1/llm answers 502.
  ALLOWED_ORIGINS     Comma-separated CORS origins. Default: http://localhost:3000
"""

import argparse

import uvicorn


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mealplanner",
        description="Run the MealPlanner API server.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn log level (default: info)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    # Import string rather than the app object so --reload can re-import it.
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
