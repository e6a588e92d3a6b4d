"""CLI entry point for the TraderMind API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="tradermind-server",
        description="TraderMind API server: questionnaire analysis reports for traders",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=3010, help="Bind port (default: 3010)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, console logs",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args(argv)

    if args.local:
        os.environ["TRADERMIND_LOCAL_MODE"] = "1"
        os.environ["TRADERMIND_LOCAL"] = "1"

    import uvicorn

    uvicorn.run("tradermind.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
