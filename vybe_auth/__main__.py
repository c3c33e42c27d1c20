"""
Run the auth API server.

Usage:
    python -m vybe_auth
    python -m vybe_auth --reload  # Development mode
"""

import argparse
import uvicorn

from vybe_auth.config.settings import config_settings


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the vybe auth API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    args = parser.parse_args(argv)

    uvicorn.run(
        "vybe_auth.main:app",
        host=args.host or config_settings.HOST,
        port=args.port or config_settings.PORT,
        reload=args.reload or config_settings.RELOAD,
    )


if __name__ == "__main__":
    main()
