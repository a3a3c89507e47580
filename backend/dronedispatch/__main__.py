"""Run the API server.

Usage:
    python -m dronedispatch                      # defaults from the environment / .env
    python -m dronedispatch --port 9000 --db-name fleet
"""

import argparse

import uvicorn

from dronedispatch.core.config import Settings


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.host:
        overrides["API_HOST"] = args.host
    if args.port:
        overrides["API_PORT"] = args.port
    if args.db_name:
        overrides["DATABASE_URL"] = f"sqlite:///./{args.db_name}.db"
    return Settings(**overrides)


def main():
    parser = argparse.ArgumentParser(description="Drone dispatch API server")
    parser.add_argument("-H", "--host", help="Address to bind (default: API_HOST)")
    parser.add_argument("-p", "--port", type=int, help="Port to bind (default: API_PORT)")
    parser.add_argument("-d", "--db-name", help="SQLite database file name, without extension")
    args = parser.parse_args()

    from dronedispatch.main import create_app

    settings = build_settings(args)
    uvicorn.run(create_app(settings), host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
