"""Command-line interface for CellPilot."""

import argparse
import asyncio
import logging
import sys

import uvicorn

from .config import settings


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="CellPilot - free-text spreadsheet commands"
    )
    parser.add_argument(
        "--log-level", default=settings.log_level, help=f"Logging level (default: {settings.log_level})"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Interactive command
    subparsers.add_parser("interactive", help="Start an interactive CLI session")

    # Auth command
    subparsers.add_parser("auth", help="Authenticate with Google Sheets API")

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "interactive":
        asyncio.run(run_interactive())
    elif args.command == "auth":
        run_auth()
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "cellpilot.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


async def run_interactive():
    """Run an interactive CLI session, one command at a time."""
    from .agent import create_agent

    print("CellPilot Interactive Mode")
    print("=" * 40)
    print("Type 'quit' or 'exit' to exit.")
    print()

    agent = create_agent()
    await agent.initialize()

    try:
        while True:
            try:
                user_input = input("You: ").strip()
            except EOFError:
                break

            if not user_input:
                continue

            if user_input.lower() in ("quit", "exit"):
                print("Goodbye!")
                break

            envelope = await agent.resolve_and_respond(user_input)
            print(f"\nCellPilot: {envelope.message}")
            if envelope.body:
                print(envelope.body)
            if not envelope.success and envelope.metadata and envelope.metadata.errors:
                for error in envelope.metadata.errors:
                    print(f"  ! {error}")
            print()

    finally:
        await agent.shutdown()


def run_auth():
    """Run the Google authentication flow."""
    from .sheets.client import GoogleSheetsDocument

    print("Authenticating with Google Sheets API...")
    try:
        document = GoogleSheetsDocument(spreadsheet_id=settings.spreadsheet_id or "")
        # Accessing the service property triggers auth
        _ = document.service
        print("Authentication successful!")
        print("Token saved. You can now use CellPilot with Google Sheets.")
    except Exception as e:
        print(f"Authentication failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
