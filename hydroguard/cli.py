from __future__ import annotations

import argparse
import json
import sys


def _valid_port(value: str) -> int:
    """Validate port is an integer in range 1-65535."""
    port = int(value)
    if port < 1 or port > 65535:
        raise argparse.ArgumentTypeError(f"port must be 1-65535, got {port}")
    return port


def main(argv: list[str] | None = None) -> None:
    from hydroguard.config.loader import get_config
    server_cfg = get_config().get("server", {})
    default_host = server_cfg.get("host", "127.0.0.1")
    default_port = server_cfg.get("port", 3001)

    parser = argparse.ArgumentParser(
        prog="hydroguard",
        description="HydroGuard -- flood-monitoring assistant",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log file threshold (default: HYDROGUARD_LOG_LEVEL or DEBUG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    start_parser = subparsers.add_parser("start", help="Start the HydroGuard API server")
    start_parser.add_argument(
        "--port", type=_valid_port, default=default_port, help=f"Port to run on (default: {default_port})"
    )
    start_parser.add_argument(
        "--host", default=default_host, help=f"Host to bind to (default: {default_host})"
    )

    stop_parser = subparsers.add_parser("stop", help="Stop the running HydroGuard server")
    stop_parser.add_argument(
        "--port", type=_valid_port, default=default_port, help=f"Port the server is running on (default: {default_port})"
    )

    ask_parser = subparsers.add_parser("ask", help="Answer one question without starting the server")
    ask_parser.add_argument("message", help="Question to ask")
    ask_parser.add_argument(
        "--offline", action="store_true", help="Skip the generative backend and answer from the knowledge base"
    )
    ask_parser.add_argument("--json", dest="output_json", action="store_true", help="Output raw JSON")

    subparsers.add_parser("documents", help="List the knowledge documents that load")

    args = parser.parse_args(argv)

    if args.log_level:
        import logging
        from hydroguard.log import configure
        configure(getattr(logging, args.log_level))

    if args.command == "start":
        if args.host not in ("127.0.0.1", "localhost", "::1"):
            print("Warning: binding to non-loopback address exposes the server to the network", file=sys.stderr)
        _start_server(host=args.host, port=args.port)
    elif args.command == "stop":
        _stop_server(port=args.port)
    elif args.command == "ask":
        _ask(args.message, offline=args.offline, output_json=args.output_json)
    elif args.command == "documents":
        _list_documents()
    else:
        parser.print_help()
        sys.exit(1)


def _start_server(host: str, port: int) -> None:
    import os
    import uvicorn
    from hydroguard import __version__

    print()
    print(f"  HydroGuard v{__version__}")
    print(f"  API:        http://{host}:{port}/api")
    print(f"  API docs:   http://{host}:{port}/docs")
    print(f"  Generative: {'configured' if os.environ.get('OPENAI_API_KEY') else 'not configured'}")
    print()

    uvicorn.run("hydroguard.api:app", host=host, port=port, log_level="warning")


def _stop_server(port: int) -> None:
    """Stop a running HydroGuard server by finding and terminating its process."""
    import psutil

    for proc in psutil.process_iter(["pid", "name"]):
        try:
            for conn in proc.net_connections(kind="tcp"):
                if conn.laddr.port == port and conn.status == "LISTEN":
                    proc.terminate()
                    try:
                        proc.wait(timeout=5)
                        print(f"  HydroGuard server (PID {proc.pid}) stopped.")
                    except psutil.TimeoutExpired:
                        proc.kill()
                        print(f"  HydroGuard server (PID {proc.pid}) killed.")
                    return
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue

    print(f"  No HydroGuard server found on port {port}.")
    sys.exit(1)


def _ask(message: str, offline: bool = False, output_json: bool = False) -> None:
    from hydroguard.intelligence.orchestrator import respond_to_chat
    from hydroguard.state import AvailabilityTracker

    tracker = None
    if offline:
        tracker = AvailabilityTracker()
        tracker.toggle()

    result = respond_to_chat(message, tracker=tracker)

    if output_json:
        print(json.dumps(result, indent=2, default=str))
        return

    print(result["response"])
    print()
    print(f"  [source: {result['source']}]")


def _list_documents() -> None:
    from hydroguard.knowledge.base import KnowledgeBase

    kb = KnowledgeBase.get()
    if not len(kb):
        print("No knowledge documents loaded.")
        sys.exit(1)

    print(f"  {len(kb)} document(s) loaded\n")
    for name in kb.names:
        document = kb.document(name)
        keys = ", ".join(document) if isinstance(document, dict) else type(document).__name__
        print(f"  {name:16s}  {keys}")


if __name__ == "__main__":
    main()
