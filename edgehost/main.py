"""Main entry point for the edgehost CLI"""

import argparse
import os
import sys

from . import __version__
from .config import load_config, validate_config
from .errors import ConfigError
from .output import config_table, console, decision_table, print_error, print_info, print_success, print_warning
from .structured_logging import setup_logging


def handle_serve(args) -> bool:
    """Run the router with uvicorn"""
    import uvicorn

    from .router.core import create_app

    setup_logging(level=args.log_level)
    config = load_config(args.config)
    if args.domain:
        config = config.with_overrides(domain=args.domain)

    print_info(f"Serving {config.domain} on http://{args.host}:{args.port}")
    if args.reload:
        # The reloader imports the factory in a fresh process; settings travel through the environment
        if args.config:
            os.environ["EDGEHOST_CONFIG"] = str(args.config)
        if args.domain:
            os.environ["EDGEHOST_DOMAIN"] = args.domain
        uvicorn.run(
            "edgehost.router.core:create_app",
            factory=True,
            reload=True,
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
        )
        return True

    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=args.log_level.lower())
    return True


def handle_resolve(args) -> bool:
    """Show the routing decision for a URL without contacting any upstream"""
    from .router.resolver import RequestInfo, resolve_route

    config = load_config(args.config)
    if args.domain:
        config = config.with_overrides(domain=args.domain)

    url = args.url if "://" in args.url else f"https://{args.url}"
    decision = resolve_route(RequestInfo.from_url(url), config, config.matcher())
    console.print(decision_table(url, decision))
    return True


def handle_config(args) -> bool:
    """Print the effective configuration and any validation problems"""
    config = load_config(args.config)
    console.print(config_table(config))

    is_valid, errors = validate_config(config)
    if is_valid:
        print_success("Configuration is valid")
        return True
    for error in errors:
        print_warning(error)
    return not args.strict


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="edgehost - edge router for path-prefixed section origins",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"edgehost {__version__}")
    parser.add_argument("--config", help="Path to edgehost.yml (default: $EDGEHOST_CONFIG)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    serve_parser = subparsers.add_parser("serve", help="Run the router")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8787, help="Bind port (default: 8787)")
    serve_parser.add_argument("--domain", help="Override the canonical domain")
    serve_parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    serve_parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    resolve_parser = subparsers.add_parser("resolve", help="Show how a URL would be routed")
    resolve_parser.add_argument("url", help="URL to route, e.g. https://example.com/blog/posts/1")
    resolve_parser.add_argument("--domain", help="Override the canonical domain")

    config_parser = subparsers.add_parser("config", help="Show effective configuration")
    config_parser.add_argument("--strict", action="store_true", help="Exit non-zero on validation problems")

    args = parser.parse_args(argv)

    handlers = {
        "serve": handle_serve,
        "resolve": handle_resolve,
        "config": handle_config,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return 0 if handler(args) else 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except ConfigError as e:
        print_error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
