from __future__ import annotations

import logging
import sys

from .config import USAGE, ConfigError, load_config
from .server import create_listener, serve_forever


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    try:
        config = load_config(args)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 1

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        server = create_listener(config)
    except OSError as exc:
        print(f"Failed to bind {config.bind}:{config.port}: {exc}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 1

    host, port = server.getsockname()[:2]
    print(f"Root folder: {config.root}", flush=True)
    print(f"Server listening on {host}:{port}", flush=True)
    try:
        serve_forever(server, config)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
