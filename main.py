"""Entry point - launches the game server via CLI args.

Usage:
    python main.py                            # Server on localhost:8765, timed phases
    python main.py server                     # Same
    python main.py server 0.0.0.0 9000        # Custom host/port
    python main.py server 0.0.0.0 9000 manual # Host advances every phase by hand
"""

import sys
import asyncio
import logging

from shared.constants import DEFAULT_HOST, DEFAULT_PORT


async def main():
    args = sys.argv[1:]

    if not args or args[0] == "server":
        from server.server import main as server_main
        from server.controller import PhaseConfig
        host = args[1] if len(args) > 1 else DEFAULT_HOST
        port = int(args[2]) if len(args) > 2 else DEFAULT_PORT
        mode = args[3] if len(args) > 3 else "timed"
        if mode not in ("timed", "manual"):
            print(__doc__)
            sys.exit(1)
        config = PhaseConfig.manual() if mode == "manual" else PhaseConfig()
        print(f"Starting word imposter server on {host}:{port} ({mode} phases)")
        await server_main(host, port, config)
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    asyncio.run(main())
