import argparse
import logging

import config, web_remote
from app import VRPlayer


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        handlers=[logging.FileHandler(config.LOG_FILE), logging.StreamHandler()],
    )


def main():
    ap = argparse.ArgumentParser(description="360° video player with LAN remote control")
    ap.add_argument("locator", nargs="?", help="video to open at start-up")
    ap.add_argument("--port", type=int, default=config.UDP_PORT, help="UDP control port")
    ap.add_argument("--web-port", type=int, default=config.WEB_PORT)
    ap.add_argument("--no-listen", action="store_true", help="don't start the UDP listener")
    ap.add_argument("--log-level", default=config.LOG_LEVEL)
    args = ap.parse_args()

    setup_logging(args.log_level)
    if args.no_listen:
        config.LISTEN_ON_START = False

    player = VRPlayer(args.locator, port=args.port)
    web_remote.start(player, args.web_port)
    player.run()

if __name__ == "__main__":
    main()
