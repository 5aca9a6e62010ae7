import argparse
import asyncio
import logging
import os

from dotenv import load_dotenv

from config.config_manager import ConfigManager
from controllers.channel_controller import ChannelApp

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

LOG_FILE = os.getenv("CHANNEL_LOG_FILE", "channel.log")


def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler()
        ]
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Always-on channel playback engine")
    parser.add_argument('--source', help="Content JSON file or http(s) URL (overrides settings)")
    parser.add_argument('--deep-link', default=os.getenv("CHANNEL_DEEP_LINK"),
                        help="Item id or shared link (?v=<id> / ?id=<id>) to start with")
    parser.add_argument('--settings', help="Path to settings.json")
    parser.add_argument('--seed', type=int, help="Random seed for reproducible sequencing")
    parser.add_argument('--debug', action='store_true', help="Verbose logging")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    config_manager = ConfigManager(settings_path=args.settings)
    setup_logging(args.debug or bool(config_manager.get_settings().get('debug_mode', False)))

    app = ChannelApp(
        config_manager,
        source_location=args.source,
        deep_link=args.deep_link,
        seed=args.seed,
    )
    app.install_signal_handlers()
    asyncio.run(app.run())


if __name__ == "__main__":
    main()
