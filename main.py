# main.py
import sys
import logging
import argparse
from pathlib import Path

from api_client import ApiClient, Session
from config import load_config
from logger import setup_logger
from models import BillingCounter
from print_bridge import ReceiptPrinter
from ui import BillingUI

logger = logging.getLogger("POS_Billing")


def setup_directories(config):
    """Create required directories if they don't exist."""
    dir_paths = [
        config.get('receipt', {}).get('receipt_dir', 'receipts'),
        config.get('export', {}).get('default_dir', 'exports'),
    ]
    for dir_path in dir_paths:
        path = Path(dir_path)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created directory: {path}")


def parse_arguments():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Storefront billing counter")
    parser.add_argument("--config", help="Path to configuration file", default="config.json")
    parser.add_argument("--debug", help="Enable debug mode", action="store_true")
    return parser.parse_args()


def main():
    api = None
    try:
        args = parse_arguments()

        # console only until the config names the log file
        setup_logger(debug=args.debug)
        config = load_config(args.config)
        setup_logger(config, debug=args.debug)
        setup_directories(config)

        api_cfg = config["api"]
        session = Session(token=api_cfg.get("token") or None)
        if not session.is_authenticated:
            logger.warning("No admin token configured; the server may refuse counter requests")
        api = ApiClient(api_cfg.get("base_url"), session=session,
                        timeout=float(api_cfg.get("timeout", 55)))
        logger.info(f"API client ready: {api_cfg.get('base_url')}")

        printer = ReceiptPrinter.from_config(config)
        counter = BillingCounter(api, printer, config)

        app = BillingUI(counter, config)
        logger.info("Starting billing counter")
        app.run()

    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if api is not None:
            api.close()


if __name__ == "__main__":
    main()
