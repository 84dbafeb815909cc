#!/usr/bin/env python3

"""
Lancers Scraper - Main Entry Point
Long-running job listing scraper
"""

import argparse
import logging
import signal
import sys
from collector import JobCardCollector
from config_loader import ConfigValidationError, load_config, load_credentials
from dispatch import LoggingDispatcher
from run_metrics import RunMetrics
from scraper import ScrapeController, start_scraping, stop_scraping
from session import Authenticator, SessionFactory


def setup_logging(config) -> None:
    """Configure logging for the application"""
    log_file = config.get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, config.get_log_level(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file}")


def display_config(config, credentials) -> None:
    """Display loaded configuration"""
    print("\n" + "="*60)
    print("🤖 LANCERS SCRAPER")
    print("="*60)

    print("\n📋 SEARCH PAGES:")
    for i, url in enumerate(config.get_search_urls(), 1):
        print(f"  {i}. {url}")

    print(f"\n👤 Account: {credentials.email}")
    print(f"📦 Owner id: {credentials.admin_id or '-'}")

    print(f"\n⚙️  BROWSER SETTINGS:")
    print(f"  Headless mode: {config.is_headless()}")
    print(f"  Stealth: {config.use_stealth()}")
    print(f"  Navigation timeout: {config.get_navigation_timeout()/1000}s")
    print(f"  Restart every: {config.get_restart_every()} cycles")

    print(f"\n⏱  LOOP:")
    print(f"  Card polls: {config.get_max_attempts()} x {config.get_poll_interval()}s")
    print(f"  Cycle delay: {config.get_cycle_delay()}s")

    print("\n" + "="*60 + "\n")


def build_controller(config, credentials, metrics: RunMetrics) -> ScrapeController:
    return ScrapeController(
        config=config,
        session_factory=SessionFactory(config),
        authenticator=Authenticator(config, credentials),
        collector=JobCardCollector.from_config(config),
        dispatch_hook=LoggingDispatcher(),
        owner_id=credentials.admin_id,
        metrics=metrics,
    )


def _request_stop(signum, frame) -> None:
    logging.getLogger(__name__).warning("Stop requested (signal %s); finishing current cycle", signum)
    stop_scraping()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lancers job scraper")
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to config YAML",
    )
    return parser.parse_args()


def main():
    """Main execution function"""
    print("\n🚀 Starting Lancers Scraper...")
    args = parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        print("Make sure config/settings.yaml exists!")
        return 1
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return 1

    setup_logging(config)
    logger = logging.getLogger(__name__)

    try:
        credentials = load_credentials()
    except ConfigValidationError as e:
        print(f"❌ Error: {e}")
        return 1

    display_config(config, credentials)

    metrics = RunMetrics()
    controller = build_controller(config, credentials, metrics)

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    start_scraping(controller)

    if config.is_metrics_enabled():
        path = metrics.write_json(template=config.get_metrics_template())
        logger.info("Run metrics written to %s", path)

    summary = metrics.summary()
    logger.info(
        "Scraper exited after %s cycles, %s sessions (restarts: %s, errors: %s)",
        metrics.cycles, summary["sessions_created"], summary["restarts"], summary["errors"],
    )
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
