"""Entry point for the password expiry notification run."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def setup_logging(mode: str, log_dir: str = "logs") -> logging.Logger:
    """Set up logging to both console and file.

    Creates the log directory if it doesn't exist and logs to a timestamped file.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Timestamped log filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_path / f"{mode}_{timestamp}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler (INFO level)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (DEBUG level - captures everything)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 80)
    logger.info("Password Expiry Notification - %s run started", mode.upper())
    logger.info("Log file: %s", log_file)
    logger.info("=" * 80)

    return logger


from pwexpiry.config import ConfigurationError, RunMode, settings  # noqa: E402
from pwexpiry.notifier import run_notifications  # noqa: E402


def main() -> None:
    """Parse arguments and run the notification process."""
    parser = argparse.ArgumentParser(
        prog="pw-expiry-notifier",
        description="Notify Active Directory users about upcoming password expiration",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in RunMode],
        help="Override RUN_MODE: live, simulate (redirect mails) or report (send nothing)",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for user input before exiting (useful for debugging)",
    )

    args = parser.parse_args()
    if args.mode:
        settings.run_mode = RunMode(args.mode)

    logger = setup_logging(settings.run_mode.value, settings.log_dir)

    try:
        run_notifications(settings)
        logger.info("Process completed successfully")
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(2)
    except Exception as e:
        logger.error("Process failed with exception: %s", e, exc_info=True)
        sys.exit(1)
    finally:
        logger.info("=" * 80)
        if args.wait:
            input("Press Enter to exit...")


if __name__ == "__main__":
    main()
