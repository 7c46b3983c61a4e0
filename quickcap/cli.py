#!/usr/bin/env python3
"""
QuickCap CLI interface and command routing.

This module handles command-line argument parsing and routes commands
to appropriate handlers (interactive UI, one-shot area capture, system
info, clipboard check).

Main entry point: quickcap/__main__.py or the quickcap console script.
"""

import argparse
import logging
import signal
import sys

from quickcap.utils.config import BACKENDS, Config, config_to_dict, load_config

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def cmd_ui(config: Config) -> int:
    """Launch interactive selection UI."""
    try:
        from quickcap.ui import main as ui_main

        print("Launching QuickCap...")
        return ui_main(config)
    except ImportError as e:
        print(f"❌ Failed to import QuickCap UI: {e}")
        print("Make sure PyQt6 is installed: pip install PyQt6")
        return 1


def cmd_area(args, config: Config) -> int:
    """Capture a fixed area straight to the clipboard."""
    from PyQt6.QtWidgets import QApplication
    from quickcap.utils.capture import CaptureService, create_grabber
    from quickcap.utils.clipboard import ClipboardPublisher, QtClipboardBackend
    from quickcap.utils.errors import CaptureUnavailableError
    from quickcap.utils.geometry import parse_area

    try:
        rect = parse_area(args.area)
    except ValueError:
        print("Error: Area format should be 'x,y,width,height' (e.g., '100,100,800,600')")
        return 1

    app = QApplication.instance() or QApplication(sys.argv)
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    try:
        grabber = create_grabber(config.backend)
    except CaptureUnavailableError as e:
        print(f"Error: {e}")
        return 1

    # The clipboard only holds the image while this process owns it
    backend = QtClipboardBackend(on_ownership_lost=app.quit)
    service = CaptureService(grabber, ClipboardPublisher(backend))
    try:
        outcome = service.capture_and_publish(rect)
    finally:
        service.cleanup()

    if not outcome.ok:
        print(f"Not copied: {outcome.error}")
        return 1

    print(f"Copied {rect.width}x{rect.height} at ({rect.x}, {rect.y}) to clipboard")
    print("Serving clipboard until it is replaced (Ctrl+C to stop)...")
    app.exec()
    return 0


def cmd_info(config: Config) -> int:
    """Display system information."""
    from PyQt6.QtWidgets import QApplication
    from quickcap.utils.capture import create_grabber
    from quickcap.utils.errors import CaptureUnavailableError

    app = QApplication.instance() or QApplication(sys.argv)

    try:
        grabber = create_grabber(config.backend)
    except CaptureUnavailableError as e:
        print(f"Screen capture: not available ({e})")
        return 1

    try:
        x, y, width, height = grabber.screen_bounds()
        print(f"Screen geometry: {width}x{height} at ({x}, {y})")
        print(f"Capture backend: {grabber.name}")
        print(f"Qt platform: {app.platformName()}")
        for key, value in config_to_dict(config).items():
            print(f"Setting {key}: {value}")
    except Exception as e:
        print(f"Error getting system info: {e}")
        return 1
    finally:
        grabber.cleanup()

    return 0


def cmd_test_clipboard() -> int:
    """Test clipboard functionality."""
    from PyQt6.QtWidgets import QApplication
    from quickcap.utils.clipboard import clipboard_available

    app = QApplication.instance() or QApplication(sys.argv)

    print(f"Testing clipboard availability ({app.platformName()})...")
    if clipboard_available():
        print("✅ Clipboard is available")
        return 0
    print("❌ Clipboard is not available")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quickcap",
        description="QuickCap - quick screen selection captures to the clipboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage in the UI:
  Space    advance the selection (seed, first corner, second corner, lock)
  Enter    copy the selection to the clipboard (or left click the selection)
  Escape   cancel the selection (or right click it); quit when idle

Examples:
  %(prog)s                                   # Launch interactive selection
  %(prog)s --color '#FF0000' --opacity 0.5   # Red, half transparent selection
  %(prog)s --area 100,100,800,600            # Copy a fixed area
  %(prog)s --info                            # Show system information

Environment:
  QUICKCAP_COLOR, QUICKCAP_BORDER, QUICKCAP_OPACITY, QUICKCAP_INTERVAL,
  QUICKCAP_BACKEND provide defaults for the matching options.
        """,
    )

    # Commands
    parser.add_argument("--area", metavar="x,y,w,h",
                        help="Copy a specific area without interaction (format: x,y,width,height)")
    parser.add_argument("--info", action="store_true",
                        help="Show system information")
    parser.add_argument("--test-clipboard", action="store_true",
                        help="Test clipboard functionality")

    # Appearance and behavior
    parser.add_argument("--color", help="Selection fill color (default: #0000FF)")
    parser.add_argument("--border", help="Selection border color (default: #000000)")
    parser.add_argument("--opacity", help="Selection opacity, 1.0 is opaque (default: 0.3)")
    parser.add_argument("--interval", dest="poll_interval_ms", metavar="MS",
                        help="Pointer polling interval in milliseconds (default: 40)")
    parser.add_argument("--backend", help=f"Capture backend: {', '.join(BACKENDS)} (default: auto)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser


def main(argv=None) -> int:
    """Main entry point for CLI interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    config = load_config({
        "color": args.color,
        "border": args.border,
        "opacity": args.opacity,
        "poll_interval_ms": args.poll_interval_ms,
        "backend": args.backend,
    })
    logger.debug(f"Configuration: {config}")

    # Execute commands
    if args.area:
        return cmd_area(args, config)
    elif args.info:
        return cmd_info(config)
    elif args.test_clipboard:
        return cmd_test_clipboard()
    else:
        return cmd_ui(config)
