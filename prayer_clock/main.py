import argparse
import logging
import sys
from datetime import datetime

from prayer_clock.core.app import PrayerClockApp, setup_basic_logging
from prayer_clock.prayer.period import PrayerPeriod
from prayer_clock.prayer.service import PrayerTimesUnavailable


def render_period(period: PrayerPeriod) -> str:
    """Plain-text summary of a prayer period for the terminal"""
    lines = [
        period.state.description,
        period.status_text,
        f"Progress: {period.period_progress * 100:.0f}%",
        period.formatted_time_remaining,
    ]
    if period.is_urgent:
        lines.append("Less than 30 minutes left")
    return "\n".join(lines)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Prayer Clock')
    parser.add_argument('--config',
                        help='Path to config file (default: ~/.prayer_clock/config.yaml)')
    parser.add_argument('--now', type=datetime.fromisoformat,
                        help='Evaluate at this ISO datetime instead of the current time')
    parser.add_argument('--json', action='store_true', help='Print the period as JSON')
    parser.add_argument('--serve', action='store_true', help='Run the HTTP API in the foreground')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    setup_basic_logging()
    args = parse_args(argv)

    app = PrayerClockApp(config_path=args.config)
    try:
        if args.serve:
            from prayer_clock.api.server import serve_forever
            app.config.start_watching()
            serve_forever(app)
            return 0

        try:
            period = app.current_period(args.now)
        except PrayerTimesUnavailable as e:
            logging.error(str(e))
            return 1

        if args.json:
            print(period.model_dump_json(indent=2))
        else:
            print(render_period(period))
        return 0
    finally:
        app.cleanup()


if __name__ == "__main__":
    sys.exit(main())
