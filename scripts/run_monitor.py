"""Run the background check monitor as its own process.

Usage:
  python scripts/run_monitor.py            # poll every BACKGROUND_CHECK_INTERVAL_SEC
  python scripts/run_monitor.py --once     # single reconciliation pass, then exit

Use this instead of BACKGROUND_CHECK_MONITOR_ENABLED when the web app runs
with several workers, so only one process polls the vendor.
"""

import argparse
import os
import signal
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tracker import create_app


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--once', action='store_true', help='run one pass and exit')
    args = parser.parse_args()

    app = create_app()
    monitor = app.extensions['tracker.background_check_monitor']

    if args.once:
        results = monitor.run_once() or []
        changed = sum(1 for r in results if r.changed)
        print(f'checked {len(results)} background checks, {changed} changed')
        return 0 if monitor.last_results is not None else 1

    def _shutdown(signum, frame):
        monitor.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    monitor.start()
    signal.pause()


if __name__ == '__main__':
    sys.exit(main())
