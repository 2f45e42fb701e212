#!/usr/bin/env python3
"""
Drive SwitchInput's simulation mode by writing the "focused window" file.

Start the monitor with:
    switch-input run --simulate /tmp/switch_input_fake_window

Then, from another terminal:
    ./simulate_window.py com.apple.Safari
    ./simulate_window.py "Google Chrome|Inbox - Gmail"
    ./simulate_window.py --cycle 2 com.apple.Safari com.apple.Terminal
    ./simulate_window.py --clear
"""
import argparse
import os
import sys
import time

SIMULATION_FILE = "/tmp/switch_input_fake_window"


def write_window(path, window_info):
    with open(path, "w", encoding="utf-8") as f:
        f.write(window_info)
    print(f"Focused window: '{window_info}'")


def main():
    parser = argparse.ArgumentParser(description="Simulate focus changes for SwitchInput")
    parser.add_argument("windows", nargs="*", metavar="APP[|TITLE]",
                        help="Window to focus; several are visited in order")
    parser.add_argument("--file", default=SIMULATION_FILE, help="Simulation file path")
    parser.add_argument("--cycle", type=float, metavar="SECONDS",
                        help="Keep cycling through the windows at this interval")
    parser.add_argument("--clear", action="store_true", help="Remove the simulation file")
    args = parser.parse_args()

    try:
        if args.clear:
            if os.path.exists(args.file):
                os.remove(args.file)
            print(f"Removed {args.file}")
            return 0

        if not args.windows:
            parser.print_usage()
            return 1

        if args.cycle is None:
            for window_info in args.windows:
                write_window(args.file, window_info)
            return 0

        while True:
            for window_info in args.windows:
                write_window(args.file, window_info)
                time.sleep(args.cycle)
    except KeyboardInterrupt:
        return 0
    except OSError as e:
        print(f"Error writing to simulation file: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
