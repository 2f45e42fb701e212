#!/usr/bin/env python3
"""
SwitchInput command-line entry point.

Usage:
    switch-input run [--simulate FILE]
    switch-input rules list
    switch-input rules add APP INPUT [--window PATTERN] [--priority N] [--disabled]
    switch-input rules update INDEX APP INPUT [--window PATTERN] [--priority N] [--disabled]
    switch-input rules delete INDEX
    switch-input rules test INDEX
    switch-input rules export PATH
    switch-input rules import PATH [--replace]
    switch-input logs recent [-n N]
    switch-input logs stats
    switch-input logs clear
    switch-input check-deps
"""
import argparse
import logging
import signal
import sys
import threading

from .app import SwitchInputApp
from .config_store import ConfigError
from .dependency_check import DependencyChecker
from .models import Rule
from .rule_matcher import ConfigNotLoadedError, RuleIndexError
from .window_detection import TransientObservationError

LOG_LEVEL_NAMES = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

logger = logging.getLogger("SwitchInput")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="switch-input",
        description="Switch the input method automatically based on the focused application.",
    )
    parser.add_argument("--config-dir", help="Config directory (default: ~/.switch-input)")
    parser.add_argument("--log-level", choices=sorted(LOG_LEVEL_NAMES),
                        help="Diagnostic log level (default: general.logLevel from config)")

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Monitor focus changes and switch input methods")
    run.add_argument("--simulate", metavar="FILE",
                     help="Read the focused window from FILE ('App' or 'App|Window title')")

    rules = sub.add_parser("rules", help="Manage switching rules")
    rules_sub = rules.add_subparsers(dest="rules_command", required=True)
    rules_sub.add_parser("list", help="List all rules")

    def add_rule_arguments(p):
        p.add_argument("app", help="App name, comma-separated alternatives allowed")
        p.add_argument("input", help="Target input method id")
        p.add_argument("--window", default="", help="Window title pattern ('*' wildcard)")
        p.add_argument("--priority", type=int, default=0, help="Lower value wins")
        p.add_argument("--disabled", action="store_true", help="Store the rule disabled")

    add_rule_arguments(rules_sub.add_parser("add", help="Append a rule"))
    update = rules_sub.add_parser("update", help="Replace the rule at INDEX")
    update.add_argument("index", type=int)
    add_rule_arguments(update)
    delete = rules_sub.add_parser("delete", help="Delete the rule at INDEX")
    delete.add_argument("index", type=int)
    test = rules_sub.add_parser("test", help="Check the rule at INDEX against the focused window")
    test.add_argument("index", type=int)
    export = rules_sub.add_parser("export", help="Export rules to a YAML or JSON file")
    export.add_argument("path")
    import_ = rules_sub.add_parser("import", help="Import rules from a YAML or JSON file")
    import_.add_argument("path")
    import_.add_argument("--replace", action="store_true", help="Replace instead of append")

    logs = sub.add_parser("logs", help="Inspect the action log")
    logs_sub = logs.add_subparsers(dest="logs_command", required=True)
    recent = logs_sub.add_parser("recent", help="Show the most recent entries")
    recent.add_argument("-n", "--limit", type=int, default=20)
    logs_sub.add_parser("stats", help="Show entry counts and file size")
    logs_sub.add_parser("clear", help="Clear the live log file")

    sub.add_parser("check-deps", help="Report missing tools and packages")
    return parser


def rule_from_args(args) -> Rule:
    return Rule(
        app_pattern=args.app,
        target_input=args.input,
        window_pattern=args.window,
        enabled=not args.disabled,
        priority=args.priority,
    )


def apply_config_log_level(app: SwitchInputApp, args):
    """Use general.logLevel from the config unless --log-level was given."""
    if args.log_level:
        return
    config = app.matcher.get_config()
    if config:
        logging.getLogger().setLevel(LOG_LEVEL_NAMES.get(config.general.log_level, logging.INFO))


def run_daemon(app: SwitchInputApp, args) -> int:
    stop_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_signal)

    if not app.startup():
        app.shutdown()
        return 1
    apply_config_log_level(app, args)

    logger.info("SwitchInput is running. Press Ctrl+C to exit.")
    try:
        while not stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        app.shutdown()
    return 0


def run_rules_command(app: SwitchInputApp, args) -> int:
    command = args.rules_command

    if command == "list":
        config = app.get_config()
        if not config.rules:
            print("No rules configured.")
        for i, rule in enumerate(config.rules):
            state = "" if rule.enabled else " (disabled)"
            print(f"{i:3d}  [{rule.priority}] {rule}{state}")
    elif command == "add":
        rule = rule_from_args(args)
        app.add_rule(rule)
        print(f"Added rule: {rule}")
    elif command == "update":
        rule = rule_from_args(args)
        app.update_rule(args.index, rule)
        print(f"Updated rule {args.index}: {rule}")
    elif command == "delete":
        removed = app.delete_rule(args.index)
        print(f"Deleted rule {args.index}: {removed}")
    elif command == "test":
        config = app.get_config()
        if not 0 <= args.index < len(config.rules):
            raise RuleIndexError(f"rule index {args.index} out of range")
        matched, observation = app.test_rule(config.rules[args.index])
        verdict = "matches" if matched else "does not match"
        print(f"Rule {args.index} {verdict} focused window '{observation.app_name}' ({observation.window_name})")
    elif command == "export":
        app.matcher.export_rules(args.path)
        print(f"Exported rules to {args.path}")
    elif command == "import":
        config = app.matcher.import_rules(args.path, replace=args.replace)
        print(f"Imported rules from {args.path}; {len(config.rules)} rules configured")
    return 0


def run_logs_command(app: SwitchInputApp, args) -> int:
    command = args.logs_command

    if command == "recent":
        for entry in app.recent_logs(args.limit):
            extra = f" [{entry.action}]" if entry.action else ""
            print(f"{entry.timestamp.isoformat()} {entry.level.upper():5s} {entry.message}{extra}")
    elif command == "stats":
        for key, value in app.log_stats().items():
            print(f"{key}: {value}")
    elif command == "clear":
        app.clear_logs()
        print("Log file cleared.")
    return 0


def main(argv=None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL_NAMES[args.log_level] if args.log_level else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check-deps":
        checker = DependencyChecker()
        print(checker.format_report())
        return 1 if checker.has_critical_failures() else 0

    app = SwitchInputApp.create(args.config_dir, simulation_file=getattr(args, "simulate", None))

    if args.command == "run":
        return run_daemon(app, args)

    try:
        config = app.matcher.load_config()
        app.action_log.set_enabled(config.general.enable_logging)
        apply_config_log_level(app, args)
        if args.command == "rules":
            return run_rules_command(app, args)
        return run_logs_command(app, args)
    except (ConfigError, ConfigNotLoadedError) as e:
        logger.error(f"Configuration Error: {e}")
        return 1
    except RuleIndexError as e:
        logger.error(f"{e}")
        return 1
    except TransientObservationError as e:
        logger.error(f"Could not read the focused window: {e}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"{e}")
        return 1
    finally:
        app.action_log.stop()


if __name__ == "__main__":
    sys.exit(main())
