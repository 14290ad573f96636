"""
Command-line interface for the NetFast DNS filter agent.

This module provides the `netfast` entry point: one-shot subcommands that
inspect or change the resolver configuration, and `monitor`, which runs the
agent in the foreground until it is interrupted or terminated.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO

from ..config import get_config, set_config_path
from ..escalation import EscalationStateMachine
from ..models import EscalationTransition, TransitionKind, WarningChoice
from ..orchestration import Agent, SignalHandler
from ..validation import (
    DNSFilterError,
    ValidationError,
    handle_cli_error,
)

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

EXIT_TERMINATED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netfast",
        description="Enforce a family-safe DNS filter on this machine.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.toml (defaults to conf/config.toml).",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Override the log level from the configuration.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("status", help="Show the current resolvers and matched profile.")
    subparsers.add_parser("profiles", help="List the built-in filter profiles.")

    apply_parser = subparsers.add_parser("apply", help="Apply a filter profile.")
    apply_parser.add_argument(
        "profile",
        nargs="?",
        help="Profile name; defaults to agent.default_profile.",
    )

    subparsers.add_parser("remove", help="Restore automatic DNS configuration.")

    monitor_parser = subparsers.add_parser(
        "monitor", help="Run the integrity monitor in the foreground."
    )
    monitor_parser.add_argument(
        "--apply",
        dest="apply_profile",
        metavar="PROFILE",
        help="Apply this profile before monitoring starts.",
    )

    subparsers.add_parser("escalation-status", help="Show the violation count and phase.")
    return parser


def _emit(envelope: Dict[str, Any]) -> int:
    print(json.dumps(envelope, indent=2, default=str))
    return 0 if envelope.get("success") else 1


def render_transition(transition: EscalationTransition) -> None:
    """Show an escalation notice on the console."""
    if not transition.title:
        return
    if transition.kind is TransitionKind.TERMINATION:
        level = logging.CRITICAL
    elif transition.kind is TransitionKind.WARNING:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(level, f"{transition.title}\n\n{transition.message}")


def prompt_warning_choice(
    transition: EscalationTransition, stream: Optional[TextIO] = None
) -> WarningChoice:
    """
    Ask the user whether to restore protection after a warning.

    Without an interactive terminal the warning is acknowledged.
    """
    stream = stream or sys.stdin
    if not stream.isatty():
        return WarningChoice.ACKNOWLEDGE
    print("Type 'restore' to re-apply protection, or press Enter to continue: ", end="", flush=True)
    answer = stream.readline().strip().lower()
    if answer in ("r", "restore"):
        return WarningChoice.RESTORE
    return WarningChoice.ACKNOWLEDGE


def attach_escalation_ui(
    escalation: EscalationStateMachine, stream: Optional[TextIO] = None
) -> Callable[[], None]:
    """Render transitions and prompt on warnings; returns a detach function."""
    unsubscribe = escalation.subscribe(render_transition)
    escalation.set_warning_handler(lambda transition: prompt_warning_choice(transition, stream))

    def detach() -> None:
        unsubscribe()
        escalation.set_warning_handler(None)

    return detach


def _run_monitor(agent: Agent, apply_profile: Optional[str]) -> int:
    """Run until SIGINT/SIGTERM; the final violation ends the run via SIGTERM."""
    signal_handler = SignalHandler()
    signal_handler.setup_signal_handlers()
    detach_ui = attach_escalation_ui(agent.escalation)
    try:
        if apply_profile:
            envelope = agent.apply_filter(apply_profile)
            if not envelope["success"]:
                return _emit(envelope)
        agent.start_protection()
        logger.info("NetFast agent running. Press Ctrl+C to stop.")
        signal_handler.wait()
    finally:
        agent.shutdown()
        detach_ui()
        signal_handler.cleanup_signal_handlers()

    if agent.escalation.is_terminated:
        logger.critical("NetFast agent terminated after repeated violations")
        return EXIT_TERMINATED
    return 0


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for the NetFast agent.

    Raises:
        SystemExit: Always, with the command's exit status.
    """
    args = build_parser().parse_args(argv)

    if args.config is not None:
        set_config_path(args.config)

    try:
        app_config = get_config()
    except (FileNotFoundError, ValidationError, ValueError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            include_traceback=False,
            logger=logger,
        )

    logging.getLogger().setLevel(args.log_level or app_config.agent.log_level)

    try:
        agent = Agent.from_config(app_config)
    except (DNSFilterError, ValidationError) as e:
        handle_cli_error(
            error=e,
            context="agent startup",
            exit_code=1,
            include_traceback=False,
            logger=logger,
        )

    if args.command == "status":
        exit_code = _emit(agent.check_status())
    elif args.command == "profiles":
        exit_code = _emit(agent.list_profiles())
    elif args.command == "apply":
        exit_code = _emit(agent.apply_filter(args.profile))
    elif args.command == "remove":
        exit_code = _emit(agent.remove_filter())
    elif args.command == "escalation-status":
        exit_code = _emit(agent.get_escalation_status())
    else:
        exit_code = _run_monitor(agent, args.apply_profile)

    sys.exit(exit_code)


if __name__ == "__main__":
    main_cli()
