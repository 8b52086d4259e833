"""
Command-line interface for strata.

This module handles argument parsing and orchestrates compiling a layout,
writing the generated artifacts and optionally applying them.
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from strata import compile_layout
from strata.config import HostConfig, create_directory
from strata.config.crypttab import generate_crypttab, render_crypttab
from strata.config.fstab import generate_fstab, render_fstab
from strata.core.exceptions import StrataError
from strata.core.script import DEFAULT_ROOT_MOUNTPOINT, CompiledLayout
from strata.utils.command import CommandRunner, SimulationMode
from strata.utils.format import TermColors, colorize
from strata.utils.loader import load_layout
from strata.utils.logging import setup_logging
from strata.utils.validation import check_prerequisites

logger = logging.getLogger('strata')

MODES = ["create", "mount", "config", "tools", "all"]


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Arguments to parse, sys.argv when omitted

    Returns:
        Namespace containing parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Compile a declarative storage layout into provisioning scripts"
    )

    parser.add_argument(
        "layout",
        help="Layout file in YAML or JSON (use '-' to read YAML from standard input)"
    )

    parser.add_argument(
        "-r", "--root-mountpoint",
        default=DEFAULT_ROOT_MOUNTPOINT,
        help=f"Directory the target root is mounted on (default: {DEFAULT_ROOT_MOUNTPOINT})"
    )

    parser.add_argument(
        "-m", "--mode",
        choices=MODES,
        default="all",
        help="Artifact printed to standard output when no output directory is given (default: all)"
    )

    parser.add_argument(
        "-o", "--output-dir",
        help="Write the scripts, host configuration and tool list into this directory"
    )

    parser.add_argument(
        "-f", "--generate-fstab",
        action="store_true",
        help="Generate an fstab from the layout's filesystems and swap devices"
    )

    parser.add_argument(
        "-c", "--generate-crypttab",
        action="store_true",
        help="Generate a crypttab for the layout's encrypted devices"
    )

    parser.add_argument(
        "--apply",
        action="store_true",
        help="Run the creation and mount scripts on this machine (DESTROYS DATA on the listed disks)"
    )

    # Simulation options
    parser.add_argument(
        "-s", "--simulate",
        action="store_true",
        help="With --apply, log the commands without making any changes to the system"
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def render_artifact(compiled: CompiledLayout, mode: str) -> str:
    """
    Render the artifact selected by a mode as text.

    Args:
        compiled: Compiled layout
        mode: One of MODES

    Returns:
        Text to print
    """
    if mode == "create":
        return compiled["create_script"]
    if mode == "mount":
        return compiled["mount_script"]
    if mode == "config":
        return json.dumps(HostConfig.from_facts(compiled["config"]).to_dict(), indent=2) + "\n"
    if mode == "tools":
        return "".join(f"{tool}\n" for tool in compiled["tools"])
    return compiled["create_script"] + "\n" + compiled["mount_script"]


def output_files(compiled: CompiledLayout, args: argparse.Namespace) -> Dict[str, str]:
    """
    Map output file names to their content.

    Args:
        compiled: Compiled layout
        args: Command line arguments

    Returns:
        File contents by file name
    """
    host_config = HostConfig.from_facts(compiled["config"])
    files = {
        "create.sh": compiled["create_script"],
        "mount.sh": compiled["mount_script"],
        "host-config.json": json.dumps(host_config.to_dict(), indent=2) + "\n",
        "tools.txt": render_artifact(compiled, "tools"),
    }
    if args.generate_fstab:
        files["fstab"] = render_fstab(host_config)
    if args.generate_crypttab:
        files["crypttab"] = render_crypttab(host_config)
    return files


def write_outputs(compiled: CompiledLayout, args: argparse.Namespace, cmd_runner: CommandRunner) -> None:
    """
    Write every artifact into the output directory.

    Args:
        compiled: Compiled layout
        args: Command line arguments
        cmd_runner: CommandRunner instance for executing commands
    """
    output_dir = Path(args.output_dir)
    create_directory(output_dir, cmd_runner, "output")

    for name, content in output_files(compiled, args).items():
        path = output_dir / name
        if cmd_runner.simulating:
            logger.info(f"Would write {path}")
            continue
        path.write_text(content)
        if name.endswith(".sh"):
            os.chmod(path, 0o755)
        logger.info(f"Wrote {path}")


def apply_layout(compiled: CompiledLayout, args: argparse.Namespace, cmd_runner: CommandRunner) -> None:
    """
    Apply a compiled layout to the running system.

    Args:
        compiled: Compiled layout
        args: Command line arguments
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        PrerequisiteError: If required tools or permissions are missing
        ExecutionError: If a script fails
    """
    check_prerequisites(compiled["tools"], cmd_runner)

    cmd_runner.run_script(compiled["create_script"], "create")
    cmd_runner.run_script(compiled["mount_script"], "mount")

    host_config = HostConfig.from_facts(compiled["config"])
    target = Path(args.root_mountpoint)
    if args.generate_fstab:
        generate_fstab(host_config, target, cmd_runner)
    if args.generate_crypttab:
        generate_crypttab(host_config, target, cmd_runner)


def display_simulation_summary(cmd_runner: CommandRunner) -> None:
    """
    Display a summary of the simulation.

    Args:
        cmd_runner: CommandRunner instance for executing commands
    """
    if not cmd_runner.simulating:
        return

    # Get the simulation report
    report = cmd_runner.get_simulation_report()

    # Get terminal width
    try:
        terminal_width = os.get_terminal_size().columns
    except (AttributeError, OSError):
        terminal_width = 80

    stars = "*" * terminal_width
    colored = cmd_runner.colored_output

    print(f"\n{colorize(stars, TermColors.SIM, colored)}")
    print(colorize("SIMULATION COMPLETE - NO CHANGES WERE MADE", TermColors.SIM + TermColors.BOLD, colored))
    print(f"{colorize(stars, TermColors.SIM, colored)}\n")

    print(colorize("The following operations would have been performed:", TermColors.SUCCESS, colored))
    print(report)

    print(f"\n{colorize('To execute these operations for real, run without the --simulate flag.', TermColors.SIM, colored)}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function.

    Args:
        argv: Arguments to parse, sys.argv when omitted

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = None
    try:
        args = parse_arguments(argv)

        # Set up logging
        setup_logging(args.debug)

        # Create the command runner with appropriate simulation mode
        cmd_runner = CommandRunner(
            SimulationMode.SIMULATE if args.simulate else SimulationMode.DISABLED,
            not args.no_color
        )
        if args.simulate:
            logger.info("Running in simulation mode - NO CHANGES WILL BE MADE")

        try:
            compiled = compile_layout(load_layout(args.layout), args.root_mountpoint)

            if args.output_dir:
                write_outputs(compiled, args, cmd_runner)
            elif not args.apply:
                sys.stdout.write(render_artifact(compiled, args.mode))

            if args.apply:
                apply_layout(compiled, args, cmd_runner)
                if args.simulate:
                    display_simulation_summary(cmd_runner)
                else:
                    logger.info(colorize("Storage layout applied successfully", TermColors.SUCCESS, not args.no_color))
                    logger.info(f"The system is mounted at {args.root_mountpoint}")

            return 0

        except StrataError as e:
            logger.error(str(e))
            return 1

    except KeyboardInterrupt:
        logger.error("Operation cancelled by user")
        return 130

    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args is not None and args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
