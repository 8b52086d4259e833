"""
Script execution.

Generated scripts are handed to ``sh``. In simulation mode nothing is run:
the commands each script would execute are logged and collected into a
report instead.
"""
import logging
import subprocess
import uuid
from enum import Enum
from typing import List, NamedTuple

from strata.core.exceptions import ExecutionError
from strata.utils.format import TermColors, colorize

logger = logging.getLogger('strata')


class SimulationMode(Enum):
    """Whether generated scripts are actually run"""
    DISABLED = 0  # Run scripts
    SIMULATE = 1  # Only log them


class ScriptRecord(NamedTuple):
    """A script passed to the runner"""
    name: str
    commands: List[str]
    simulated: bool


def script_commands(script: str) -> List[str]:
    """
    List the command lines of a script, without blank lines and comments.

    Args:
        script: Script text

    Returns:
        Stripped command lines
    """
    return [
        line.strip() for line in script.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]


class CommandRunner:
    """
    Runs generated scripts, or pretends to in simulation mode.

    Every script handed to the runner is kept in ``scripts`` so a summary can
    be printed once the run is over.
    """
    def __init__(self, simulation_mode: SimulationMode, colored_output: bool = True):
        """
        Initialize the command runner.

        Args:
            simulation_mode: Simulation mode to operate in
            colored_output: Whether to use colored output in terminal
        """
        self.simulation_mode = simulation_mode
        self.colored_output = colored_output
        self.scripts: List[ScriptRecord] = []

        # Tags the log lines of one simulated run
        self.simulation_id = uuid.uuid4().hex[:8]

    @property
    def simulating(self) -> bool:
        return self.simulation_mode == SimulationMode.SIMULATE

    def _sim_prefix(self) -> str:
        return colorize(f"[SIM:{self.simulation_id}]", TermColors.SIM, self.colored_output)

    def run_script(self, script: str, name: str) -> None:
        """
        Run a generated shell script, or log its commands in simulation mode.

        The script's own output goes straight to the terminal.

        Args:
            script: Script text
            name: Name of the script, used in logs and as $0

        Raises:
            ExecutionError: If the script exits with a non-zero code
        """
        commands = script_commands(script)
        self.scripts.append(ScriptRecord(name, commands, self.simulating))

        if self.simulating:
            logger.info(f"{self._sim_prefix()} Would run the {name} script ({len(commands)} lines):")
            for line in commands:
                logger.info(f"{self._sim_prefix()}   {line}")
            return

        logger.info(colorize(f"Running the {name} script", TermColors.INFO, self.colored_output))
        logger.debug(f"{name} script:\n{script}")
        try:
            subprocess.run(["sh", "-c", script, f"strata-{name}"], check=True, text=True)
        except subprocess.CalledProcessError as e:
            logger.error(colorize(f"The {name} script failed", TermColors.ERROR, self.colored_output))
            raise ExecutionError(f"The {name} script failed with exit code {e.returncode}")
        except OSError as e:
            raise ExecutionError(f"Could not start the {name} script: {e}")
        logger.info(colorize(f"The {name} script completed successfully", TermColors.SUCCESS, self.colored_output))

    def get_simulation_report(self) -> str:
        """
        Build a report listing the commands of every simulated script.

        Returns:
            Report text, numbered across scripts
        """
        if not self.simulating:
            return "Simulation mode is not active."

        lines = ["=" * 80, f"SIMULATION REPORT [ID: {self.simulation_id}]", "=" * 80, ""]
        total = 0
        for record in self.scripts:
            lines.append(f"{record.name.upper()} SCRIPT:")
            lines.append("-" * 40)
            for command in record.commands:
                total += 1
                lines.append(f"{total}. {command}")
            lines.append("")

        lines.append("-" * 80)
        lines.append(f"Total commands simulated: {total}")
        lines.append("=" * 80)
        return "\n".join(lines)
