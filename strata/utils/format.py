"""
Formatting utilities.

Terminal colours for status lines, and the helpers used to render
shell-safe command lines in generated scripts.
"""
import shlex
from typing import Iterable, List, Optional


class TermColors:
    """ANSI escape sequences used in status lines"""
    INFO = '\033[94m'     # Blue: progress
    SUCCESS = '\033[92m'  # Green: completed steps
    ERROR = '\033[91m'    # Red: failures
    SIM = '\033[96m'      # Cyan: simulated actions
    BOLD = '\033[1m'
    ENDC = '\033[0m'      # Reset


def colorize(message: str, color: str, enabled: bool = True) -> str:
    """
    Wrap a message in a colour, unless colours are disabled.

    Args:
        message: Text to colour
        color: One of the TermColors sequences
        enabled: False when --no-color was given

    Returns:
        The message, coloured when enabled
    """
    if not enabled:
        return message
    return f"{color}{message}{TermColors.ENDC}"


def quote(word: object) -> str:
    """Quote a single word for a POSIX shell."""
    return shlex.quote(str(word))


def command(*words: Optional[object]) -> str:
    """
    Build a shell command line from words.

    Words may be strings, numbers, None or lists of words (flattened).
    None marks an omitted optional argument and is the only word skipped:
    an empty string is kept and quoted as ''.

    Args:
        *words: Command words

    Returns:
        The quoted command line
    """
    parts: List[str] = []
    for word in words:
        if word is None:
            continue
        if isinstance(word, (list, tuple)):
            parts.extend(quote(w) for w in word)
        else:
            parts.append(quote(word))
    return " ".join(parts)


def option_flags(flag: str, values: Iterable[str]) -> List[str]:
    """
    Repeat a flag before each value.

    Example: option_flags("-o", ["a", "b"]) -> ["-o", "a", "-o", "b"]
    """
    result: List[str] = []
    for value in values:
        result.extend([flag, value])
    return result


def indent(script: str, prefix: str = "  ") -> str:
    """Indent every non-empty line of a script fragment."""
    return "".join(
        f"{prefix}{line}" if line.strip() else line
        for line in script.splitlines(keepends=True)
    )
