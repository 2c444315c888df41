"""
tiny8 - Machine Profiles and Logging Setup

A profile bundles the knobs a run needs: where the program is loaded,
how big memory is, and an optional cycle budget. The CLI picks a profile
by name and lets flags override individual fields.
"""

import logging
import sys
from dataclasses import dataclass, replace
from typing import Optional

from .mem.memory import MEMORY_SIZE

LOG_FORMAT = '%(levelname)s: %(message)s'


@dataclass(frozen=True)
class MachineProfile:
    description: str = "Flat 64K machine, program at $0000"
    origin: int = 0x0000
    memory_size: int = MEMORY_SIZE
    max_cycles: Optional[int] = None   # None = run until halt or fault

    def override(self, **changes) -> 'MachineProfile':
        """Copy with the non-None entries of `changes` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


PROFILES = {
    'default': MachineProfile(),
    'bounded': MachineProfile(
        description="Flat 64K machine with a 10M cycle watchdog",
        max_cycles=10_000_000,
    ),
}


def get_profile(name: str = 'default') -> MachineProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"unknown profile '{name}' (choose from {', '.join(PROFILES)})") from None


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("$"):
        return int(value[1:], 16)
    return int(value)


def setup_logging(verbose: int = 0, quiet: bool = False) -> logging.Logger:
    """Configure root logging for the CLI.

    Log records go to stderr so they never interleave with program output
    on stdout. -q keeps errors only, -v enables debug.
    """
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[console], force=True)
    return logging.getLogger('tiny8')
