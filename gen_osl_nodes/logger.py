import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

# Centralized logger name; module loggers (logging.getLogger(__name__)) are its children
LOGGER_NAME = "gen_osl_nodes"
DISPLAY_NAME = "GenOslNodes"

# Name of the per-batch log written next to the generated shaders
LOG_FILE_NAME = "genoslnodes_libs_to_oso.txt"
BATCH_LOGGER_NAME = f"{LOGGER_NAME}.batch"


def get_logger() -> logging.Logger:
    """Get the standard logger for the generator."""
    return logging.getLogger(LOGGER_NAME)


def setup_logger(level=logging.INFO):
    """
    Configure the generator console logger.

    Args:
        level: Logging level (default: INFO)
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers to prevent duplicates
    if logger.handlers:
        logger.handlers.clear()

    # Create console handler
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)

    # Format: [GenOslNodes] [Level] Message
    formatter = logging.Formatter(f'[{DISPLAY_NAME}] [%(levelname)s] %(message)s')
    ch.setFormatter(formatter)

    logger.addHandler(ch)

    return logger


class NodeLog:
    """
    Append-only log of skipped and failed node definitions for one batch.

    Backed by a FileHandler on a dedicated logger that does not propagate to
    the console logger. The file is opened once when the context is entered
    and closed once when it exits. Batches share one logger, so only one
    NodeLog is open at a time.

    Example:
        with NodeLog(output_path / LOG_FILE_NAME) as log:
            log.skipped("ND_foo", "no implementation for target 'genosl'")
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.entries = 0
        self.failures = 0
        self._handler: Optional[logging.FileHandler] = None
        self._logger = logging.getLogger(BATCH_LOGGER_NAME)
        self._logger.propagate = False
        self._logger.setLevel(logging.INFO)

    @property
    def closed(self) -> bool:
        return self._handler is None

    def open(self) -> 'NodeLog':
        if self._handler is not None:
            return self
        self._handler = logging.FileHandler(self.path, mode='w', encoding='utf-8')
        self._handler.setFormatter(logging.Formatter('%(message)s'))
        self._logger.addHandler(self._handler)
        return self

    def close(self):
        if self._handler is None:
            return
        self._logger.removeHandler(self._handler)
        self._handler.close()
        self._handler = None

    def __enter__(self) -> 'NodeLog':
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def write(self, lines: Iterable[str]):
        """Append one block of lines."""
        if self._handler is None:
            raise ValueError(f"Log {self.path} is not open")
        for line in lines:
            self._logger.info(line)
        self.entries += 1

    def skipped(self, node_name: str, reason: str):
        self.write([
            f"The following `NodeDef` does not provide a valid OSL implementation, "
            f"and will be skipped: {node_name}",
            reason,
        ])

    def failed(self, node_name: str, message: str, error_log: Iterable[str] = ()):
        self.failures += 1
        self.write([
            f"Failed to codegen/compile the following node to OSL: {node_name}",
            message,
            *error_log,
        ])
