"""
OslCompiler for the generator runtime.

Runs the external OSL compiler (oslc) on generated files.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..errors import CompilerDiagnosticError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
OSO_SUFFIX = ".oso"

# oslc diagnostics read "<file>:<line>: error: ..." or start with "error:"
_ERROR_LINE = re.compile(r":\d+: error:|^error:", re.IGNORECASE)


def _output_lines(output: Union[str, bytes, None]) -> List[str]:
    if not output:
        return []
    if isinstance(output, bytes):
        output = output.decode('utf-8', errors='replace')
    return [line for line in output.splitlines() if line.strip()]


class OslCompiler:
    """
    Compiles .osl files to .oso files next to them.

    Every call blocks until the compiler exits or the timeout expires; on
    timeout the process is killed and the file is reported as failed.
    """

    def __init__(self, executable: Union[str, Path], include_paths: Iterable[Union[str, Path]] = (),
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.executable = Path(executable)
        self.include_paths = [str(p) for p in include_paths]
        self.timeout = timeout

    def resolve_include_paths(self, extra_paths: Iterable[Union[str, Path]] = ()) -> List[str]:
        """Configured include paths followed by extra ones, without duplicates."""
        paths: List[str] = []
        for path in list(self.include_paths) + [str(p) for p in extra_paths]:
            if path and path not in paths:
                paths.append(path)
        return paths

    def search_path(self, extra_paths: Iterable[Union[str, Path]] = ()) -> str:
        """The include search path as one comma-joined string."""
        return ",".join(self.resolve_include_paths(extra_paths))

    def build_command(self, source: Path, output: Path, include_paths: List[str]) -> List[str]:
        command = [str(self.executable), "-q"]
        command += [f"-I{path}" for path in include_paths]
        command += [str(source), "-o", str(output)]
        return command

    def compile(self, source_path: Union[str, Path], extra_include_paths: Iterable[Union[str, Path]] = (),
                node_name: str = None) -> Path:
        """
        Compile one .osl file.

        Args:
            source_path: The .osl file to compile
            extra_include_paths: Include paths added after the configured ones
            node_name: Node the file was generated for, used in errors

        Returns:
            Path of the produced .oso file

        Raises:
            CompilerDiagnosticError: if the compiler cannot be run, times out,
                exits with an error, or reports errors
        """
        source = Path(source_path)
        output = source.with_suffix(OSO_SUFFIX)
        include_paths = self.resolve_include_paths(extra_include_paths)
        command = self.build_command(source, output, include_paths)

        logger.debug(f"Compiling {source.name}: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as err:
            raise CompilerDiagnosticError(
                f"OSL compiler timed out after {self.timeout}s",
                node_name=node_name,
                source_path=str(source),
                error_log=_output_lines(err.stdout) + _output_lines(err.stderr),
            ) from err
        except OSError as err:
            raise CompilerDiagnosticError(
                f"Failed to run OSL compiler {self.executable}: {err}",
                node_name=node_name,
                source_path=str(source),
            ) from err

        log = _output_lines(result.stdout) + _output_lines(result.stderr)
        errors = [line for line in log if _ERROR_LINE.search(line)]

        if result.returncode != 0 or errors:
            raise CompilerDiagnosticError(
                f"OSL compilation error (exit code {result.returncode})",
                node_name=node_name,
                source_path=str(source),
                error_log=log,
            )

        for line in log:
            logger.warning(f"{source.name}: {line}")

        return output
