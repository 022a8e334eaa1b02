"""Generate and compile OSL shaders for every node definition of MaterialX libraries.

Usage:
    genoslnodes --outputPath build/oso --oslCompilerPath /usr/bin/oslc \\
        --oslIncludePath /usr/include/OSL --libraries stdlib,pbrlib --prefix mx
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__
from .codegen.osl_nodes import CodegenOptions, OslNodesShaderGenerator
from .document.loader import library_folders, load_libraries
from .document.search_path import FileSearchPath
from .driver import run_library_batch
from .errors import ConfigurationError, DocumentError
from .logger import LOG_FILE_NAME, setup_logger
from .runtime.oslc import DEFAULT_TIMEOUT, OslCompiler

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "genosl"
SEARCH_PATH_ENV_VAR = "MATERIALX_SEARCH_PATH"
OSL_INCLUDE_FOLDER = "libraries/stdlib/genosl/include"


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class BatchConfig:
    output_path: Path
    osl_compiler_path: Path
    osl_include_path: Path
    libraries: Tuple[str, ...]
    prefix: str
    search_path: Tuple[Path, ...]
    target: str = DEFAULT_TARGET
    timeout: Optional[float] = DEFAULT_TIMEOUT
    wrapper: bool = False
    verbose: bool = False


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genoslnodes",
        description=f"MaterialXGenOslNodes - LibsToOso version {__version__}",
        allow_abbrev=False,
        exit_on_error=False,
    )

    parser.add_argument("--outputPath", dest="output_path", metavar="DIRPATH", default=None,
                        help="Directory receiving the .osl/.oso files and the log (created if missing)")
    parser.add_argument("--oslCompilerPath", dest="osl_compiler_path", metavar="FILEPATH", default=None,
                        help="Path to the OSL compiler executable")
    parser.add_argument("--oslIncludePath", dest="osl_include_path", metavar="DIRPATH", default=None,
                        help="Directory holding the OSL standard includes")
    parser.add_argument("--libraries", dest="libraries", metavar="STRING", default="",
                        help="Comma separated library folders to load (default: all)")
    parser.add_argument("--prefix", dest="prefix", metavar="STRING", default="",
                        help="Prefix added to every generated shader name")

    parser.add_argument("--librarySearchPath", dest="library_search_path", metavar="DIRPATHS", default=None,
                        help=f"Roots holding the 'libraries' folder, separated by '{os.pathsep}' "
                             f"(default: ${SEARCH_PATH_ENV_VAR}, then the current directory)")
    parser.add_argument("--target", dest="target", metavar="STRING", default=DEFAULT_TARGET,
                        help="Implementation target to generate for")
    parser.add_argument("--timeout", dest="timeout", metavar="SECONDS", type=float, default=DEFAULT_TIMEOUT,
                        help="Per-file OSL compiler timeout, 0 to disable")
    parser.add_argument("--wrapper", dest="wrapper", action="store_true", default=False,
                        help="Append a setCi root shader to every unit (test harnesses)")
    parser.add_argument("--verbose", dest="verbose", action="store_true", default=False)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse the command line. Unrecognized tokens are reported and ignored.

    Raises:
        ConfigurationError: if an option is missing its value
    """
    parser = build_argument_parser()
    try:
        args, unknown = parser.parse_known_args(argv)
    except argparse.ArgumentError as err:
        raise ConfigurationError(str(err), option=err.argument_name) from err

    for token in unknown:
        print(f"Unrecognized command-line option: {token}")
        print("Launch with '--help' for a complete list of supported options.")

    return args


def validate_output_path(raw: Optional[str]) -> Path:
    if not raw:
        raise ConfigurationError("--outputPath is required: no path provided.", option="--outputPath")
    path = Path(raw)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise ConfigurationError(
            f"Failed to find and/or create the provided output path: {path} ({err})",
            option="--outputPath", path=str(path)) from err
    if not path.is_dir():
        raise ConfigurationError(f"Failed to find and/or create the provided output path: {path}",
                                 option="--outputPath", path=str(path))
    return path


def validate_compiler_path(raw: Optional[str]) -> Path:
    path = Path(raw) if raw else None
    if path is None or not path.exists():
        raise ConfigurationError(f"The provided path to the OSL compiler is not valid: {raw or ''}",
                                 option="--oslCompilerPath", path=raw)
    return path


def validate_include_path(raw: Optional[str]) -> Path:
    path = Path(raw) if raw else None
    if path is None or not path.is_dir():
        raise ConfigurationError(f"The provided path to the OSL includes is not valid: {raw or ''}",
                                 option="--oslIncludePath", path=raw)
    return path


def resolve_search_path(raw: Optional[str]) -> Tuple[Path, ...]:
    text = raw or os.environ.get(SEARCH_PATH_ENV_VAR, "")
    search_path = FileSearchPath.from_string(text) if text else FileSearchPath([Path.cwd()])
    return tuple(search_path)


def validate_config(args: argparse.Namespace) -> BatchConfig:
    output_path = validate_output_path(args.output_path)
    osl_compiler_path = validate_compiler_path(args.osl_compiler_path)
    osl_include_path = validate_include_path(args.osl_include_path)

    if args.timeout is not None and args.timeout < 0:
        raise ConfigurationError(f"--timeout must not be negative: {args.timeout}", option="--timeout")

    libraries = tuple(name.strip() for name in (args.libraries or "").split(",") if name.strip())

    return BatchConfig(
        output_path=output_path,
        osl_compiler_path=osl_compiler_path,
        osl_include_path=osl_include_path,
        libraries=libraries,
        prefix=args.prefix or "",
        search_path=resolve_search_path(args.library_search_path),
        target=args.target or DEFAULT_TARGET,
        timeout=args.timeout or None,
        wrapper=bool(args.wrapper),
        verbose=bool(args.verbose),
    )


def build_config(argv: Optional[List[str]] = None) -> BatchConfig:
    return validate_config(parse_args(argv))


def compiler_include_paths(config: BatchConfig, search_path: FileSearchPath) -> List[Path]:
    """The configured include path plus the library's own OSL includes, if present."""
    paths = [config.osl_include_path]
    library_includes = search_path.find(OSL_INCLUDE_FOLDER)
    if library_includes.is_dir() and library_includes not in paths:
        paths.append(library_includes)
    return paths


def run(config: BatchConfig) -> int:
    search_path = FileSearchPath(config.search_path)

    logger.info("MaterialXGenOslNodes - LibsToOso")
    logger.info(f"\toutputPath: {config.output_path}")
    logger.info(f"\toslCompilerPath: {config.osl_compiler_path}")
    logger.info(f"\toslIncludePath: {config.osl_include_path}")
    logger.info(f"\tlibraries: {','.join(config.libraries)}")
    logger.info(f"\tprefix: {config.prefix}")

    try:
        registry = load_libraries(library_folders(config.libraries), search_path)
    except DocumentError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    compiler = OslCompiler(config.osl_compiler_path,
                           include_paths=compiler_include_paths(config, search_path),
                           timeout=config.timeout)
    generator = OslNodesShaderGenerator(registry, CodegenOptions(target=config.target,
                                                                 wrapper=config.wrapper))

    report = run_library_batch(registry, generator, compiler, config.output_path,
                               prefix=config.prefix, target=config.target)

    if report.failed:
        print("Failed to codegen and compile all the OSL shaders associated to the provided "
              f"MaterialX libraries, see {config.output_path / LOG_FILE_NAME} for more details.",
              file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = build_config(argv)
    except ConfigurationError as err:
        print(f"Config error: {err}", file=sys.stderr)
        return 1

    setup_logger(logging.DEBUG if config.verbose else logging.INFO)
    return run(config)
