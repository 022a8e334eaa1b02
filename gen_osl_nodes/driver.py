"""
Library batch driver.

Generates and compiles one OSL shader group per node definition of a
registry. Each definition is handled in isolation: a failure is logged and
recorded, and the batch moves on to the next definition.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional

from .codegen.osl_nodes import OslNodesShaderGenerator
from .codegen.syntax import sanitize_name
from .document.registry import NodeDef, NodeDefinitionRegistry, strip_nodedef_prefix
from .errors import CodegenError, DocumentError, GraphError
from .ir.builder import GraphBuilder
from .logger import LOG_FILE_NAME, NodeLog
from .runtime.oslc import OSO_SUFFIX, OslCompiler

logger = logging.getLogger(__name__)

OSL_SUFFIX = ".osl"


def instance_name(nodedef_name: str, prefix: str = "") -> str:
    """
    Shader name for a definition: 'ND_' stripped, then '<prefix>_' prepended.
    The prefix is made a valid OSL identifier first.

    >>> instance_name("ND_mix", "lib")
    'lib_mix'
    >>> instance_name("ND_mix", "my-lib")
    'my_lib_mix'
    """
    name = strip_nodedef_prefix(nodedef_name)
    if prefix:
        name = f"{sanitize_name(prefix)}_{name}"
    return name


class NodeStatus(Enum):
    GENERATED = auto()
    SKIPPED = auto()
    FAILED = auto()


@dataclass
class NodeOutcome:
    nodedef: str
    name: str
    status: NodeStatus
    message: str = ""
    error_log: List[str] = field(default_factory=list)
    osl_path: Optional[Path] = None
    oso_path: Optional[Path] = None


@dataclass
class BatchReport:
    outcomes: List[NodeOutcome] = field(default_factory=list)

    def _with_status(self, status: NodeStatus) -> List[NodeOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def generated(self) -> List[NodeOutcome]:
        return self._with_status(NodeStatus.GENERATED)

    @property
    def skipped(self) -> List[NodeOutcome]:
        return self._with_status(NodeStatus.SKIPPED)

    @property
    def failures(self) -> List[NodeOutcome]:
        return self._with_status(NodeStatus.FAILED)

    @property
    def failed(self) -> bool:
        """True if any definition failed; skipped definitions never count."""
        return bool(self.failures)

    def summary(self) -> str:
        return (f"{len(self.generated)} generated, {len(self.skipped)} skipped, "
                f"{len(self.failures)} failed")


class LibraryCodegenDriver:
    """
    Runs generation and compilation for every definition of a registry.

    The registry is shared: each definition gets a transient node instance
    that is removed again before the next definition is processed, so the
    driver must not be used from several threads on the same registry.
    """

    def __init__(self, registry: NodeDefinitionRegistry, generator: OslNodesShaderGenerator,
                 compiler: OslCompiler, output_path: Path, prefix: str = "", target: str = None):
        self.registry = registry
        self.generator = generator
        self.compiler = compiler
        self.output_path = Path(output_path)
        self.prefix = prefix
        self.target = target or generator.options.target
        self.builder = GraphBuilder(registry)

    def run(self, log: NodeLog) -> BatchReport:
        report = BatchReport()
        nodedefs = self.registry.get_nodedefs()
        logger.info(f"Generating {len(nodedefs)} node definitions for target '{self.target}'")

        for nodedef in nodedefs:
            outcome = self.process(nodedef, log)
            report.outcomes.append(outcome)

        logger.info(f"Batch complete: {report.summary()}")
        return report

    def process(self, nodedef: NodeDef, log: NodeLog) -> NodeOutcome:
        """Generate and compile one definition. Never raises for node-level errors."""
        name = instance_name(nodedef.name, self.prefix)

        if self.registry.get_implementation(nodedef, self.target) is None:
            reason = f"no implementation for target '{self.target}', skipping"
            logger.debug(f"{name}: {reason}")
            log.skipped(name, reason)
            return NodeOutcome(nodedef.name, name, NodeStatus.SKIPPED, reason)

        osl_path = self.output_path / f"{name}{OSL_SUFFIX}"

        try:
            with self.registry.transient_instance(nodedef, name) as instance:
                graph = self.builder.build(instance, self.target)
                unit = self.generator.generate(graph, self.target)
                osl_path.write_text(unit.source_code, encoding='utf-8')
                oso_path = self.compiler.compile(osl_path, unit.include_paths, node_name=name)
        except CodegenError as err:
            return self._fail(nodedef, name, osl_path, log, str(err), err.error_log)
        except (GraphError, DocumentError, OSError) as err:
            return self._fail(nodedef, name, osl_path, log, str(err))

        logger.debug(f"Compiled {oso_path.name}")
        return NodeOutcome(nodedef.name, name, NodeStatus.GENERATED,
                           osl_path=osl_path, oso_path=oso_path)

    def _fail(self, nodedef: NodeDef, name: str, osl_path: Path, log: NodeLog,
              message: str, error_log: List[str] = ()) -> NodeOutcome:
        logger.error(f"Failed to codegen/compile {name}: {message}")
        log.failed(name, message, error_log)
        self._discard(osl_path)
        return NodeOutcome(nodedef.name, name, NodeStatus.FAILED, message, list(error_log))

    def _discard(self, osl_path: Path):
        """Remove artifacts left by a failed node."""
        for path in (osl_path, osl_path.with_suffix(OSO_SUFFIX)):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as err:
                logger.warning(f"Could not remove {path}: {err}")


def run_library_batch(registry: NodeDefinitionRegistry, generator: OslNodesShaderGenerator,
                      compiler: OslCompiler, output_path: Path, prefix: str = "",
                      target: str = None) -> BatchReport:
    """
    Run a whole batch with its log file.

    The log is opened once in output_path and closed on every exit path.
    """
    output_path = Path(output_path)
    driver = LibraryCodegenDriver(registry, generator, compiler, output_path, prefix, target)
    with NodeLog(output_path / LOG_FILE_NAME) as log:
        return driver.run(log)
