"""
Pytest configuration and shared fixtures for gen_osl_nodes tests.

This file provides:
1. Sample registries with implemented, unimplemented and graph-based nodedefs
2. An on-disk MaterialX library tree for loader and CLI tests
3. A patched subprocess.run standing in for the OSL compiler

Usage:
    pytest tests/ -v
"""

import logging
import subprocess
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest

from gen_osl_nodes.document.registry import (
    Implementation,
    InputBinding,
    NodeDef,
    NodeDefinitionRegistry,
    NodeGraphDef,
    NodeInstance,
    GraphOutput,
    PortDef,
    TargetDef,
)
from gen_osl_nodes.logger import LOGGER_NAME


# =============================================================================
# REGISTRY FIXTURES
# =============================================================================

def build_sample_registry() -> NodeDefinitionRegistry:
    """
    Registry used by most tests.

    Nodedefs, in order:
        ND_add_float        genosl implementation (mx_add.osl)
        ND_multiply_float   genosl implementation (mx_multiply.osl)
        ND_mix_color3       genosl implementation without function name
        ND_surface_unlit    genosl implementation, has excluded inputs
        ND_double_float     implemented by NG_double_float (offset <- scale)
    """
    registry = NodeDefinitionRegistry()
    registry.add_targetdef(TargetDef("genosl"))

    registry.add_nodedef(NodeDef(
        "ND_add_float", "add",
        inputs=[PortDef("in1", "float", "0.0"), PortDef("in2", "float", "0.0")],
        outputs=[PortDef("out", "float")],
    ))
    registry.add_implementation(Implementation(
        "IM_add_float_genosl", "ND_add_float", "genosl",
        file="mx_add.osl", function="mx_add_float"))

    registry.add_nodedef(NodeDef(
        "ND_multiply_float", "multiply",
        inputs=[PortDef("in1", "float", "0.0"), PortDef("in2", "float", "1.0")],
        outputs=[PortDef("out", "float")],
    ))
    registry.add_implementation(Implementation(
        "IM_multiply_float_genosl", "ND_multiply_float", "genosl",
        file="mx_multiply.osl", function="mx_multiply_float"))

    registry.add_nodedef(NodeDef(
        "ND_mix_color3", "mix",
        inputs=[
            PortDef("fg", "color3", "0.0, 0.0, 0.0"),
            PortDef("bg", "color3", "0.0, 0.0, 0.0"),
            PortDef("mix", "float", "0.0"),
        ],
        outputs=[PortDef("out", "color3")],
    ))
    registry.add_implementation(Implementation(
        "IM_mix_color3_genosl", "ND_mix_color3", "genosl", file="mx_mix.osl"))

    registry.add_nodedef(NodeDef(
        "ND_surface_unlit", "surface_unlit",
        inputs=[
            PortDef("emission", "float", "1.0"),
            PortDef("backsurfaceshader", "surfaceshader"),
            PortDef("displacementshader", "displacementshader"),
        ],
        outputs=[PortDef("out", "surfaceshader")],
    ))
    registry.add_implementation(Implementation(
        "IM_surface_unlit_genosl", "ND_surface_unlit", "genosl",
        file="mx_surface_unlit.osl", function="mx_surface_unlit"))

    registry.add_nodedef(NodeDef(
        "ND_double_float", "double",
        inputs=[PortDef("in", "float", "0.5")],
        outputs=[PortDef("out", "float")],
    ))
    registry.add_node_graph(NodeGraphDef(
        "NG_double_float", "ND_double_float",
        nodes=[
            # Listed before its upstream node on purpose
            NodeInstance("offset", "add", "float", inputs=[
                InputBinding("in1", "float", nodename="scale"),
                InputBinding("in2", "float", value="1.0"),
            ]),
            NodeInstance("scale", "multiply", "float", inputs=[
                InputBinding("in1", "float", interfacename="in"),
                InputBinding("in2", "float", value="2.0"),
            ]),
        ],
        outputs=[GraphOutput("out", "float", "offset")],
    ))
    return registry


@pytest.fixture(autouse=True)
def reset_console_logger():
    """Drop console handlers installed by setup_logger so they never outlive capture."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sample_registry():
    return build_sample_registry()


@pytest.fixture
def empty_registry():
    return NodeDefinitionRegistry()


# =============================================================================
# ON-DISK LIBRARY FIXTURES
# =============================================================================

TARGETS_MTLX = """\
<?xml version="1.0"?>
<materialx version="1.38">
  <targetdef name="genosl" />
  <targetdef name="genoslnetwork" inherit="genosl" />
</materialx>
"""

STDLIB_DEFS_MTLX = """\
<?xml version="1.0"?>
<materialx version="1.38">
  <nodedef name="ND_add_float" node="add" nodegroup="math">
    <input name="in1" type="float" value="0.0" />
    <input name="in2" type="float" value="0.0" />
    <output name="out" type="float" />
  </nodedef>
  <nodedef name="ND_multiply_float" node="multiply" nodegroup="math">
    <input name="in1" type="float" value="0.0" />
    <input name="in2" type="float" value="1.0" />
    <output name="out" type="float" />
  </nodedef>
  <nodedef name="ND_image_color3" node="image" nodegroup="texture2d">
    <input name="file" type="filename" value="" uniform="true" />
    <output name="out" type="color3" />
  </nodedef>
  <nodedef name="ND_double_float" node="double">
    <input name="in" type="float" value="0.5" />
    <output name="out" type="float" />
  </nodedef>
  <nodegraph name="NG_double_float" nodedef="ND_double_float">
    <add name="offset" type="float">
      <input name="in1" type="float" nodename="scale" />
      <input name="in2" type="float" value="1.0" />
    </add>
    <multiply name="scale" type="float">
      <input name="in1" type="float" interfacename="in" />
      <input name="in2" type="float" value="2.0" />
    </multiply>
    <output name="out" type="float" nodename="offset" />
  </nodegraph>
</materialx>
"""

STDLIB_GENOSL_IMPL_MTLX = """\
<?xml version="1.0"?>
<materialx version="1.38">
  <implementation name="IM_add_float_genosl" nodedef="ND_add_float" file="mx_add.osl" function="mx_add_float" target="genosl" />
  <implementation name="IM_multiply_float_genosl" nodedef="ND_multiply_float" file="mx_multiply.osl" function="mx_multiply_float" target="genosl" />
</materialx>
"""

PBRLIB_DEFS_MTLX = """\
<?xml version="1.0"?>
<materialx version="1.38">
  <nodedef name="ND_surface_unlit" node="surface_unlit" nodegroup="pbr">
    <input name="emission" type="float" value="1.0" />
    <output name="out" type="surfaceshader" />
  </nodedef>
  <implementation name="IM_surface_unlit_genosl" nodedef="ND_surface_unlit" file="genosl/mx_surface_unlit.osl" function="mx_surface_unlit" target="genosl" />
</materialx>
"""


def write_library_tree(root: Path) -> Path:
    """
    Writes a small MaterialX library tree below root and returns root.

    root/libraries/
        targets/targets.mtlx
        stdlib/stdlib_defs.mtlx
        stdlib/genosl/stdlib_genosl_impl.mtlx, mx_add.osl, mx_multiply.osl
        stdlib/genosl/include/mx_funcs.h
        pbrlib/pbrlib_defs.mtlx
        pbrlib/genosl/mx_surface_unlit.osl
    """
    libraries = root / "libraries"
    files = {
        "targets/targets.mtlx": TARGETS_MTLX,
        "stdlib/stdlib_defs.mtlx": STDLIB_DEFS_MTLX,
        "stdlib/genosl/stdlib_genosl_impl.mtlx": STDLIB_GENOSL_IMPL_MTLX,
        "stdlib/genosl/mx_add.osl": "shader mx_add_float() {}\n",
        "stdlib/genosl/mx_multiply.osl": "shader mx_multiply_float() {}\n",
        "stdlib/genosl/include/mx_funcs.h": "// includes\n",
        "pbrlib/pbrlib_defs.mtlx": PBRLIB_DEFS_MTLX,
        "pbrlib/genosl/mx_surface_unlit.osl": "shader mx_surface_unlit() {}\n",
    }
    for rel, content in files.items():
        path = libraries / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
    return root


@pytest.fixture
def library_root(tmp_path):
    return write_library_tree(tmp_path / "materialx")


@pytest.fixture
def osl_paths(tmp_path):
    """Existing compiler executable and include folder paths for CLI tests."""
    compiler = tmp_path / "bin" / "oslc"
    compiler.parent.mkdir(parents=True)
    compiler.write_text("#!/bin/sh\n", encoding="utf-8")
    include = tmp_path / "osl" / "include"
    include.mkdir(parents=True)
    return {"compiler": compiler, "include": include, "output": tmp_path / "out"}


# =============================================================================
# OSL COMPILER STAND-IN
# =============================================================================

def completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout, stderr)


@pytest.fixture
def fake_oslc():
    """
    Patches subprocess.run as seen by the compiler wrapper.

    The mock succeeds by default; tests set side_effect or return_value to
    simulate diagnostics.
    """
    with patch("gen_osl_nodes.runtime.oslc.subprocess.run") as run:
        run.side_effect = lambda args, **kwargs: completed(args)
        yield run
