"""Tests for loading MaterialX library documents."""

import textwrap

import pytest

from gen_osl_nodes.document.loader import (
    find_library_files,
    library_folders,
    load_document,
    load_libraries,
)
from gen_osl_nodes.document.registry import NodeDefinitionRegistry
from gen_osl_nodes.document.search_path import FileSearchPath
from gen_osl_nodes.errors import DocumentError

from conftest import write_library_tree


def write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


class TestLibraryFolders:

    def test_all_libraries_by_default(self):
        assert library_folders([]) == ["libraries"]
        assert library_folders(["", " "]) == ["libraries"]

    def test_subset_includes_targets_first(self):
        assert library_folders(["stdlib", "pbrlib"]) == [
            "libraries/targets", "libraries/stdlib", "libraries/pbrlib"]


class TestLoadLibraries:

    def test_load_everything(self, library_root):
        registry = load_libraries(library_folders(), FileSearchPath([library_root]))

        # Sorted file order: pbrlib, stdlib/genosl, stdlib, targets
        assert [nd.name for nd in registry.get_nodedefs()] == [
            "ND_surface_unlit", "ND_add_float", "ND_multiply_float",
            "ND_image_color3", "ND_double_float",
        ]
        assert [t.name for t in registry.get_targetdefs()] == ["genosl", "genoslnetwork"]

    def test_load_subset(self, library_root):
        registry = load_libraries(library_folders(["stdlib"]), FileSearchPath([library_root]))
        assert registry.get_nodedef("ND_surface_unlit") is None
        assert registry.get_nodedef("ND_add_float") is not None
        assert registry.target_chain("genoslnetwork") == ["genoslnetwork", "genosl"]

    def test_implementations_and_files(self, library_root):
        registry = load_libraries(library_folders(), FileSearchPath([library_root]))

        impl = registry.resolve("ND_surface_unlit", "genosl")
        assert impl.function == "mx_surface_unlit"
        path = registry.resolve_file(impl)
        assert path == library_root / "libraries" / "pbrlib" / "genosl" / "mx_surface_unlit.osl"

        impl = registry.resolve("ND_add_float", "genoslnetwork")
        assert registry.resolve_file(impl).exists()

        assert registry.get_implementation("ND_image_color3", "genosl") is None

    def test_node_graph_is_parsed(self, library_root):
        registry = load_libraries(library_folders(), FileSearchPath([library_root]))
        graph = registry.get_node_graph("ND_double_float")
        assert [n.name for n in graph.nodes] == ["offset", "scale"]
        offset = graph.nodes[0]
        assert offset.category == "add"
        assert offset.get_input("in1").nodename == "scale"
        assert graph.nodes[1].get_input("in1").interfacename == "in"
        assert graph.outputs[0].nodename == "offset"

    def test_same_libraries_under_two_roots(self, tmp_path):
        first = write_library_tree(tmp_path / "first")
        second = write_library_tree(tmp_path / "second")
        registry = load_libraries(library_folders(), FileSearchPath([first, second]))

        assert len(registry) == 5
        impl = registry.resolve("ND_surface_unlit", "genosl")
        assert impl.source_dir == first / "libraries" / "pbrlib"
        assert registry.get_nodedef("ND_add_float").source.startswith(str(first))

    def test_missing_folder_is_not_an_error(self, tmp_path):
        registry = load_libraries(["libraries/nothing"], FileSearchPath([tmp_path]))
        assert len(registry) == 0

    def test_populates_given_registry(self, library_root):
        registry = NodeDefinitionRegistry()
        result = load_libraries(["libraries/targets"], FileSearchPath([library_root]), registry)
        assert result is registry
        assert len(registry.get_targetdefs()) == 2


class TestLoadDocument:

    def test_xinclude_is_followed_once(self, tmp_path):
        write(tmp_path / "shared" / "defs.mtlx", """\
            <?xml version="1.0"?>
            <materialx version="1.38">
              <nodedef name="ND_shared" node="shared" type="float" />
            </materialx>
            """)
        main = write(tmp_path / "lib" / "main.mtlx", """\
            <?xml version="1.0"?>
            <materialx version="1.38" xmlns:xi="http://www.w3.org/2001/XInclude">
              <xi:include href="../shared/defs.mtlx" />
              <xi:include href="../shared/defs.mtlx" />
            </materialx>
            """)
        registry = load_document(main, NodeDefinitionRegistry())
        nodedef = registry.get_nodedef("ND_shared")
        assert nodedef.type == "float"
        assert nodedef.outputs[0].name == "out"

    def test_nodegraph_without_nodedef_is_ignored(self, tmp_path):
        doc = write(tmp_path / "graph.mtlx", """\
            <?xml version="1.0"?>
            <materialx version="1.38">
              <nodegraph name="NG_free">
                <constant name="c" type="float" />
              </nodegraph>
            </materialx>
            """)
        registry = load_document(doc, NodeDefinitionRegistry())
        assert registry.get_node_graph("NG_free") is None

    def test_malformed_xml_raises(self, tmp_path):
        doc = write(tmp_path / "bad.mtlx", "<materialx><nodedef></materialx>")
        with pytest.raises(DocumentError) as excinfo:
            load_document(doc, NodeDefinitionRegistry())
        assert excinfo.value.source == str(doc)

    def test_wrong_root_raises(self, tmp_path):
        doc = write(tmp_path / "other.mtlx", "<document />")
        with pytest.raises(DocumentError, match="Not a MaterialX document"):
            load_document(doc, NodeDefinitionRegistry())

    def test_missing_attribute_raises(self, tmp_path):
        doc = write(tmp_path / "noname.mtlx", """\
            <materialx>
              <nodedef node="add" />
            </materialx>
            """)
        with pytest.raises(DocumentError, match="'name'"):
            load_document(doc, NodeDefinitionRegistry())

    def test_duplicate_nodedef_across_documents_keeps_first(self, tmp_path):
        text = """\
            <materialx>
              <nodedef name="ND_dup" node="{node}" type="float" />
            </materialx>
            """
        registry = NodeDefinitionRegistry()
        first = write(tmp_path / "a.mtlx", text.format(node="first"))
        load_document(first, registry)
        load_document(write(tmp_path / "b.mtlx", text.format(node="second")), registry)
        nodedef = registry.get_nodedef("ND_dup")
        assert nodedef.node == "first"
        assert nodedef.source == str(first)


def test_find_library_files_sorted(tmp_path):
    for rel in ("b/z.mtlx", "a.mtlx", "b/a.mtlx", "notes.txt"):
        write(tmp_path / rel, "<materialx />")
    files = find_library_files(tmp_path)
    assert [p.relative_to(tmp_path).as_posix() for p in files] == ["a.mtlx", "b/a.mtlx", "b/z.mtlx"]
