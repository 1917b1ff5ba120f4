"""Tests for the element model and the tree assembler."""

import pytest

from xml_stream_indexer.query import FilterType, TreeFilter, filter_elements
from xml_stream_indexer.shared import (
    ErrorType,
    IndexerConfig,
    ParseCancelledError,
    ParseOptions,
    WarningType,
)
from xml_stream_indexer.tree import (
    Element,
    ElementMetadata,
    NullSchemaValidator,
    ReferenceType,
    TreeAssembler,
)


def assemble(text, config=None, **option_values):
    option_values.setdefault("validate_schema", False)
    assembler = TreeAssembler(config, validator=NullSchemaValidator())
    return assembler.assemble(text, ParseOptions(**option_values))


def by_name(result):
    return {element.name: element for element in result.elements}


ARXML_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<AUTOSAR xmlns="http://autosar.org/schema/r4.0">
  <AR-PACKAGES>
    <SHORT-NAME>Powertrain</SHORT-NAME>
    <AR-PACKAGE>
      <ELEMENTS>
        <SHORT-NAME>EngineController</SHORT-NAME>
        <APPLICATION-SW-COMPONENT-TYPE UUID="c-1">
          <PORTS>
            <SHORT-NAME>SpeedIn</SHORT-NAME>
            <R-PORT-PROTOTYPE>
              <REQUIRED-INTERFACE-TREF DEST="SENDER-RECEIVER-INTERFACE">/Interfaces/Speed</REQUIRED-INTERFACE-TREF>
            </R-PORT-PROTOTYPE>
          </PORTS>
        </APPLICATION-SW-COMPONENT-TYPE>
      </ELEMENTS>
    </AR-PACKAGE>
  </AR-PACKAGES>
</AUTOSAR>
"""


class TestElement:
    """Test the element model."""

    def make(self, element_id, name="X"):
        return Element(
            id=element_id, name=name, type="ELEMENT", tag_name=name, path=name,
            metadata=ElementMetadata(line_number=1),
        )

    def test_add_child_links_by_id(self):
        """Test that children are owned and parents referenced by id."""
        parent, child = self.make("p"), self.make("c")
        parent.add_child(child)

        assert parent.children == [child]
        assert parent.has_children
        assert child.parent == "p"
        assert not child.has_children

    def test_validation(self):
        """Test that ids and tag names are required."""
        with pytest.raises(ValueError, match="Element id cannot be empty"):
            self.make("")
        with pytest.raises(ValueError, match="Line number must be >= 1"):
            ElementMetadata(line_number=0)

    def test_iter_descendants_in_document_order(self):
        """Test depth-first iteration."""
        root, a, b, c = (self.make(i, i) for i in ("r", "a", "b", "c"))
        root.add_child(a)
        a.add_child(b)
        root.add_child(c)

        assert [e.id for e in root.iter_descendants()] == ["a", "b", "c"]

    def test_to_dict(self):
        """Test nested and flat dictionary forms."""
        root, child = self.make("r", "Root"), self.make("c", "Child")
        root.add_child(child)

        nested = root.to_dict()
        flat = root.to_dict(include_children=False)

        assert nested["children"][0]["id"] == "c"
        assert flat["children"] == ["c"]
        assert nested["tagName"] == "Root"
        assert nested["metadata"]["lineNumber"] == 1
        assert "references" not in nested


class TestTreeAssembler:
    """Test tree assembly over scanned lines."""

    def test_parent_child_linking_on_one_line(self):
        """Test a nested document written on a single line."""
        result = assemble("<A><B/></A>")
        a, b = result.elements

        assert len(result.elements) == 2
        assert a.children == [b]
        assert b.parent == a.id
        assert a.has_children
        assert not b.has_children

    def test_parent_child_linking_across_lines(self):
        """Test the same document spread over lines."""
        result = assemble("<A>\n  <B/>\n</A>")
        a, b = result.elements

        assert a.children == [b]
        assert b.parent == a.id
        assert b.metadata.line_number == 2

    def test_prolog_on_the_same_line(self):
        """Test a single-line document that starts with an XML declaration."""
        result = assemble('<?xml version="1.0"?><A><B/></A>')
        a, b = result.elements

        assert a.children == [b]
        assert b.path == "A/B"

    def test_short_name_names_next_element(self):
        """Test that a short name becomes the name of the next element."""
        result = assemble("<ROOT>\n<SHORT-NAME>Engine</SHORT-NAME>\n<MODULE>\n</MODULE>\n</ROOT>")
        names = by_name(result)

        assert "Engine" in names
        assert names["Engine"].tag_name == "MODULE"
        assert "MODULE" not in names
        assert names["Engine"].path == "ROOT/MODULE"

    def test_short_name_consumed_once(self):
        """Test that a short name names exactly one element."""
        result = assemble("<SHORT-NAME>Pump</SHORT-NAME>\n<A/>\n<B/>")
        assert [e.name for e in result.elements] == ["Pump", "B"]

    def test_separator_in_short_name_keeps_path_shape(self):
        """Test that a name containing a slash stays a single path segment."""
        result = assemble("<SHORT-NAME>a/b</SHORT-NAME>\n<A>\n<B/>\n</A>")
        a, b = result.elements

        assert a.name == "a/b"
        assert b.path == "a_b/B"
        assert len(b.path.split("/")) == b.depth + 1
        assert assemble("<SHORT-NAME>a/b</SHORT-NAME>\n<A>\n<B/>\n</A>",
                        packages=["a/b"]).elements[-1].tag_name == "B"

    def test_unique_ids(self):
        """Test that ids are unique even for identical tags on one line."""
        result = assemble("<R>" + "<X/>" * 50 + "</R>")
        ids = [element.id for element in result.elements]

        assert len(ids) == 51
        assert len(set(ids)) == 51

    def test_path_shape(self):
        """Test that paths have one segment per level."""
        result = assemble("<A>\n<B>\n<C>\n<D/>\n</C>\n</B>\n</A>")

        for element in result.elements:
            assert len(element.path.split("/")) == element.depth + 1
        assert result.elements[0].path == "A"
        assert result.elements[-1].path == "A/B/C/D"

    def test_tree_consistency(self):
        """Test that every child points back at its parent."""
        result = assemble(ARXML_DOCUMENT, IndexerConfig.arxml())

        for element in result.elements:
            for child in element.children:
                assert child.parent == element.id

    def test_arxml_classification(self):
        """Test retention, types and namespaces with the AUTOSAR preset."""
        result = assemble(ARXML_DOCUMENT, IndexerConfig.arxml())
        tags = [element.tag_name for element in result.elements]

        assert tags == [
            "AUTOSAR", "AR-PACKAGES", "AR-PACKAGE", "ELEMENTS",
            "APPLICATION-SW-COMPONENT-TYPE", "R-PORT-PROTOTYPE",
        ]
        component = result.elements[4]
        assert component.type == "APPLICATION-SW-COMPONENT-TYPE"
        assert component.attributes == {"UUID": "c-1"}
        assert component.metadata.schema == "autosar"
        assert component.metadata.namespace == "autosar"
        assert component.name == "EngineController"
        assert result.elements[3].type == "UNKNOWN"

    def test_skipped_holder_keeps_parent_id(self):
        """Test that non-retained elements still take part in nesting."""
        result = assemble(ARXML_DOCUMENT, IndexerConfig.arxml())
        component, port = result.elements[4], result.elements[5]

        assert port.parent != component.id
        assert port not in component.children
        assert port.path.split("/")[-2] == "PORTS"
        assert port.name == "SpeedIn"

    def test_default_namespace_from_config(self):
        """Test the configured namespace for undeclared roots."""
        result = assemble("<AR-PACKAGE/>", IndexerConfig.arxml())
        assert result.elements[0].metadata.namespace == "autosar"

    def test_namespace_declarations_are_inherited_from_default(self):
        """Test that xmlns declarations leave every element in the default namespace."""
        document = ARXML_DOCUMENT.replace(
            '<AUTOSAR xmlns="http://autosar.org/schema/r4.0">',
            '<AUTOSAR xmlns="http://autosar.org/schema/r4.0" '
            'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">',
        )
        result = assemble(document, IndexerConfig.arxml())
        by_namespace = [TreeFilter(FilterType.NAMESPACE, "autosar")]

        assert len(result.elements) == 6
        assert filter_elements(result.elements, by_namespace) == result.elements

    def test_prefixed_tag_sets_namespace(self):
        """Test that a tag prefix names the namespace and children inherit it."""
        result = assemble('<ar:ROOT xmlns:ar="http://autosar.org">\n<CHILD/>\n</ar:ROOT>')
        assert [e.metadata.namespace for e in result.elements] == ["ar", "ar"]

    def test_references_are_extracted(self):
        """Test reference and definition descriptors."""
        result = assemble(
            "<ROOT>\n<SHORT-NAME>Link</SHORT-NAME>\n"
            '<PORT-REF DEST="P-PORT-PROTOTYPE">/Ports/Out</PORT-REF>\n</ROOT>'
        )
        link = by_name(result)["Link"]

        assert [ref.type for ref in link.references] == [
            ReferenceType.REFERENCE, ReferenceType.DEFINITION,
        ]
        assert link.references[0].target == "/Ports/Out"
        assert not link.references[0].resolved
        assert link.is_definition
        assert link.text == "/Ports/Out"

    def test_references_disabled(self):
        """Test that no descriptors are built when references are off."""
        result = assemble("<A-REF>/x</A-REF>", enable_references=False)
        assert result.elements[0].references is None

    def test_reference_without_target_is_reported(self):
        """Test the reference error for an empty target."""
        result = assemble("<ROOT>\n<TARGET-REF/>\n</ROOT>")

        assert len(result.errors) == 1
        assert result.errors[0].type == ErrorType.REFERENCE
        assert result.errors[0].line == 2

    def test_max_depth(self):
        """Test that elements below the depth limit are not retained."""
        result = assemble("<A>\n<B>\n<C/>\n</B>\n</A>", max_depth=1)
        names = [element.name for element in result.elements]

        assert names == ["A", "B"]
        assert not result.elements[1].has_children

    def test_max_elements(self):
        """Test that the element ceiling stops the parse with a warning."""
        text = "<R>\n" + "<X/>\n" * 20 + "</R>"
        result = assemble(text, max_elements=5)

        assert len(result.elements) == 5
        assert result.stopped_early
        assert [w.type for w in result.warnings] == [WarningType.PERFORMANCE]

    def test_memory_limit_stops_early(self):
        """Test the memory ceiling against a generous parse of the same input."""
        text = "<R>\n" + "<X/>\n" * 100 + "</R>"
        full = assemble(text)
        limited = assemble(text, memory_limit=10 * 1024)

        assert not full.warnings
        assert limited.stopped_early
        assert [w.type for w in limited.warnings] == [WarningType.MEMORY]
        assert limited.warnings[0].line is not None
        assert len(limited.elements) < len(full.elements)

    def test_element_type_filter(self):
        """Test the element type filter of the parse options."""
        config = IndexerConfig.arxml()
        result = assemble(ARXML_DOCUMENT, config, element_types=["AR-PACKAGE"])

        assert [e.type for e in result.elements] == ["AR-PACKAGE"]
        assert result.retained_before_filter == 6

    def test_package_filter(self):
        """Test the package filter of the parse options."""
        result = assemble("<A>\n<B>\n<C/>\n</B>\n<D/>\n</A>", packages=["B"])
        assert [e.name for e in result.elements] == ["B", "C"]

    def test_mismatched_closing_tag_is_ignored(self):
        """Test that a stray closing tag does not pop the stack."""
        result = assemble("<A>\n</Z>\n<B/>\n</A>")
        a, b = result.elements

        assert b.parent == a.id
        assert not result.warnings

    def test_schema_errors_are_recorded(self):
        """Test that validation problems become schema errors."""
        assembler = TreeAssembler()
        result = assembler.assemble("<A>\n<B>\n</A>", ParseOptions())

        assert result.errors
        assert all(error.type == ErrorType.SCHEMA for error in result.errors)
        assert len(result.elements) == 2

    def test_progress_reports(self):
        """Test progress reporting at each interval boundary."""
        config = IndexerConfig().override(scanner__progress_interval=2)
        reports = []
        assembler = TreeAssembler(config, validator=NullSchemaValidator())
        assembler.assemble("<R>\n<A/>\n<B/>\n<C/>\n</R>",
                           ParseOptions(validate_schema=False), reports.append)

        assert [r.progress for r in reports] == [40.0, 80.0]
        assert reports[-1].elements_processed == 3

    def test_cancellation(self):
        """Test that a cancel request stops assembly at the next boundary."""
        config = IndexerConfig().override(scanner__progress_interval=1)
        assembler = TreeAssembler(config, validator=NullSchemaValidator())

        with pytest.raises(ParseCancelledError):
            assembler.assemble("<R>\n<A/>\n</R>", ParseOptions(validate_schema=False),
                               should_cancel=lambda: True)

    def test_summary(self):
        """Test the assembly summary."""
        result = assemble("<A/>\n\n<B/>")
        summary = result.summary()

        assert summary["element_count"] == 2
        assert summary["total_lines"] == 3
        assert summary["stopped_early"] is False
