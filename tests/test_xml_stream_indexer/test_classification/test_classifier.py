"""Tests for rule-table tag classification."""

import pytest

from xml_stream_indexer.classification import (
    DEFAULT_TYPE,
    UNKNOWN_TYPE,
    ClassificationRules,
    Classifier,
    MatchScope,
    TagRule,
    classify,
)
from xml_stream_indexer.shared import ClassifierConfig


class TestTagRule:
    """Test single substring rules."""

    def test_tag_scope_is_case_insensitive(self):
        """Test matching against the tag name."""
        rule = TagRule("port", ("port",))
        assert rule.apply("R-PORT-PROTOTYPE", {}) == ["port"]
        assert rule.apply("INTERFACE", {}) is None

    def test_exact_match(self):
        """Test rules that require the whole tag to match."""
        rule = TagRule("AR-PACKAGE", ("package",), exact=True)
        assert rule.apply("AR-PACKAGE", {}) == ["package"]
        assert rule.apply("AR-PACKAGES", {}) is None

    def test_attribute_scopes(self):
        """Test matching attribute keys and values."""
        key_rule = TagRule("uuid", ("uuid",), scope=MatchScope.ATTRIBUTE_KEY)
        value_rule = TagRule("someip", ("someip",), scope=MatchScope.ATTRIBUTE_VALUE)

        assert key_rule.apply("X", {"UUID": "1"}) == ["uuid"]
        assert key_rule.apply("UUID", {}) is None
        assert value_rule.apply("X", {"binding": "SOMEIP-1"}) == ["someip"]

    def test_value_as_tag(self):
        """Test rules that turn attribute values into tags."""
        rule = TagRule("type", scope=MatchScope.ATTRIBUTE_KEY, value_as_tag=True)
        assert rule.apply("X", {"T-TYPE": "Sensor", "other": "x"}) == ["sensor"]
        assert rule.apply("X", {"T-TYPE": ""}) is None


class TestGenericRules:
    """Test the generic preset."""

    def test_every_tag_is_a_target(self):
        """Test that ordinary tags are targets and structural."""
        result = classify("vehicle")

        assert result.is_target
        assert result.is_structural
        assert result.retained
        assert result.type == DEFAULT_TYPE
        assert result.description == "vehicle element"

    def test_keyword_descriptions_and_tags(self):
        """Test description and tag derivation from keywords."""
        result = classify("configList", {"uuid": "42"})

        assert result.description == "Configuration element"
        assert result.tags == ["config", "list", "uuid", "id"]

    def test_reference_tags(self):
        """Test reference detection by tag name and DEST attribute."""
        by_tag = classify("target-ref")
        by_dest = classify("link", {"DEST": "PORT"})

        assert "reference" in by_tag.tags
        assert by_tag.description == "Reference to another element"
        assert "reference" in by_dest.tags

    def test_tags_are_not_duplicated(self):
        """Test that overlapping rules contribute a tag once."""
        result = classify("integer-float")
        assert result.tags.count("numeric") == 1

    def test_prefixed_special_types(self):
        """Test the type labels of special prefixes."""
        classifier = Classifier()
        assert classifier.element_type("?xml") == "PROCESSING_INSTRUCTION"
        assert classifier.element_type("!--") == "COMMENT"
        assert not classifier.is_target("?xml")


class TestArxmlRules:
    """Test the AUTOSAR preset."""

    @pytest.fixture
    def classifier(self):
        return Classifier(ClassificationRules.arxml())

    def test_targets_and_structural_tags(self, classifier):
        """Test target and structural membership."""
        assert classifier.is_target("AR-PACKAGE")
        assert classifier.is_target("R-PORT-PROTOTYPE")
        assert not classifier.is_target("ELEMENTS")
        assert classifier.is_structural("ELEMENTS")
        assert not classifier.classify("SHORT-NAME").retained

    def test_type_labels(self, classifier):
        """Test known and unknown type labels."""
        assert classifier.element_type("APPLICATION-SW-COMPONENT-TYPE") == (
            "APPLICATION-SW-COMPONENT-TYPE"
        )
        assert classifier.element_type("ELEMENTS") == UNKNOWN_TYPE

    def test_descriptions(self, classifier):
        """Test table and template descriptions."""
        assert classifier.classify("SYSTEM").description == "System Configuration"
        assert classifier.classify("I-SIGNAL").description == "AUTOSAR I-SIGNAL element"

    def test_search_tags(self, classifier):
        """Test tag rules of the AUTOSAR preset."""
        result = classifier.classify("SOMEIP-SERVICE-INTERFACE", {"T-TYPE": "Gateway"})
        assert result.tags == ["someip", "service", "communication", "interface", "gateway"]
        assert classifier.classify("AR-PACKAGE").tags == ["package", "container"]

    def test_from_config(self):
        """Test building a classifier from configuration."""
        classifier = Classifier.from_config(ClassifierConfig(preset="arxml"))
        assert classifier.rules.name == "arxml"

    def test_unknown_preset(self):
        """Test that unknown presets are rejected."""
        with pytest.raises(ValueError, match="Unknown classification preset"):
            ClassificationRules.for_preset("svg")


class TestCustomRules:
    """Test swapping in another rule table."""

    def test_custom_table(self):
        """Test a table that only keeps two tags."""
        rules = ClassificationRules(
            name="pumps",
            target_tags=frozenset({"PUMP"}),
            structural_tags=frozenset({"PLANT"}),
            type_table={"PUMP": "DEVICE"},
            default_type="OTHER",
            tag_rules=(TagRule("PUMP", ("hydraulic",)),),
        )
        classifier = Classifier(rules)

        assert classifier.classify("PUMP").type == "DEVICE"
        assert classifier.classify("PUMP").tags == ["hydraulic"]
        assert classifier.classify("PLANT").retained
        assert not classifier.classify("VALVE").retained
        assert classifier.classify("VALVE").type == "OTHER"
