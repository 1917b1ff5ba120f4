"""Tag classification.

A ``Classifier`` interprets a ``ClassificationRules`` table: which tags are
targets, which are kept only for structure, how a tag maps to a type label and
which description and search tags it receives. Rule tables are plain data, so a
table for another schema can be swapped in without touching the tree assembler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from xml_stream_indexer.shared.config import ClassifierConfig

DEFAULT_TYPE = "ELEMENT"
UNKNOWN_TYPE = "UNKNOWN"


class MatchScope(Enum):
    """Where a tag rule looks for its keyword."""

    TAG = "tag"
    ATTRIBUTE_KEY = "attribute_key"
    ATTRIBUTE_VALUE = "attribute_value"
    ANY = "any"


@dataclass(frozen=True)
class TagRule:
    """Substring rule that contributes search tags and optionally a description.

    Matching is case-insensitive. With ``value_as_tag`` the lower-cased value of
    every attribute whose key matches becomes a tag.
    """

    keyword: str
    tags: Tuple[str, ...] = ()
    description: Optional[str] = None
    scope: MatchScope = MatchScope.TAG
    exact: bool = False
    value_as_tag: bool = False

    def _hit(self, candidate: str) -> bool:
        candidate = candidate.lower()
        keyword = self.keyword.lower()
        return candidate == keyword if self.exact else keyword in candidate

    def apply(self, tag_name: str, attributes: Mapping[str, str]) -> Optional[List[str]]:
        """Return the tags this rule contributes, or ``None`` if it does not match."""
        if self.value_as_tag:
            values = [
                value.lower() for key, value in attributes.items()
                if self._hit(key) and value
            ]
            return values or None

        matched = False
        if self.scope in (MatchScope.TAG, MatchScope.ANY):
            matched = self._hit(tag_name)
        if not matched and self.scope in (MatchScope.ATTRIBUTE_KEY, MatchScope.ANY):
            matched = any(self._hit(key) for key in attributes)
        if not matched and self.scope in (MatchScope.ATTRIBUTE_VALUE, MatchScope.ANY):
            matched = any(self._hit(value) for value in attributes.values())
        return list(self.tags) if matched else None


@dataclass(frozen=True)
class ClassificationRules:
    """Ordered rule table interpreted by ``Classifier``.

    ``target_tags``/``structural_tags`` set to ``None`` mean "every tag that does
    not start with one of the excluded prefixes".
    """

    name: str
    target_tags: Optional[FrozenSet[str]] = None
    target_excluded_prefixes: Tuple[str, ...] = ()
    structural_tags: Optional[FrozenSet[str]] = None
    structural_excluded_prefixes: Tuple[str, ...] = ()
    type_prefixes: Tuple[Tuple[str, str], ...] = ()
    type_table: Mapping[str, str] = field(default_factory=dict)
    default_type: str = DEFAULT_TYPE
    descriptions: Mapping[str, str] = field(default_factory=dict)
    description_template: str = "{tag} element"
    tag_rules: Tuple[TagRule, ...] = ()

    @classmethod
    def generic(cls) -> "ClassificationRules":
        """Rules for arbitrary markup: nearly every element tag is a target."""
        return cls(
            name="generic",
            target_excluded_prefixes=("?xml", "!--", "![CDATA[", "!DOCTYPE"),
            structural_excluded_prefixes=("#text", "!--", "![CDATA[", "?"),
            type_prefixes=(
                ("?", "PROCESSING_INSTRUCTION"),
                ("!--", "COMMENT"),
                ("![CDATA[", "CDATA"),
                ("!DOCTYPE", "DOCTYPE"),
            ),
            default_type=DEFAULT_TYPE,
            tag_rules=_GENERIC_TAG_RULES,
        )

    @classmethod
    def arxml(cls) -> "ClassificationRules":
        """Rules for AUTOSAR XML documents."""
        return cls(
            name="arxml",
            target_tags=_ARXML_TARGETS,
            structural_tags=_ARXML_STRUCTURAL,
            type_table={tag: tag for tag in _ARXML_TYPES},
            default_type=UNKNOWN_TYPE,
            descriptions=_ARXML_DESCRIPTIONS,
            description_template="AUTOSAR {tag} element",
            tag_rules=_ARXML_TAG_RULES,
        )

    @classmethod
    def for_preset(cls, preset: str) -> "ClassificationRules":
        """Look up a rule table by preset name."""
        presets = {"generic": cls.generic, "arxml": cls.arxml}
        if preset not in presets:
            raise ValueError(f"Unknown classification preset: {preset}")
        return presets[preset]()


@dataclass
class Classification:
    """Outcome of classifying one tag."""

    is_target: bool
    is_structural: bool
    type: str
    description: str
    tags: List[str] = field(default_factory=list)

    @property
    def retained(self) -> bool:
        """Whether the element is kept in the retained list."""
        return self.is_target or self.is_structural


class Classifier:
    """Interpreter over a ``ClassificationRules`` table."""

    def __init__(self, rules: Optional[ClassificationRules] = None) -> None:
        self.rules = rules or ClassificationRules.generic()

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> "Classifier":
        return cls(ClassificationRules.for_preset(config.preset))

    def is_target(self, tag_name: str) -> bool:
        return self._member(tag_name, self.rules.target_tags,
                            self.rules.target_excluded_prefixes)

    def is_structural(self, tag_name: str) -> bool:
        return self._member(tag_name, self.rules.structural_tags,
                            self.rules.structural_excluded_prefixes)

    def element_type(self, tag_name: str) -> str:
        for prefix, label in self.rules.type_prefixes:
            if tag_name.startswith(prefix):
                return label
        return self.rules.type_table.get(tag_name, self.rules.default_type)

    def classify(
        self,
        tag_name: str,
        attributes: Optional[Mapping[str, str]] = None
    ) -> Classification:
        """Classify a tag and derive its description and search tags."""
        attributes = attributes or {}
        tags: List[str] = []
        description = self.rules.descriptions.get(tag_name)

        for rule in self.rules.tag_rules:
            contributed = rule.apply(tag_name, attributes)
            if contributed is None:
                continue
            if description is None and rule.description:
                description = rule.description
            for tag in contributed:
                if tag not in tags:
                    tags.append(tag)

        if description is None:
            description = self.rules.description_template.format(tag=tag_name)

        return Classification(
            is_target=self.is_target(tag_name),
            is_structural=self.is_structural(tag_name),
            type=self.element_type(tag_name),
            description=description,
            tags=tags,
        )

    @staticmethod
    def _member(
        tag_name: str,
        allowed: Optional[FrozenSet[str]],
        excluded_prefixes: Tuple[str, ...]
    ) -> bool:
        if allowed is not None:
            return tag_name in allowed
        return not tag_name.startswith(excluded_prefixes)


def classify(
    tag_name: str,
    attributes: Optional[Mapping[str, str]] = None,
    rules: Optional[ClassificationRules] = None
) -> Classification:
    """Classify a tag with the given rules (generic rules by default)."""
    return Classifier(rules).classify(tag_name, attributes)


_GENERIC_TAG_RULES: Tuple[TagRule, ...] = (
    TagRule("config", ("config",), "Configuration element", MatchScope.ANY),
    TagRule("data", ("data",), "Data element", MatchScope.ANY),
    TagRule("list", ("list",), "List container", MatchScope.ANY),
    TagRule("uuid", ("uuid",), None, MatchScope.ATTRIBUTE_KEY),
    TagRule("id", ("id",), "Identifier element", MatchScope.ANY),
    TagRule("boolean", ("boolean",), "Boolean value", MatchScope.ANY),
    TagRule("bool", ("boolean",), "Boolean value", MatchScope.ATTRIBUTE_VALUE),
    TagRule("numeric", ("numeric",), "Numeric value", MatchScope.ANY),
    TagRule("integer", ("numeric",), "Numeric value", MatchScope.ANY),
    TagRule("float", ("numeric",), "Numeric value", MatchScope.ANY),
    TagRule("dest", ("reference",), None, MatchScope.ATTRIBUTE_KEY),
    TagRule("ref", ("reference",), "Reference to another element", MatchScope.TAG),
    TagRule("port", ("port",), "Port element", MatchScope.ANY),
    TagRule("interface", ("interface",), "Interface element", MatchScope.ANY),
    TagRule("component", ("component",), "Component element", MatchScope.ANY),
    TagRule("package", ("package",), "Package container", MatchScope.ANY),
)

_ARXML_TAG_RULES: Tuple[TagRule, ...] = (
    TagRule("SOMEIP", ("someip", "service", "communication")),
    TagRule("INTERFACE", ("interface",)),
    TagRule("COMPONENT", ("component", "software")),
    TagRule("DATA-TYPE", ("datatype",)),
    TagRule("PORT", ("port", "connection")),
    TagRule("DEPLOYMENT", ("deployment", "configuration")),
    TagRule("AR-PACKAGE", ("package", "container"), exact=True),
    TagRule("type", scope=MatchScope.ATTRIBUTE_KEY, value_as_tag=True),
    TagRule("someip", ("someip",), scope=MatchScope.ATTRIBUTE_VALUE),
)

_ARXML_TARGETS: FrozenSet[str] = frozenset((
    "AR-PACKAGE",
    "APPLICATION-SW-COMPONENT-TYPE",
    "SERVICE-SW-COMPONENT-TYPE",
    "COMPOSITION-SW-COMPONENT-TYPE",
    "SWC-INTERNAL-BEHAVIOR",
    "SWC-IMPLEMENTATION",
    "SENDER-RECEIVER-INTERFACE",
    "CLIENT-SERVER-INTERFACE",
    "IMPLEMENTATION-DATA-TYPE",
    "APPLICATION-PRIMITIVE-DATA-TYPE",
    "VARIABLE-DATA-PROTOTYPE",
    "OPERATION-PROTOTYPE",
    "RUNNABLE-ENTITY",
    "TIMING-EVENT",
    "OPERATION-INVOKED-EVENT",
    "DATA-TYPE-MAPPING-SET",
    "COMPU-METHOD",
    "P-PORT-PROTOTYPE",
    "R-PORT-PROTOTYPE",
    "SYSTEM",
    "ROOT-SW-COMPOSITION-PROTOTYPE",
    "SW-COMPONENT-PROTOTYPE",
    "ASSEMBLY-SW-CONNECTOR",
    "DELEGATION-SW-CONNECTOR",
    "SYSTEM-MAPPING",
    "SWC-TO-IMPL-MAPPING",
    "I-SIGNAL",
    "I-SIGNAL-I-PDU",
    "SYSTEM-SIGNAL",
))

_ARXML_STRUCTURAL: FrozenSet[str] = frozenset((
    "AUTOSAR",
    "AR-PACKAGES",
    "ELEMENTS",
    "INTERFACES",
    "SERVICE-INTERFACES",
    "DATA-TYPES",
    "COMPONENTS",
    "SW-COMPONENT-PROTOTYPES",
    "COMPOSITIONS",
    "SERVICE-INTERFACE",
    "SOMEIP-SERVICE-INTERFACE",
    "SOMEIP-METHOD-DEPLOYMENTS",
    "SOMEIP-EVENT-DEPLOYMENTS",
    "SOMEIP-FIELD-DEPLOYMENTS",
    "SOMEIP-EVENT-GROUP-DEPLOYMENTS",
))

_ARXML_TYPES: Tuple[str, ...] = (
    "AR-PACKAGE",
    "SW-COMPONENT-TYPE",
    "APPLICATION-SW-COMPONENT-TYPE",
    "COMPLEX-DEVICE-DRIVER-SW-COMPONENT-TYPE",
    "ECU-ABSTRACTION-SW-COMPONENT-TYPE",
    "SERVICE-SW-COMPONENT-TYPE",
    "SENSOR-ACTUATOR-SW-COMPONENT-TYPE",
    "COMPOSITION-SW-COMPONENT-TYPE",
    "SENDER-RECEIVER-INTERFACE",
    "CLIENT-SERVER-INTERFACE",
    "MODE-SWITCH-INTERFACE",
    "NV-DATA-INTERFACE",
    "PARAMETER-INTERFACE",
    "TRIGGER-INTERFACE",
    "IMPLEMENTATION-DATA-TYPE",
    "APPLICATION-PRIMITIVE-DATA-TYPE",
    "APPLICATION-ARRAY-DATA-TYPE",
    "APPLICATION-RECORD-DATA-TYPE",
    "PRIMITIVE-DATA-TYPE",
    "ARRAY-DATA-TYPE",
    "RECORD-DATA-TYPE",
    "POINTER-DATA-TYPE",
    "FUNCTION-POINTER-DATA-TYPE",
    "CONSTANT-SPECIFICATION",
    "VARIABLE-DATA-PROTOTYPE",
    "OPERATION-PROTOTYPE",
    "ARGUMENT-DATA-PROTOTYPE",
    "FIELD-PROTOTYPE",
    "MODE-DECLARATION-GROUP",
    "MODE-DECLARATION",
    "TRIGGER-PROTOTYPE",
    "SWC-INTERNAL-BEHAVIOR",
    "SWC-IMPLEMENTATION",
    "BSW-MODULE-DESCRIPTION",
    "BSW-MODULE-ENTRY",
    "CAN-CLUSTER",
    "ETHERNET-CLUSTER",
    "FLEXRAY-CLUSTER",
    "LIN-CLUSTER",
    "TTCAN-CLUSTER",
    "NETWORK-ENDPOINT",
    "APPLICATION-ENDPOINT",
    "PROVIDED-SERVICE-INSTANCE",
    "REQUIRED-SERVICE-INSTANCE",
    "EVENT-GROUP",
    "SOMEIP-SERVICE-INTERFACE-DEPLOYMENT",
    "SOMEIP-METHOD-DEPLOYMENT",
    "SOMEIP-EVENT-DEPLOYMENT",
    "SOMEIP-FIELD-DEPLOYMENT",
    "SOMEIP-EVENT-GROUP-DEPLOYMENT",
    "SYSTEM",
    "ROOT-SW-COMPOSITION-PROTOTYPE",
    "SW-COMPOSITION-PROTOTYPE",
    "COMPONENT-PROTOTYPE",
    "CONNECTOR-PROTOTYPE",
    "ASSEMBLY-SW-CONNECTOR",
    "DELEGATION-SW-CONNECTOR",
    "PASS-THROUGH-SW-CONNECTOR",
)

_ARXML_DESCRIPTIONS: Dict[str, str] = {
    "AR-PACKAGE": "AUTOSAR Package containing other elements",
    "APPLICATION-SW-COMPONENT-TYPE": "Application Software Component",
    "SERVICE-SW-COMPONENT-TYPE": "Service Software Component",
    "COMPOSITION-SW-COMPONENT-TYPE": "Composition Software Component",
    "SENDER-RECEIVER-INTERFACE": "Sender-Receiver Interface for data exchange",
    "CLIENT-SERVER-INTERFACE": "Client-Server Interface for service calls",
    "SOMEIP-SERVICE-INTERFACE": "SOME/IP Service Interface",
    "SOMEIP-METHOD-DEPLOYMENT": "SOME/IP Method Deployment Configuration",
    "SOMEIP-EVENT-DEPLOYMENT": "SOME/IP Event Deployment Configuration",
    "SOMEIP-FIELD-DEPLOYMENT": "SOME/IP Field Deployment Configuration",
    "IMPLEMENTATION-DATA-TYPE": "Implementation Data Type Definition",
    "APPLICATION-PRIMITIVE-DATA-TYPE": "Application Primitive Data Type",
    "SYSTEM": "System Configuration",
    "P-PORT-PROTOTYPE": "Provided Port Prototype",
    "R-PORT-PROTOTYPE": "Required Port Prototype",
}
