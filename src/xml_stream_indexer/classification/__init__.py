"""Tag classification for xml-stream-indexer.

Key Components:
    Classifier: Interprets a rule table to label tags
    ClassificationRules: Rule tables, with generic and AUTOSAR XML presets
    Classification: Target/structural flags, type label, description and tags
"""

from .classifier import (
    DEFAULT_TYPE,
    UNKNOWN_TYPE,
    Classification,
    ClassificationRules,
    Classifier,
    MatchScope,
    TagRule,
    classify,
)

__all__ = [
    "DEFAULT_TYPE",
    "UNKNOWN_TYPE",
    "Classification",
    "ClassificationRules",
    "Classifier",
    "MatchScope",
    "TagRule",
    "classify",
]
