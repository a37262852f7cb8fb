"""All categories, levels, and kinds used across subsystem boundaries.

Enum values are the wire strings: descriptors, compatibility reports and
message payloads serialize these values verbatim.
"""

from enum import StrEnum


class NodeCategory(StrEnum):
    """Fixed category of a node type.

    Part of the node identity triple (type, version, category).
    """

    DATABASE = "database"
    TRANSFORMATION = "transformation"
    EXTERNAL_API = "external-api"
    NOTIFICATION = "notification"
    STORAGE = "storage"
    LOGIC = "logic"
    AI_ML = "ai-ml"


class CompatibilityLevel(StrEnum):
    """Confidence that a source node's output can feed a target node's input.

    Values:
        FULL: Output can be consumed as-is
        PARTIAL: Some fields line up, a transformation step is expected
        CONDITIONAL: Compatible only when the rule's conditions hold
        NONE: Incompatible (also the meaning of an undeclared pair)
    """

    FULL = "full"
    PARTIAL = "partial"
    CONDITIONAL = "conditional"
    NONE = "none"


class IssueSeverity(StrEnum):
    """Severity of a compatibility issue.

    Only ERROR flips a compatibility report to incompatible.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class PinType(StrEnum):
    """Semantic type tag of an input or output pin."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    DATE = "date"
    BINARY = "binary"
    ANY = "any"


class ConditionOperator(StrEnum):
    """Field-level comparison used by filter conditions and compatibility rules."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


class TransformationKind(StrEnum):
    """How the field mapper produces a target field."""

    RENAME = "rename"
    FUNCTION = "function"
    CONSTANT = "constant"


class MongoOperation(StrEnum):
    """Operations supported by the document-store node.

    Values keep the driver-agnostic camelCase names used on the wire.
    """

    FIND = "find"
    FIND_ONE = "findOne"
    INSERT_ONE = "insertOne"
    INSERT_MANY = "insertMany"
    UPDATE_ONE = "updateOne"
    UPDATE_MANY = "updateMany"
    DELETE_ONE = "deleteOne"
    DELETE_MANY = "deleteMany"
    AGGREGATE = "aggregate"


class TroubleshootingCategory(StrEnum):
    """Grouping for troubleshooting entries in node documentation."""

    CONNECTION = "connection"
    CONFIGURATION = "configuration"
    PERFORMANCE = "performance"
    VALIDATION = "validation"
    OTHER = "other"
