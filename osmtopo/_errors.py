"""Define custom errors and exceptions."""


class DanglingReferenceError(LookupError):
    """Exception for a way referencing a node absent from the node store."""


class ParseError(ValueError):
    """Exception for malformed XML or an unparseable numeric attribute."""


class StructuralInvariantError(ValueError):
    """Exception for mismatched tag keys/values or malformed relation members."""


class TopologyError(ValueError):
    """Exception for a multipolygon ring that cannot be closed."""


class ValidationError(ValueError):
    """Exception for failed entity store validation."""
