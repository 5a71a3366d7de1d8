"""Exception hierarchy shared by the badge modules."""


class BadgeAppError(Exception):
    """Base class for all errors raised by eventbadges."""


class SchemaError(BadgeAppError):
    """A field schema edit was rejected."""

    def __init__(self, message: str, field_name: str = ""):
        super().__init__(message)
        self.field_name = field_name


class DuplicateFieldName(SchemaError):
    pass


class InvalidFieldOptionsUsage(SchemaError):
    pass


class InvalidFieldName(SchemaError):
    pass


class InvalidFieldType(SchemaError):
    pass


class InvalidBadgeRequest(BadgeAppError):
    """Badge request is missing its id, name or barcode."""


class InvalidLayout(BadgeAppError, ValueError):
    """A layout document has missing keys or values of the wrong type."""


class BadgeAlreadyExists(BadgeAppError):
    """The record already carries a badge id."""


class BarcodeEncodingError(BadgeAppError):
    """The code cannot be expressed in the barcode symbology."""


class PersistenceError(BadgeAppError):
    """Reading from or writing to a store failed."""


class RecordNotFound(PersistenceError):
    pass
