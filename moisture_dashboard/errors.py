class ConfigurationError(ValueError):
    def __init__(self, message: str, missing_fields: list[str] | None = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


class SheetFormatError(Exception):
    """Raised when a spreadsheet payload cannot be decoded into rows."""
