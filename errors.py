from typing import List, Sequence


class FormatterError(Exception):
    """Base class for every error raised while formatting units."""


class ParseError(FormatterError):
    """The unit is not valid Go source."""

    def __init__(self, unit: str, line: int, column: int, message: str):
        super().__init__(f"{unit}:{line}:{column}: {message}")
        self.unit = unit
        self.line = line
        self.column = column
        self.message = message


class SerializationError(FormatterError):
    """A modified tree could not be rendered back to source."""

    def __init__(self, unit: str, message: str):
        super().__init__(f"{unit}: render: {message}")
        self.unit = unit


class FileAccessError(FormatterError):
    """Reading, writing or stating a unit failed."""

    def __init__(self, unit: str, operation: str, cause: OSError):
        super().__init__(f"{unit}: {operation}: {cause.strerror or cause}")
        self.unit = unit
        self.operation = operation
        self.cause = cause


class WalkError(FormatterError):
    """The directory walk failed; no further files are dispatched from it."""

    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"{path}: walk: {cause}")
        self.path = path
        self.cause = cause


class FormatCanceled(FormatterError):
    def __init__(self, message: str = "operation canceled"):
        super().__init__(message)


class BatchError(FormatterError):
    """Every error collected by a batch run, joined into one."""

    def __init__(self, errors: Sequence[FormatterError]):
        self.errors: List[FormatterError] = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))

    @property
    def canceled(self) -> bool:
        return any(isinstance(e, FormatCanceled) for e in self.errors)
