"""Generation-time errors.

Everything raised here aborts a generation run: the condition is a static
property of the input document, so retrying cannot help.
"""


class GenerationError(Exception):
    """Base class for all generation failures."""


class DocumentError(GenerationError):
    """Raised when the input cannot be loaded as an OpenAPI 3.x document."""


class UnresolvedReferenceError(GenerationError):
    """Raised when a $ref points outside the document or at a missing target."""

    def __init__(self, ref: str, reason: str = "unresolved reference") -> None:
        super().__init__(f"{reason}: {ref}")
        self.ref = ref


class MissingOperationIdError(GenerationError):
    """Raised when an operation reaches the core without an operationId."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"operationId is missing for {method.upper()} {path}")
        self.method = method
        self.path = path


class EmittedCodeError(GenerationError):
    """Raised when generated source fails the syntax check."""

    def __init__(self, errors: dict[str, str]) -> None:
        details = "; ".join(f"{name}: {message}" for name, message in sorted(errors.items()))
        super().__init__(f"generated code is invalid ({details})")
        self.errors = errors
