"""Error types raised by the meal planning core."""


class NutriPlanError(Exception):
    """Base class for NutriPlan errors."""


class InvalidRequestError(NutriPlanError):
    """Caller-supplied input failed validation."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class MalformedResponseError(NutriPlanError):
    """Provider output could not be parsed as JSON."""

    def __init__(self, message: str, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class SchemaValidationError(MalformedResponseError):
    """Provider output did not match the target schema, even after repair."""

    def __init__(
        self,
        schema_name: str,
        problems: list[str],
        expected: dict[str, object],
        actual: dict[str, object],
    ) -> None:
        summary = "; ".join(problems[:5]) or "shape mismatch"
        super().__init__(f"{schema_name} validation failed: {summary}")
        self.schema_name = schema_name
        self.problems = problems
        self.expected = expected
        self.actual = actual


class PersistenceError(NutriPlanError):
    """Reading or writing a stored meal plan failed."""
