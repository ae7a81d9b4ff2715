"""Domain errors raised by the calculation engine."""


class CalculationError(Exception):
    """Base error for calculation failures, carrying the offending field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class UnitMismatchError(CalculationError):
    """Raised when an ingredient unit cannot be converted to the stocking unit."""

    def __init__(self, field: str, unit: str, stocking_unit: str) -> None:
        super().__init__(
            field, f"cannot convert '{unit}' to stocking unit '{stocking_unit}'"
        )
        self.unit = unit
        self.stocking_unit = stocking_unit


class InvalidBatchSizeError(CalculationError):
    """Raised when a batch size is missing or not positive."""

    def __init__(self, batch_size: int | None, field: str = "batch_size") -> None:
        super().__init__(field, f"batch size must be positive, got {batch_size}")
        self.batch_size = batch_size


class InvalidDateRangeError(CalculationError):
    """Raised when a plan ends before it starts."""

    def __init__(self, start: object, end: object, field: str = "end_date") -> None:
        super().__init__(field, f"end date {end} is before start date {start}")
        self.start = start
        self.end = end


class MissingReferenceDataError(CalculationError):
    """Raised when a nutrient has no reference range; never fatal."""

    def __init__(self, nutrient: str) -> None:
        super().__init__(nutrient, "no reference range defined")
        self.nutrient = nutrient


class ConcurrentModificationError(CalculationError):
    """Raised when a record changed between read and write."""

    def __init__(
        self, field: str, entity_id: object, expected_version: int | None
    ) -> None:
        super().__init__(
            field,
            f"record {entity_id} changed since version {expected_version}",
        )
        self.entity_id = entity_id
        self.expected_version = expected_version


class MenuNotFoundError(CalculationError):
    """Raised when a menu is not visible to the tenant."""

    def __init__(self, menu_id: object) -> None:
        super().__init__("menu_id", f"menu not found: {menu_id}")
        self.menu_id = menu_id


class PlanNotFoundError(CalculationError):
    """Raised when a menu plan or assignment is not visible to the tenant."""

    def __init__(self, plan_id: object, field: str = "plan_id") -> None:
        super().__init__(field, f"not found: {plan_id}")
        self.plan_id = plan_id


class InvalidAssignmentError(CalculationError):
    """Raised when an assignment violates plan rules."""
