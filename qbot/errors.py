"""Operator-facing errors raised by the inspection workflow."""


class InspectionValidationError(ValueError):
    """Raised when the operator's input cannot be processed.

    The message is shown verbatim in the UI error banner.
    """
