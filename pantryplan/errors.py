"""Domain errors surfaced to API callers.

Each carries the HTTP status the API layer answers with; input problems
(units, quantities, URLs, meal labels) never raise and are not listed here.
"""


class PantryPlanError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreUnavailableError(PantryPlanError):
    """The data store could not be read at request start."""
    status_code = 503


class NoRecipesAvailableError(PantryPlanError):
    status_code = 400


class AIUnavailableError(PantryPlanError):
    """LLM generation requested but no model is configured."""
    status_code = 503


class GenerationInterruptedError(PantryPlanError):
    """The LLM failed twice (truncated, empty or unparsable output)."""
    status_code = 502
