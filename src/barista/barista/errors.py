"""Exception hierarchy for the barista order agent.

Only AuthRejectedError and InvalidRequestError ever leave Orchestrator.run;
everything else is recovered inside the core and turned into a payload or a
tool result the model can read.
"""


class BaristaError(Exception):
    """Base class for all barista errors."""


class AuthRejectedError(BaristaError):
    """The caller has no verified user identity."""


class InvalidRequestError(BaristaError):
    """The request is missing a thread id or a query."""


class ModelInvocationError(BaristaError):
    """The chat model could not be reached or failed to answer."""


class ToolValidationError(BaristaError):
    """A proposed order does not fit the catalog.

    Carries every problem found so the model can fix them in one go.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("; ".join(problems))


class ParseFailure(BaristaError):
    """The model's final text does not hold a valid structured payload."""


class LoopBoundExceeded(BaristaError):
    """The agent kept requesting tools past the configured step limit."""
