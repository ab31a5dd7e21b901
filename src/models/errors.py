"""Exception types raised by the insights pipeline."""


class InsightsError(Exception):
    """Base class for pipeline errors."""


class InputValidationError(InsightsError):
    """The query is empty or too short to analyze."""


class ConversationNotFoundError(InsightsError):
    """The conversation does not exist or belongs to another user."""


class LiteratureRepositoryError(InsightsError):
    """The literature repository could not be searched or parsed."""


class GenerationError(InsightsError):
    """The text-generation provider returned no usable output."""


class PlanNotFoundError(InsightsError):
    """The plan does not exist or belongs to another user."""
