"""Domain and request-level errors."""


class ActionError(Exception):
    """An action could not be applied; no mutation occurred."""


class ActionValidationError(ActionError):
    """Action fields are invalid (e.g. a non-positive amount)."""


class ActionNotFoundError(ActionError):
    """The entity an action refers to does not exist."""


class FatalError(Exception):
    """Request cannot complete: context building or persistence failed."""
