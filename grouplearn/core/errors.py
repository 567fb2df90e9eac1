"""
Error taxonomy for lifecycle transitions.

The engine never raises these; it returns them inside a `Transition`. The
service layer raises them so that callers handle them like any other typed
service exception.
"""

from typing import Literal

ErrorKind = Literal[
    "validation_error",
    "forbidden",
    "invalid_transition",
    "not_a_member",
    "conflict",
    "terminal",
]


class TransitionError(Exception):
    kind: ErrorKind
    default_message: str = "The request could not be updated."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TransitionError):
    kind = "validation_error"
    default_message = "The submitted values are not valid."


class Forbidden(TransitionError):
    kind = "forbidden"
    default_message = "You are not allowed to do that on this request."


class InvalidTransition(TransitionError):
    kind = "invalid_transition"
    default_message = "That action is not available at this stage of the request."


class NotAMember(TransitionError):
    kind = "not_a_member"
    default_message = "You must be a member of the group to do that."


class Conflict(TransitionError):
    kind = "conflict"
    default_message = "The request was modified by someone else, please retry."


class Terminal(TransitionError):
    kind = "terminal"
    default_message = "This request is closed."


class RequestNotFound(Exception):
    pass
