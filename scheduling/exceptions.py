"""
Typed failures raised by the slot coordination layer.

Each error carries a stable code and an HTTP status hint so the HTTP layer
can map it without inspecting messages.
"""


class SchedulingError(Exception):
    """Base class for rejected scheduling operations."""

    code = "C001"
    status_code = 500
    default_message = "Scheduling operation failed"

    def __init__(self, message: str = "", code: str = ""):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.code}] {self.message}"


class InvalidInput(SchedulingError):
    code = "C002"
    status_code = 400
    default_message = "Invalid input value"


class NotFound(SchedulingError):
    code = "C003"
    status_code = 404
    default_message = "Requested resource was not found"

    @classmethod
    def server(cls) -> "NotFound":
        return cls("Server not found", code="S001")

    @classmethod
    def party(cls) -> "NotFound":
        return cls("Party not found", code="P001")

    @classmethod
    def game(cls) -> "NotFound":
        return cls("Game not found", code="G001")


class Forbidden(SchedulingError):
    code = "C005"
    status_code = 403
    default_message = "Access denied"

    @classmethod
    def not_member(cls) -> "Forbidden":
        return cls("Not a member of this server", code="S003")

    @classmethod
    def not_party_creator(cls) -> "Forbidden":
        return cls("Only the party creator can delete the party", code="P006")


class Conflict(SchedulingError):
    code = "C007"
    status_code = 409
    default_message = "Operation conflicts with current state"


class PartyFull(Conflict):
    code = "P003"
    default_message = "Party is full"
