from __future__ import annotations

from rhpam_broker.proc import ResourceAlreadyExistsError


class BrokerException(Exception):
    pass


class ConfigurationException(BrokerException):
    pass


class IntegrityException(BrokerException):
    pass


class NotFoundException(BrokerException):
    pass


class AsyncRequiredException(BrokerException):
    pass


class StepFailedException(BrokerException):
    """A pipeline step failed fatally; carries which resource and which instance."""

    def __init__(self, *, kind: str, name: str, instance_id: str, action: str, cause: Exception) -> None:
        self.kind = kind
        self.name = name
        self.instance_id = instance_id
        self.action = action
        self.cause = cause
        super().__init__(f"failed to {action} {kind} {name!r} for instance {instance_id}: {cause}")

    @property
    def conflict(self) -> bool:
        return isinstance(self.cause, ResourceAlreadyExistsError)
