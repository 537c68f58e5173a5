from __future__ import annotations

from enum import Enum

OPERATION_DEPLOY = "deploy"
OPERATION_REMOVE = "remove"

PHASE_COMPLETE = "complete"

DESCRIPTION_DEPLOYING = "rhpam is deploying"
DESCRIPTION_DEPLOYED = "rhpam deployed successfully"
DESCRIPTION_DELETING = "rhpam is deleting"
DESCRIPTION_DELETED = "rhpam has been deleted"


class OperationState(str, Enum):
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
