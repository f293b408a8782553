from .resource_store import ResourceStore
from .appointment_store import AppointmentStore
from .directory import UserDirectory
from .resource_gateway import LocalResourceGateway, HttpResourceGateway
from .events import CeleryEventPublisher
from .workflow_client import WorkflowEngineClient

__all__ = [
    "ResourceStore",
    "AppointmentStore",
    "UserDirectory",
    "LocalResourceGateway",
    "HttpResourceGateway",
    "CeleryEventPublisher",
    "WorkflowEngineClient",
]
