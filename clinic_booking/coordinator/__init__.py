"""
Booking coordination and the composition root that wires the stores,
the resource gateway and the configured accept strategy together.
"""
import logging
from datetime import timedelta

from flask import current_app

from clinic_booking.services import (
    AppointmentStore,
    CeleryEventPublisher,
    HttpResourceGateway,
    LocalResourceGateway,
    ResourceStore,
    UserDirectory,
    WorkflowEngineClient,
)
from .state_machine import BookingCoordinator, Decision, ACTIONS
from .synchronous import SynchronousStrategy
from .event_driven import EventDrivenStrategy
from .workflow import WorkflowStrategy

logger = logging.getLogger(__name__)

STRATEGIES = ('synchronous', 'event', 'workflow')


class BookingServices:
    """Store and coordinator handles for one application instance."""

    def __init__(self, appointments, resources, directory, gateway, coordinator, publisher, engine=None):
        self.appointments = appointments
        self.resources = resources
        self.directory = directory
        self.gateway = gateway
        self.coordinator = coordinator
        self.publisher = publisher
        self.engine = engine


def build_workflow_client(config):
    return WorkflowEngineClient(
        config['WORKFLOW_ENGINE_URL'],
        user=config.get('WORKFLOW_ENGINE_USER'),
        password=config.get('WORKFLOW_ENGINE_PASSWORD'),
        timeout=config['WORKFLOW_ENGINE_TIMEOUT'],
    )


def build_booking_services(app, db):
    config = app.config
    duration = timedelta(minutes=config['APPOINTMENT_DURATION_MINUTES'])

    resources = ResourceStore(db, appointment_duration=duration)
    appointments = AppointmentStore(db, appointment_duration=duration)
    directory = UserDirectory(db)

    if config.get('RESOURCE_SERVICE_URL'):
        gateway = HttpResourceGateway(config['RESOURCE_SERVICE_URL'], timeout=config['RESOURCE_SERVICE_TIMEOUT'])
    else:
        gateway = LocalResourceGateway(resources)

    publisher = CeleryEventPublisher()
    engine = None

    strategy_name = config['BOOKING_STRATEGY']
    if strategy_name == 'synchronous':
        strategy = SynchronousStrategy(appointments, gateway)
    elif strategy_name == 'event':
        strategy = EventDrivenStrategy(appointments, publisher)
    elif strategy_name == 'workflow':
        engine = build_workflow_client(config)
        strategy = WorkflowStrategy(appointments, engine, config['WORKFLOW_PROCESS_KEY'])
    else:
        raise ValueError(f'Unknown BOOKING_STRATEGY {strategy_name!r}. Valid values: {", ".join(STRATEGIES)}')

    logger.info("Booking strategy: %s, resource gateway: %s", strategy_name, gateway.__class__.__name__)
    coordinator = BookingCoordinator(appointments, gateway, strategy)
    return BookingServices(appointments, resources, directory, gateway, coordinator, publisher, engine)


def get_services() -> BookingServices:
    return current_app.extensions['booking']


__all__ = [
    "ACTIONS",
    "BookingCoordinator",
    "BookingServices",
    "Decision",
    "EventDrivenStrategy",
    "STRATEGIES",
    "SynchronousStrategy",
    "WorkflowStrategy",
    "build_booking_services",
    "build_workflow_client",
    "get_services",
]
