"""
Database seed data: the resource catalog, inserted on startup by id.
"""
import logging

from clinic_booking.errors import InternalError

logger = logging.getLogger(__name__)

RESOURCE_CATALOG = [
    {"id": "399ae499-ac47-468a-9c76-0a58c028141a", "name": "Operating Room 1", "type": "facility"},
    {"id": "76673eca-82e1-46dd-b54a-d80fc02c3eaf", "name": "Consultation Room A", "type": "facility"},
    {"id": "660ee5f2-3ec2-4b71-a7b9-4cd2cc9c9a48", "name": "MRI Machine", "type": "equipment"},
    {"id": "32aeb6b4-100a-459e-bece-15a0d24af9ae", "name": "X-ray Machine", "type": "equipment"},
    {"id": "6241705f-f56d-4ce9-aed4-03d3295a4159", "name": "Painkillers", "type": "medicine"},
    {"id": "24430efc-8308-4f1e-8cab-15f6d43216a5", "name": "Antibiotics", "type": "medicine"},
]


def seed_resources(store):
    """Insert catalog resources that are missing. Returns how many were added."""
    try:
        added = store.seed_resources(RESOURCE_CATALOG)
    except InternalError as e:
        logger.warning("Resource seeding skipped: %s", e.detail)
        return 0
    if added:
        logger.info("Seeded %d catalog resources", added)
    return added
