from .reservation_worker import ReservationWorker, parse_task_variables

__all__ = ["ReservationWorker", "parse_task_variables"]
