from src.services import (
    task_generation_service,
    task_store,
)


__all__ = [
    "task_generation_service",
    "task_store",
]
