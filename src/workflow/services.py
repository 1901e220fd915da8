"""
Service graph wiring.

The workflow config is loaded once at startup and handed to every
constructor here; nothing below re-reads it.
"""

from dataclasses import dataclass

from backends.base import TaskBackend
from models.workflow import WorkflowConfig
from workflow.executor import ExecutionOrchestrator
from workflow.status import StatusTransitionEngine
from workflow.tasks import TaskService
from workflow.validation import ValidationService


@dataclass
class Services:
    config: WorkflowConfig
    backend: TaskBackend
    engine: StatusTransitionEngine
    validation: ValidationService
    tasks: TaskService
    orchestrator: ExecutionOrchestrator


def build_services(config: WorkflowConfig, backend: TaskBackend) -> Services:
    engine = StatusTransitionEngine(config)
    validation = ValidationService(config, engine)
    tasks = TaskService(backend, engine, validation)
    orchestrator = ExecutionOrchestrator(tasks, engine, validation)
    return Services(
        config=config,
        backend=backend,
        engine=engine,
        validation=validation,
        tasks=tasks,
        orchestrator=orchestrator,
    )
