from .content import BulletItem, ChecklistItem, ContentNode, Divider, Heading, Paragraph
from .task import StatusInfo, Task, TaskMetadata
from .todo import HierarchyNode, Section, TaskStructure, Todo, TodoAnalysis, TodoStats, TodoUpdate
from .workflow import (
    Completed,
    Continue,
    ExecutionAction,
    ExecutionContext,
    ExecutionMode,
    NeedsAnalysis,
    NeedsImplementation,
    Step,
    StepTodo,
    TodoGroup,
    TodoUpdateResult,
    WorkflowConfig,
)

__all__ = [
    "BulletItem",
    "ChecklistItem",
    "ContentNode",
    "Divider",
    "Heading",
    "Paragraph",
    "StatusInfo",
    "Task",
    "TaskMetadata",
    "HierarchyNode",
    "Section",
    "TaskStructure",
    "Todo",
    "TodoAnalysis",
    "TodoStats",
    "TodoUpdate",
    "Completed",
    "Continue",
    "ExecutionAction",
    "ExecutionContext",
    "ExecutionMode",
    "NeedsAnalysis",
    "NeedsImplementation",
    "Step",
    "StepTodo",
    "TodoGroup",
    "TodoUpdateResult",
    "WorkflowConfig",
]
