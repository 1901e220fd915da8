"""
Insights, recommendations and blockers derived purely from TodoStats.
"""

from typing import List

from models.todo import TodoStats

COMPLEXITY_THRESHOLD = 20
STALL_THRESHOLD = 10
SPLIT_SUGGESTION_THRESHOLD = 10


def generate_insights(stats: TodoStats) -> List[str]:
    insights = [f"{stats.completed}/{stats.total} todos completed ({stats.percentage}%)"]

    if stats.total and stats.percentage == 100:
        insights.append("Task fully completed")
    elif stats.percentage >= 75:
        insights.append("Task almost complete")
    elif stats.percentage >= 50:
        insights.append("Task more than halfway complete")
    elif stats.percentage > 0:
        insights.append("Task in early progress")
    else:
        insights.append("Task not yet started")

    if stats.next_todos:
        insights.append(f"Next {len(stats.next_todos)} todo(s): {', '.join(stats.next_todos)}")

    return insights


def generate_recommendations(stats: TodoStats) -> List[str]:
    if stats.total == 0:
        return ["Break the task description down into checklist todos before starting"]
    if stats.percentage == 0:
        return ["Start with the first todo to begin progress"]
    if stats.percentage < 100:
        recommendations = ["Focus on completing remaining todos"]
        if stats.total > SPLIT_SUGGESTION_THRESHOLD:
            recommendations.append("Consider breaking into smaller sub-tasks")
        return recommendations
    return ["Task ready for review and completion"]


def identify_blockers(stats: TodoStats) -> List[str]:
    blockers = []
    if stats.total == 0:
        blockers.append("No todos found - task may need better structure")
    if stats.total > COMPLEXITY_THRESHOLD:
        blockers.append("Large number of todos might indicate task complexity")
    if stats.total > STALL_THRESHOLD and stats.percentage == 0:
        blockers.append("Many todos with no progress - work may be stalled")
    return blockers
