from __future__ import annotations

from dataclasses import dataclass

from .enums import Category, Priority


@dataclass(frozen=True)
class TaskTemplate:
    id: str
    title: str
    description: str
    category: Category
    priority: Priority
    estimated_duration: int | None = None

    def to_draft(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "estimated_duration": self.estimated_duration,
        }


TASK_TEMPLATES: tuple[TaskTemplate, ...] = (
    TaskTemplate(
        "study-session",
        "Study Session",
        "Focused study time for a specific subject",
        Category.ACADEMIC,
        Priority.HIGH,
        60,
    ),
    TaskTemplate(
        "assignment",
        "Assignment",
        "Complete and submit assignment",
        Category.ACADEMIC,
        Priority.HIGH,
    ),
    TaskTemplate(
        "group-project",
        "Group Project Work",
        "Collaborate on group assignment",
        Category.ACADEMIC,
        Priority.MEDIUM,
        90,
    ),
    TaskTemplate(
        "exam-prep",
        "Exam Preparation",
        "Review and practice for upcoming exam",
        Category.ACADEMIC,
        Priority.HIGH,
        120,
    ),
    TaskTemplate(
        "reading",
        "Reading Assignment",
        "Read required chapters or articles",
        Category.ACADEMIC,
        Priority.MEDIUM,
        45,
    ),
    TaskTemplate(
        "workout",
        "Exercise",
        "Physical activity or gym session",
        Category.PERSONAL,
        Priority.MEDIUM,
        60,
    ),
    TaskTemplate(
        "meeting",
        "Meeting",
        "Attend scheduled meeting",
        Category.WORK,
        Priority.MEDIUM,
        30,
    ),
    TaskTemplate(
        "break",
        "Take a Break",
        "Rest and recharge",
        Category.PERSONAL,
        Priority.LOW,
        15,
    ),
)

TEMPLATES_BY_ID = {template.id: template for template in TASK_TEMPLATES}
