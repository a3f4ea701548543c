# tasks/engine.py
import logging
import re
from typing import Callable, Optional, Sequence

from businessmeter.tasks.models import StatusUpdate, Task, TaskStatus, is_forward

logger = logging.getLogger(__name__)

TASK_PATTERN = re.compile(r"\[TASK:\s*([^\]]+)\]")

# Persian and English
COMPLETION_KEYWORDS = [
    "انجام شد",
    "تمام شد",
    "تموم شد",
    "کامل شد",
    "done",
    "finished",
    "completed",
    "انجامش دادم",
]

IN_PROGRESS_KEYWORDS = [
    "دارم کار می‌کنم",
    "شروع کردم",
    "در حال انجام",
    "working on",
    "started",
    "in progress",
]

TASK_INSTRUCTION = (
    "\n\nاگر به کاربر یک کار اجرایی مشخص پیشنهاد می‌دهی، "
    "آن را به شکل [TASK: شرح کار] در پاسخ بنویس."
)


def extract_task_descriptions(model_output: str) -> list[str]:
    """All `[TASK: ...]` markers, trimmed, in order of appearance."""
    descriptions = [m.group(1).strip() for m in TASK_PATTERN.finditer(model_output or "")]
    return [d for d in descriptions if d]


class KeywordStatusDetector:
    """
    Proposes at most one status change per user message.

    Completion wins over in-progress. The task picked is simply the first
    eligible one in `tasks`; nothing ties the message to a specific task.
    """

    def __init__(
        self,
        completion_keywords: Sequence[str] = COMPLETION_KEYWORDS,
        in_progress_keywords: Sequence[str] = IN_PROGRESS_KEYWORDS,
    ):
        self.completion_keywords = [k.lower() for k in completion_keywords]
        self.in_progress_keywords = [k.lower() for k in in_progress_keywords]

    def __call__(self, user_message: str, tasks: Sequence[Task]) -> list[StatusUpdate]:
        message = (user_message or "").lower()

        if any(k in message for k in self.completion_keywords):
            active = next(
                (t for t in tasks if t.status in (TaskStatus.pending, TaskStatus.in_progress)),
                None,
            )
            if active:
                return [StatusUpdate(active.id, TaskStatus.completed)]

        if any(k in message for k in self.in_progress_keywords):
            pending = next((t for t in tasks if t.status == TaskStatus.pending), None)
            if pending:
                return [StatusUpdate(pending.id, TaskStatus.in_progress)]

        return []


StatusDetector = Callable[[str, Sequence[Task]], list[StatusUpdate]]

detect_status_updates = KeywordStatusDetector()


def build_task_context(tasks: Sequence[Task]) -> str:
    if not tasks:
        return ""

    pending = [t for t in tasks if t.status == TaskStatus.pending]
    in_progress = [t for t in tasks if t.status == TaskStatus.in_progress]
    completed = [t for t in tasks if t.status == TaskStatus.completed][:3]

    context = "\n\n## 📋 وضعیت تسک‌های کاربر:\n"

    if in_progress:
        context += "\n**🔄 در حال انجام:**\n"
        context += "".join(f"- {t.description}\n" for t in in_progress)

    if pending:
        context += "\n**⏳ در صف:**\n"
        context += "".join(f"- {t.description}\n" for t in pending)

    if completed:
        context += "\n**✅ تکمیل شده (اخیر):**\n"
        context += "".join(f"- {t.description}\n" for t in completed)

    return context


class TaskEngine:
    """Task bookkeeping on top of TaskRepository. Storage errors become None/[]."""

    def __init__(self, repository, detector: StatusDetector = detect_status_updates):
        self.repository = repository
        self.detector = detector

    def create_task(self, chat_id: int, description: str) -> Optional[Task]:
        result = self.repository.insert(chat_id, description)
        if not result.is_ok:
            logger.warning("Task not recorded for chat %s", chat_id)
            return None
        return result.value

    def tasks_for_chat(self, chat_id: int, limit: int = 20) -> list[Task]:
        result = self.repository.for_chat(chat_id, limit)
        return result.value if result.is_ok else []

    def update_status(self, task_id: int, status: TaskStatus) -> Optional[Task]:
        current = self.repository.get(task_id)
        if not current.is_ok:
            return None

        if not is_forward(current.value.status, status):
            logger.info(
                "Ignoring status change %s -> %s for task %s",
                current.value.status.value,
                status.value,
                task_id,
            )
            return None

        updated = self.repository.update_status(task_id, status)
        return updated.value if updated.is_ok else None

    def apply_status_updates(self, updates: Sequence[StatusUpdate]) -> list[Task]:
        applied = []
        for update in updates:
            task = self.update_status(update.task_id, update.status)
            if task:
                applied.append(task)
        return applied

    def record_model_output(self, chat_id: int, model_output: str) -> list[Task]:
        created = []
        for description in extract_task_descriptions(model_output):
            task = self.create_task(chat_id, description)
            if task:
                created.append(task)
        return created

    def record_user_message(self, chat_id: int, user_message: str) -> list[Task]:
        tasks = self.tasks_for_chat(chat_id)
        if not tasks:
            return []
        return self.apply_status_updates(self.detector(user_message, tasks))

    def context_for_chat(self, chat_id: int) -> str:
        return build_task_context(self.tasks_for_chat(chat_id))
