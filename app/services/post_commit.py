"""Best-effort continuations that run after a write has committed.

Badge evaluation and notifications are side effects of enrollment,
lecture completion, submission and grading.  They run only once the
primary transaction is durable, and their failure never undoes it: the
caller gets a success with the failed hook named in ``degraded``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from app.core.metrics import POST_COMMIT_FAILURES

logger = logging.getLogger(__name__)


async def run_best_effort(
    hook: str,
    action: Callable[[], Awaitable[object]],
    *,
    student_id: UUID | None = None,
    course_id: UUID | None = None,
) -> bool:
    """Await ``action``; on failure log, count, and return False."""
    try:
        await action()
    except Exception:
        POST_COMMIT_FAILURES.labels(hook=hook).inc()
        logger.exception(
            "Post-commit hook %s failed for student=%s course=%s",
            hook,
            student_id,
            course_id,
            extra={
                "student_id": str(student_id) if student_id else None,
                "course_id": str(course_id) if course_id else None,
            },
        )
        return False
    return True
