"""API route package — imports all routers for main.py."""

from classquiz.api.health import router as health_router  # noqa: F401
from classquiz.api.quizzes import router as quizzes_router  # noqa: F401
from classquiz.api.submissions import router as submissions_router  # noqa: F401
from classquiz.api.notifications import router as notifications_router  # noqa: F401
