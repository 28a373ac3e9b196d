from .certificate import router as certificate_router
from .course import router as course_router
from .enrollment import router as enrollment_router
from .leaderboard import router as leaderboard_router
from .notification import router as notification_router
from .progress import router as progress_router
from .quiz import router as quiz_router
from .quiz_attempt import router as quiz_attempt_router

routes = [
    course_router,
    enrollment_router,
    quiz_router,
    quiz_attempt_router,
    progress_router,
    certificate_router,
    notification_router,
    leaderboard_router,
]
