"""Mini README: API routers mounted by ``create_application``."""

from . import auth, categories, expenditures, reports, students

ROUTERS = (
    auth.router,
    categories.router,
    students.router,
    expenditures.router,
    reports.router,
)

__all__ = ["ROUTERS"]
