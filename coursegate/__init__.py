"""CourseGate — Access control and abuse prevention for the course platform.

CourseGate is the trust boundary in front of every mutating action on the
course management platform (courses, enrollments, assignments, grading,
certificates).

Architecture layers (bottom to top):
    1. Rate limiting — keyed fixed-window counters with lockout escalation
    2. Authorization — static role -> capability table and guard functions
    3. Audit        — append-only event log with severity/category classifiers
    4. API/CLI      — FastAPI daemon and Typer command line
"""

__version__ = "0.1.0"
__author__ = "CourseGate Contributors"
__license__ = "Apache-2.0"

from coursegate.security.models import Category, Principal, Role, Severity

__all__ = [
    "__version__",
    "Category",
    "Principal",
    "Role",
    "Severity",
]
