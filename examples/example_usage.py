"""Example: drive the service layer directly, without Flask.

Controllers are a thin layer; the attendance rules live in the services.
"""

import importlib
from datetime import date

from config import get_settings_module

from class_attendance.container import build_container
from class_attendance.students.model import ClassKey


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, secret_key=settings.SECRET_KEY)
    for summary in container.student_service.distinct_classes():
        counts = container.dashboard_service.status_counts(summary.class_key, date.today())
        print(counts.to_wire())
    print(container.dashboard_service.status_counts(ClassKey("II", "CSE", "A"), date.today()).to_wire())


if __name__ == "__main__":
    main()
