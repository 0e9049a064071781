"""Example: drive the service layer directly (no Flask).

Issues a token for the seeded in-person session and checks a trainee in
with it from inside the geofence. Run ``scripts/init_db.py`` and
``scripts/seed_db.py`` first.
"""

import importlib

from config import get_settings_module

from training_attendance.attendance.model import CheckInRequest, Geolocation
from training_attendance.container import build_container
from training_attendance.core.enums import AttendanceMethod
from training_attendance.core.policy import AttendancePolicy


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(
        db_config=settings.DB_CONFIG,
        signing_key=settings.ATTENDANCE_SIGNING_KEY or settings.SECRET_KEY,
        policy=AttendancePolicy.from_settings(settings),
    )

    bundle = container.token_issuer.issue_token("session-web-101", "facilitator-1")
    print("access link:", bundle.access_link)

    result = container.attendance_service.mark_attendance(
        CheckInRequest(
            user_id="trainee-1",
            session_id="session-web-101",
            method=AttendanceMethod.QR_CODE,
            token=bundle.token_string,
            geolocation=Geolocation(lat=6.52440, lng=3.37925, accuracy_meters=8),
        )
    )
    print(result.outcome.value, result.failure, result.record)

    history = container.query_service.get_history(user_id="trainee-1")
    print("attendance rate:", history.summary.rate)


if __name__ == "__main__":
    main()
