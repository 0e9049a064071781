"""Development entry point: ``python app.py`` or ``flask --app app run``."""

import sys
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parent / "src" / "training_attendance"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from training_attendance.main import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config["DEBUG"])
