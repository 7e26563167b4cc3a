"""Chạy server phát triển: `python app.py` (hoặc `flask --app app run`)."""

import os
import sys
from pathlib import Path

SRC = Path(__file__).resolve().parent / "src" / "worktime"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from worktime.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), use_reloader=False)
