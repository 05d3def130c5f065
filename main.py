# Root entry point so uvicorn can be started from the project directory:
#   uvicorn main:app --host 0.0.0.0 --port 8001

from app.main import app  # noqa: F401
