"""
asgi.py -- Application assembly for MyFlix.

Joins the API with the static documentation pages in public/. api/main.py
knows nothing about static files; this module is the only place both meet.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from pathlib import Path

from fastapi.staticfiles import StaticFiles

from api.main import app

PUBLIC_DIR = Path(__file__).parent / "public"

# html=True serves documentation.html for /static/documentation.html and
# index.html (if present) for /static/.
app.mount("/static", StaticFiles(directory=PUBLIC_DIR, html=True), name="static")
