"""HTTP API for converting text to slides and serving reading sessions.

WHY: Front ends that cannot embed the Python engine still need timed
slides and lazy loading of large documents.

HOW: app.py defines the FastAPI app and endpoints, models.py the
pydantic schemas, sessions.py the in-memory session store.
"""
