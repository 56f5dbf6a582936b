"""api/ -- HTTP layer: FastAPI app, routes, transport models.

Layer rule: api/ may import from auth/, media/, and core/. Nothing imports
from api/ except asgi.py and the tests.
"""
