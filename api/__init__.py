"""api/ -- FastAPI application, transport models and routers.

Layer rule: api/ may import from auth/, tracker/, notify/ and core/.
None of those import from api/.
"""
