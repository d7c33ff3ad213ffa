"""auth/ -- Admin authentication package.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, tracker/, or notify/.
api/ imports from auth/, not the other way around.
"""
