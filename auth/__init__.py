"""auth/ -- Authentication and session lifecycle for Chirpy.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or chirps/.
api/ imports from auth/, not the other way around.
"""
