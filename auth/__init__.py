"""auth/ -- Authentication and authorization package for the HR training API.

Layer rule: auth/ imports stdlib, third-party libraries, core/ and provider/.
It does NOT import from api/ or formations/.
api/ imports from auth/, not the other way around.
"""
