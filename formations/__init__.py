"""formations/ -- Training sessions ("formations"): domain model, validation and CRUD service.

Layer rule: formations/ imports from core/ and provider/ only. It knows nothing
about HTTP; api/routes/formations.py maps its results and errors to responses.
"""
