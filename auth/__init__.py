"""auth/ -- Authentication and authorization package for ZapMenu.

Admin MFA passcodes, guest login, signed session tokens and hotel-scoped
access checks.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/; Settings objects are passed in.
api/ imports from auth/, not the other way around.
"""
